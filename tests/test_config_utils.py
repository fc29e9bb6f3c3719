"""Test suite for configuration and utility functions."""
import logging

import pytest

from utils.config import get_app_config


@pytest.fixture
def fresh_config():
    get_app_config.cache_clear()
    yield
    get_app_config.cache_clear()


def test_defaults(fresh_config):
    config = get_app_config()

    assert config.openai.model == "gpt-4o"
    assert config.openai.fast_model == "gpt-4o-mini"
    assert config.worker.max_workers == 4
    assert config.worker.retry_base_delay == 2.0


def test_worker_settings_from_environment(fresh_config, monkeypatch):
    monkeypatch.setenv("GENERATION_WORKERS", "8")
    monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "30")

    config = get_app_config()

    assert config.worker.max_workers == 8
    assert config.worker.provider_timeout == 30.0


def test_optional_providers(fresh_config, monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY")
    monkeypatch.delenv("GOOGLE_API_KEY")

    config = get_app_config()

    assert config.anthropic is None
    assert config.google is None


def test_openai_key_is_required(fresh_config, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        get_app_config()


def test_logging_includes_thread_name(monkeypatch):
    from utils.logging import configure_logging

    monkeypatch.setenv("LOG_LEVEL", "debug")
    configure_logging()

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert "%(threadName)s" in root.handlers[0].formatter._fmt
    assert logging.getLogger("openai").level == logging.WARNING
