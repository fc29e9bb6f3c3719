"""Application configuration utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class OpenAISettings:
    api_key: str
    model: str = "gpt-4o"
    fast_model: str = "gpt-4o-mini"


@dataclass(frozen=True)
class AnthropicSettings:
    api_key: str
    model: str = "claude-3-5-sonnet-20241022"


@dataclass(frozen=True)
class GoogleSettings:
    api_key: str
    model: str = "gemini-1.5-pro"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"


@dataclass(frozen=True)
class WorkerSettings:
    max_workers: int = 4
    retry_base_delay: float = 2.0
    retry_max_delay: float = 60.0
    provider_timeout: float = 120.0


@dataclass(frozen=True)
class AppConfig:
    openai: OpenAISettings
    anthropic: Optional[AnthropicSettings] = None
    google: Optional[GoogleSettings] = None
    worker: WorkerSettings = field(default_factory=WorkerSettings)
    allowed_origins: tuple[str, ...] = field(default_factory=lambda: ("*",))


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    if not os.getenv("OPENAI_API_KEY"):
        raise ValueError("Missing required environment variables: OPENAI_API_KEY")

    anthropic_key = os.getenv("ANTHROPIC_API_KEY")
    google_key = os.getenv("GOOGLE_API_KEY")

    return AppConfig(
        openai=OpenAISettings(
            api_key=os.environ["OPENAI_API_KEY"],
            model=os.getenv("OPENAI_MODEL", "gpt-4o"),
            fast_model=os.getenv("OPENAI_FAST_MODEL", "gpt-4o-mini"),
        ),
        anthropic=(
            AnthropicSettings(
                api_key=anthropic_key,
                model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022"),
            )
            if anthropic_key
            else None
        ),
        google=(
            GoogleSettings(
                api_key=google_key,
                model=os.getenv("GOOGLE_MODEL", "gemini-1.5-pro"),
            )
            if google_key
            else None
        ),
        worker=WorkerSettings(
            max_workers=int(os.getenv("GENERATION_WORKERS", "4")),
            retry_base_delay=float(os.getenv("GENERATION_RETRY_BASE_DELAY", "2.0")),
            retry_max_delay=float(os.getenv("GENERATION_RETRY_MAX_DELAY", "60.0")),
            provider_timeout=float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "120")),
        ),
        allowed_origins=tuple(
            origin.strip()
            for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
        ),
    )
