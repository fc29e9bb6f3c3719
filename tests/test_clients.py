"""Test suite for provider clients: response normalization and error classification."""
import httpx
import pytest
from unittest.mock import MagicMock, patch

from resume_forge.clients import CompletionRequest
from utils.exceptions import ConfigurationError, EmptyResponseError, ProviderError, ProviderTransientError


MESSAGES = [
    {"role": "system", "content": "You are a writer."},
    {"role": "user", "content": "Write a cover letter."},
]


def completion_request(**overrides):
    fields = dict(model="test-model", messages=MESSAGES, max_tokens=600, temperature=0.4, user="3")
    fields.update(overrides)
    return CompletionRequest(**fields)


def fake_request():
    return httpx.Request("POST", "https://api.example.com/v1/test")


class TestOpenAIClient:

    @pytest.fixture
    def sdk(self):
        with patch('resume_forge.clients.openai.openai.OpenAI') as mock_cls:
            yield mock_cls.return_value

    def test_missing_key_is_configuration_error(self):
        from resume_forge.clients.openai import OpenAIClient
        with pytest.raises(ConfigurationError):
            OpenAIClient("")

    def test_extracts_message_content(self, sdk):
        from resume_forge.clients.openai import OpenAIClient

        sdk.chat.completions.create.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content="Dear Hiring Manager"))]
        )
        text = OpenAIClient("key").complete(completion_request())

        assert text == "Dear Hiring Manager"
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs['messages'] == MESSAGES
        assert kwargs['user'] == "3"

    def test_no_choices_is_empty_response(self, sdk):
        from resume_forge.clients.openai import OpenAIClient

        sdk.chat.completions.create.return_value = MagicMock(choices=[])
        with pytest.raises(EmptyResponseError):
            OpenAIClient("key").complete(completion_request())

    def test_connection_error_is_transient(self, sdk):
        import openai
        from resume_forge.clients.openai import OpenAIClient

        sdk.chat.completions.create.side_effect = openai.APIConnectionError(request=fake_request())
        with pytest.raises(ProviderTransientError) as exc_info:
            OpenAIClient("key").complete(completion_request())
        assert exc_info.value.provider == "openai"

    def test_rate_limit_is_transient(self, sdk):
        import openai
        from resume_forge.clients.openai import OpenAIClient

        response = httpx.Response(429, request=fake_request())
        sdk.chat.completions.create.side_effect = openai.RateLimitError("slow down", response=response, body=None)
        with pytest.raises(ProviderTransientError):
            OpenAIClient("key").complete(completion_request())

    def test_bad_request_is_permanent(self, sdk):
        import openai
        from resume_forge.clients.openai import OpenAIClient

        response = httpx.Response(400, request=fake_request())
        sdk.chat.completions.create.side_effect = openai.BadRequestError("bad", response=response, body=None)
        with pytest.raises(ProviderError) as exc_info:
            OpenAIClient("key").complete(completion_request())
        assert not isinstance(exc_info.value, ProviderTransientError)


class TestAnthropicClient:

    @pytest.fixture
    def sdk(self):
        with patch('resume_forge.clients.anthropic.anthropic.Anthropic') as mock_cls:
            yield mock_cls.return_value

    def test_system_prompt_is_sent_separately(self, sdk):
        from resume_forge.clients.anthropic import AnthropicClient

        sdk.messages.create.return_value = MagicMock(content=[MagicMock(text="Hello Acme")])
        text = AnthropicClient("key").complete(completion_request(temperature=1.3))

        assert text == "Hello Acme"
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs['system'] == "You are a writer."
        assert kwargs['messages'] == [MESSAGES[1]]
        assert kwargs['temperature'] == 1.0
        assert kwargs['metadata'] == {"user_id": "3"}

    def test_empty_content_is_empty_response(self, sdk):
        from resume_forge.clients.anthropic import AnthropicClient

        sdk.messages.create.return_value = MagicMock(content=[])
        with pytest.raises(EmptyResponseError):
            AnthropicClient("key").complete(completion_request())

    def test_connection_error_is_transient(self, sdk):
        import anthropic
        from resume_forge.clients.anthropic import AnthropicClient

        sdk.messages.create.side_effect = anthropic.APIConnectionError(request=fake_request())
        with pytest.raises(ProviderTransientError):
            AnthropicClient("key").complete(completion_request())


class TestGeminiClient:

    @pytest.fixture
    def client(self):
        from resume_forge.clients.google import GeminiClient
        return GeminiClient("key", "https://gemini.example.com/v1beta/")

    def test_extracts_candidate_text(self, client):
        body = {"candidates": [{"content": {"parts": [{"text": "Gemini draft"}]}}]}
        with patch('resume_forge.clients.google.requests.post') as mock_post:
            mock_post.return_value = MagicMock(status_code=200, json=MagicMock(return_value=body))
            text = client.complete(completion_request(model="gemini-1.5-pro"))

        assert text == "Gemini draft"
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs['json']
        assert url == "https://gemini.example.com/v1beta/models/gemini-1.5-pro:generateContent"
        assert payload['systemInstruction'] == {"parts": [{"text": "You are a writer."}]}
        assert payload['generationConfig'] == {"temperature": 0.4, "maxOutputTokens": 600}

    def test_missing_candidates_is_empty_response(self, client):
        with patch('resume_forge.clients.google.requests.post') as mock_post:
            mock_post.return_value = MagicMock(status_code=200, json=MagicMock(return_value={}))
            with pytest.raises(EmptyResponseError):
                client.complete(completion_request())

    def test_server_error_is_transient(self, client):
        with patch('resume_forge.clients.google.requests.post') as mock_post:
            mock_post.return_value = MagicMock(status_code=503, text="unavailable")
            with pytest.raises(ProviderTransientError):
                client.complete(completion_request())

    def test_client_error_is_permanent(self, client):
        with patch('resume_forge.clients.google.requests.post') as mock_post:
            mock_post.return_value = MagicMock(status_code=400, text="bad request")
            with pytest.raises(ProviderError) as exc_info:
                client.complete(completion_request())
        assert not isinstance(exc_info.value, ProviderTransientError)

    def test_timeout_is_transient(self, client):
        import requests

        with patch('resume_forge.clients.google.requests.post', side_effect=requests.Timeout("timed out")):
            with pytest.raises(ProviderTransientError):
                client.complete(completion_request())


def test_registry_builds_configured_clients():
    from resume_forge.clients import get_provider_client
    from resume_forge.clients.openai import OpenAIClient

    get_provider_client.cache_clear()
    with patch('resume_forge.clients.openai.openai.OpenAI'):
        client = get_provider_client("openai")
    assert isinstance(client, OpenAIClient)
    assert get_provider_client("openai") is client
    get_provider_client.cache_clear()


def test_registry_rejects_unknown_provider():
    from resume_forge.clients import get_provider_client

    with pytest.raises(ConfigurationError):
        get_provider_client("mystery")
