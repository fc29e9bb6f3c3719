"""OpenAI chat completion client (provider A)."""
import logging
from typing import Any, Optional

import openai

from resume_forge.clients.base import CompletionRequest, ProviderClient, transient
from utils.exceptions import ConfigurationError, ProviderError


logger = logging.getLogger(__name__)


class OpenAIClient(ProviderClient):
    """Client for OpenAI GPT chat completions."""

    name = "openai"

    def __init__(self, api_key: str, timeout: float = 120.0):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            timeout: Per-request timeout in seconds

        Raises:
            ConfigurationError: If the API key is missing
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError("OpenAI API key is required")

        # Retries are owned by the job runner, not the SDK
        self._client = openai.OpenAI(api_key=api_key.strip(), timeout=timeout, max_retries=0)
        logger.info("OpenAI client initialized")

    def _call_api(self, request: CompletionRequest) -> Any:
        kwargs = dict(
            model=request.model,
            messages=request.messages,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )
        if request.user:
            kwargs["user"] = request.user
        return self._client.chat.completions.create(**kwargs)

    def _extract_text(self, raw: Any) -> Optional[str]:
        return raw.choices[0].message.content

    def _classify_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError)):
            return transient(self, exc)
        if isinstance(exc, openai.APIStatusError) and exc.status_code in (408, 409):
            return transient(self, exc)
        return super()._classify_error(exc)
