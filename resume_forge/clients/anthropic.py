"""Anthropic Claude messages client (provider B)."""
import logging
from typing import Any, Optional

import anthropic

from resume_forge.clients.base import CompletionRequest, ProviderClient, transient
from utils.exceptions import ConfigurationError, ProviderError


logger = logging.getLogger(__name__)


class AnthropicClient(ProviderClient):
    """Client for Anthropic Claude used for the more expressive writing."""

    name = "anthropic"

    def __init__(self, api_key: Optional[str], timeout: float = 120.0):
        if not api_key or not api_key.strip():
            raise ConfigurationError("ANTHROPIC_API_KEY is not configured")

        self._client = anthropic.Anthropic(api_key=api_key.strip(), timeout=timeout, max_retries=0)
        logger.info("Anthropic client initialized")

    def _call_api(self, request: CompletionRequest) -> Any:
        # Claude takes the system prompt separately from the turns
        system, turns = self.split_system(request.messages)
        kwargs = dict(
            model=request.model,
            max_tokens=request.max_tokens,
            temperature=min(request.temperature, 1.0),
            messages=turns,
        )
        if system:
            kwargs["system"] = system
        if request.user:
            kwargs["metadata"] = {"user_id": request.user}
        return self._client.messages.create(**kwargs)

    def _extract_text(self, raw: Any) -> Optional[str]:
        return raw.content[0].text

    def _classify_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, (anthropic.APIConnectionError, anthropic.RateLimitError, anthropic.InternalServerError)):
            return transient(self, exc)
        if isinstance(exc, anthropic.APIStatusError) and (exc.status_code in (408, 409) or exc.status_code >= 500):
            return transient(self, exc)
        return super()._classify_error(exc)
