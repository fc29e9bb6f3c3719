"""Common request/response contract for text-generation providers."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from utils.exceptions import EmptyResponseError, ProviderError, ProviderTransientError


logger = logging.getLogger(__name__)

Message = Dict[str, str]


@dataclass(frozen=True)
class CompletionRequest:
    """One chat-style completion call."""

    model: str
    messages: List[Message] = field(default_factory=list)
    max_tokens: int = 2000
    temperature: float = 0.7
    user: Optional[str] = None


class ProviderClient(ABC):
    """Wraps one external provider behind ``complete(request) -> text``.

    Subclasses implement ``_call_api`` (one raw call, returns the provider's
    own response object), ``_extract_text`` (the provider-specific path to the
    generated text) and ``_classify_error`` (maps SDK/HTTP failures to the
    transient or permanent provider errors).
    """

    name: str

    def complete(self, request: CompletionRequest) -> str:
        logger.info(
            f"{self.name} completion: model={request.model} max_tokens={request.max_tokens} "
            f"temperature={request.temperature:.2f}"
        )
        try:
            raw = self._call_api(request)
        except ProviderError:
            raise
        except Exception as exc:
            raise self._classify_error(exc) from exc

        try:
            text = self._extract_text(raw)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise EmptyResponseError(
                f"Unparseable response from {self.name}: {exc}", provider=self.name
            ) from exc

        if not text or not text.strip():
            raise EmptyResponseError(f"Empty response from {self.name}", provider=self.name)
        return text.strip()

    @abstractmethod
    def _call_api(self, request: CompletionRequest) -> Any:
        """Make a single API call (no retries)."""

    @abstractmethod
    def _extract_text(self, raw: Any) -> Optional[str]:
        """Return the generated text from a raw provider response."""

    def _classify_error(self, exc: Exception) -> ProviderError:
        return ProviderError(f"{self.name} request failed: {exc}", provider=self.name)

    @staticmethod
    def split_system(messages: List[Message]):
        """Separate system instructions from the conversation turns."""
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [m for m in messages if m["role"] != "system"]
        return system, turns


def transient(client: ProviderClient, exc: Exception) -> ProviderTransientError:
    return ProviderTransientError(f"{client.name} temporarily unavailable: {exc}", provider=client.name)
