"""Google Gemini client over the public REST API (provider C)."""
import logging
from typing import Any, Dict, Optional

import requests

from resume_forge.clients.base import CompletionRequest, ProviderClient, transient
from utils.exceptions import ConfigurationError, ProviderError


logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class GeminiClient(ProviderClient):
    """Gemini generateContent client."""

    name = "google"

    def __init__(self, api_key: Optional[str], base_url: str, timeout: float = 120.0):
        if not api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not configured")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": api_key,
        }

    def _call_api(self, request: CompletionRequest) -> Dict[str, Any]:
        system, turns = self.split_system(request.messages)
        payload = {
            "contents": [
                {
                    "role": "model" if turn["role"] == "assistant" else "user",
                    "parts": [{"text": turn["content"]}],
                }
                for turn in turns
            ],
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
            },
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        response = requests.post(
            f"{self.base_url}/models/{request.model}:generateContent",
            headers=self.headers,
            json=payload,
            timeout=self.timeout,
        )

        if response.status_code in TRANSIENT_STATUS_CODES:
            raise transient(self, f"HTTP {response.status_code}")
        if response.status_code != 200:
            raise ProviderError(f"Gemini API error: {response.text}", provider=self.name)

        return response.json()

    def _extract_text(self, raw: Dict[str, Any]) -> Optional[str]:
        return raw["candidates"][0]["content"]["parts"][0]["text"]

    def _classify_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
            return transient(self, exc)
        if isinstance(exc, ValueError):
            # Body was not JSON
            return transient(self, exc)
        return super()._classify_error(exc)
