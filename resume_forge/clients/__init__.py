"""Provider clients, one implementation per text-generation backend."""
from functools import lru_cache

from resume_forge.clients.base import CompletionRequest, ProviderClient
from utils.config import get_app_config
from utils.exceptions import ConfigurationError

OPENAI = "openai"
ANTHROPIC = "anthropic"
GOOGLE = "google"

PROVIDERS = (OPENAI, ANTHROPIC, GOOGLE)


@lru_cache(maxsize=len(PROVIDERS))
def get_provider_client(provider: str) -> ProviderClient:
    """Get the cached client for a provider name."""
    config = get_app_config()
    timeout = config.worker.provider_timeout

    if provider == OPENAI:
        from resume_forge.clients.openai import OpenAIClient
        return OpenAIClient(config.openai.api_key, timeout=timeout)
    if provider == ANTHROPIC:
        from resume_forge.clients.anthropic import AnthropicClient
        return AnthropicClient(config.anthropic.api_key if config.anthropic else None, timeout=timeout)
    if provider == GOOGLE:
        from resume_forge.clients.google import GeminiClient
        if not config.google:
            raise ConfigurationError("GOOGLE_API_KEY is not configured")
        return GeminiClient(config.google.api_key, config.google.base_url, timeout=timeout)

    raise ConfigurationError(f"Unknown provider: {provider}")


__all__ = [
    'ANTHROPIC', 'GOOGLE', 'OPENAI', 'PROVIDERS',
    'CompletionRequest', 'ProviderClient', 'get_provider_client',
]
