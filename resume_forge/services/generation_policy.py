"""Provider, model and sampling parameters for each generation use case."""
from dataclasses import dataclass
from typing import Optional

from resume_forge.clients import ANTHROPIC, GOOGLE, OPENAI
from utils.config import get_app_config


TONES = ('professional', 'friendly', 'confident', 'casual', 'enthusiastic')
LENGTHS = ('short', 'medium', 'long')

# Looser tones are written by the more expressive provider
EXPRESSIVE_TONES = frozenset({'friendly', 'enthusiastic', 'casual'})

TONE_TEMPERATURES = {
    'professional': 0.3,
    'confident': 0.4,
    'friendly': 0.6,
    'enthusiastic': 0.7,
    'casual': 0.8,
}

LENGTH_TOKENS = {
    'short': 400,
    'medium': 600,
    'long': 900,
}

MAX_VARIATION_TEMPERATURE = 1.0


@dataclass(frozen=True)
class CompletionParams:
    provider: str
    model: str
    max_tokens: int
    temperature: float


def flagship_model(provider: str) -> str:
    config = get_app_config()
    if provider == ANTHROPIC:
        return config.anthropic.model if config.anthropic else "claude-3-5-sonnet-20241022"
    if provider == GOOGLE:
        return config.google.model if config.google else "gemini-1.5-pro"
    return config.openai.model


def optimization_params() -> CompletionParams:
    return CompletionParams(OPENAI, flagship_model(OPENAI), max_tokens=3000, temperature=0.3)


def keyword_params() -> CompletionParams:
    return CompletionParams(OPENAI, get_app_config().openai.fast_model, max_tokens=500, temperature=0.2)


def ats_params() -> CompletionParams:
    return CompletionParams(OPENAI, flagship_model(OPENAI), max_tokens=800, temperature=0.1)


def tone_temperature(tone: str) -> float:
    return TONE_TEMPERATURES.get(tone, TONE_TEMPERATURES['professional'])


def length_tokens(length: str) -> int:
    return LENGTH_TOKENS.get(length, LENGTH_TOKENS['medium'])


def provider_for_tone(tone: str) -> str:
    return ANTHROPIC if tone in EXPRESSIVE_TONES else OPENAI


def cover_letter_params(tone: str, length: str) -> CompletionParams:
    provider = provider_for_tone(tone)
    return CompletionParams(
        provider,
        flagship_model(provider),
        max_tokens=length_tokens(length),
        temperature=tone_temperature(tone),
    )


def variation_params(tone: str, length: str, index: int) -> CompletionParams:
    """Parameters for the ``index``-th (0-based) variation of a batch.

    Providers alternate by index parity and each step adds 0.1 to the
    temperature so the drafts diverge.
    """
    provider = OPENAI if index % 2 == 0 else ANTHROPIC
    temperature = min(tone_temperature(tone) + 0.1 * index, MAX_VARIATION_TEMPERATURE)
    return CompletionParams(
        provider,
        flagship_model(provider),
        max_tokens=length_tokens(length),
        temperature=round(temperature, 2),
    )


def personalization_params(preferred_provider: Optional[str] = None) -> CompletionParams:
    provider = preferred_provider if preferred_provider in (OPENAI, ANTHROPIC, GOOGLE) else OPENAI
    return CompletionParams(provider, flagship_model(provider), max_tokens=500, temperature=0.4)
