"""Generation services: prompt building plus provider calls per use case."""
import logging
import random
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from resume_forge.clients import CompletionRequest, ProviderClient, get_provider_client
from resume_forge.services import generation_policy as policy
from resume_forge.services import prompts
from resume_forge.services.prompts import CoverLetterInputs, ResumeInputs
from utils.exceptions import InvalidRequestError


logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 100
MIN_JOB_DESCRIPTION_LENGTH = 50
MIN_NAME_LENGTH = 2

_EXPLICIT_SCORE = re.compile(r'score\s*(?:\(0\s*-\s*100\))?\s*[:=]\s*(\d{1,3})', re.IGNORECASE)
_LOOSE_SCORE = re.compile(r'(?:score|ats)\D{0,40}?(\d{1,3})', re.IGNORECASE)

# Fallback ranges when the analysis carries no number
_SENTIMENT_RANGES = (
    ('excellent', (85, 95)),
    ('good', (70, 84)),
    ('fair', (50, 69)),
)
_DEFAULT_RANGE = (30, 49)

ClientFactory = Callable[[str], ProviderClient]


@dataclass(frozen=True)
class GenerationContext:
    """Per-request facts about the requesting user, passed in explicitly."""

    user_id: int
    country: Optional[str] = None
    preferred_provider: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    text: str
    provider: str
    model: str


@dataclass(frozen=True)
class AtsAnalysis:
    score: int
    analysis: str
    provider: str


def extract_score(analysis: str, rng: random.Random = None) -> int:
    """Pull a 0-100 score out of a free-text ATS analysis."""
    match = _EXPLICIT_SCORE.search(analysis) or _LOOSE_SCORE.search(analysis)
    if match:
        return min(int(match.group(1)), 100)

    rng = rng or random
    lowered = analysis.lower()
    for keyword, (low, high) in _SENTIMENT_RANGES:
        if keyword in lowered:
            return rng.randint(low, high)
    return rng.randint(*_DEFAULT_RANGE)


def _require_length(value: Optional[str], minimum: int, label: str) -> None:
    if not value or len(value.strip()) < minimum:
        raise InvalidRequestError(f"{label} must be at least {minimum} characters")


class GenerationService:
    """Shared plumbing: resolve a client and make one completion call."""

    def __init__(self, client_factory: ClientFactory = None):
        self.client_factory = client_factory or get_provider_client

    def _complete(self, params: policy.CompletionParams, messages, context: GenerationContext = None) -> GenerationResult:
        client = self.client_factory(params.provider)
        request = CompletionRequest(
            model=params.model,
            messages=messages,
            max_tokens=params.max_tokens,
            temperature=params.temperature,
            user=str(context.user_id) if context else None,
        )
        text = client.complete(request)
        return GenerationResult(text=text, provider=params.provider, model=params.model)


class ResumeOptimizer(GenerationService):
    """Resume optimization, keyword extraction and ATS scoring."""

    @staticmethod
    def validate(inputs: ResumeInputs) -> None:
        _require_length(inputs.content, MIN_CONTENT_LENGTH, "Resume content")
        _require_length(inputs.job_description, MIN_JOB_DESCRIPTION_LENGTH, "Job description")
        _require_length(inputs.target_role, MIN_NAME_LENGTH, "Target role")

    @staticmethod
    def validate_scoring(resume_content: Optional[str], job_description: Optional[str]) -> None:
        if not resume_content or not resume_content.strip():
            raise InvalidRequestError("Resume must be optimized before it can be scored")
        _require_length(job_description, MIN_JOB_DESCRIPTION_LENGTH, "Job description")

    def optimize(self, inputs: ResumeInputs, context: GenerationContext) -> GenerationResult:
        self.validate(inputs)
        messages = prompts.build_optimization_messages(inputs, context.country)
        return self._complete(policy.optimization_params(), messages, context)

    def extract_keywords(self, job_description: str, context: GenerationContext = None) -> List[str]:
        _require_length(job_description, MIN_JOB_DESCRIPTION_LENGTH, "Job description")
        result = self._complete(policy.keyword_params(), prompts.build_keyword_messages(job_description), context)

        keywords = []
        for item in re.split(r'[,\n]', result.text):
            # Strip list markers like "1." or "-"
            keyword = re.sub(r'^\s*(?:\d+[.)]|[-*•])\s*', '', item).strip()
            if keyword and keyword.lower() not in (k.lower() for k in keywords):
                keywords.append(keyword)
        return keywords[:20]

    def ats_score(self, resume_content: str, job_description: str,
                  context: GenerationContext = None, rng: random.Random = None) -> AtsAnalysis:
        self.validate_scoring(resume_content, job_description)
        messages = prompts.build_ats_messages(resume_content, job_description)
        result = self._complete(policy.ats_params(), messages, context)
        return AtsAnalysis(score=extract_score(result.text, rng), analysis=result.text, provider=result.provider)


class CoverLetterGenerator(GenerationService):
    """Cover letter drafts, variations and company personalization."""

    @staticmethod
    def validate(inputs: CoverLetterInputs) -> None:
        _require_length(inputs.resume_content, MIN_CONTENT_LENGTH, "Resume content")
        _require_length(inputs.job_description, MIN_JOB_DESCRIPTION_LENGTH, "Job description")
        _require_length(inputs.company_name, MIN_NAME_LENGTH, "Company name")
        _require_length(inputs.target_role, MIN_NAME_LENGTH, "Target role")
        if inputs.tone not in policy.TONES:
            raise InvalidRequestError(f"Tone must be one of: {', '.join(policy.TONES)}")
        if inputs.length not in policy.LENGTHS:
            raise InvalidRequestError(f"Length must be one of: {', '.join(policy.LENGTHS)}")

    def generate(self, inputs: CoverLetterInputs, context: GenerationContext) -> GenerationResult:
        self.validate(inputs)
        messages = prompts.build_cover_letter_messages(inputs, context.country)
        return self._complete(policy.cover_letter_params(inputs.tone, inputs.length), messages, context)

    def generate_variation(self, inputs: CoverLetterInputs, index: int,
                           context: GenerationContext) -> GenerationResult:
        """Generate the ``index``-th (0-based) variation of a batch."""
        self.validate(inputs)
        messages = prompts.build_variation_messages(inputs, index + 1, context.country)
        params = policy.variation_params(inputs.tone, inputs.length, index)
        return self._complete(params, messages, context)

    def personalize_for_company(self, company_name: str, target_role: str, job_description: str,
                                context: GenerationContext) -> str:
        _require_length(company_name, MIN_NAME_LENGTH, "Company name")
        _require_length(target_role, MIN_NAME_LENGTH, "Target role")
        _require_length(job_description, MIN_JOB_DESCRIPTION_LENGTH, "Job description")

        messages = prompts.build_personalization_messages(company_name, target_role, job_description)
        params = policy.personalization_params(context.preferred_provider)
        return self._complete(params, messages, context).text
