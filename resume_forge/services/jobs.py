"""Generation work items and the per-use-case job handlers."""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from models import db
from models.cover_letter import CoverLetter
from models.resume import Resume
from models.user import utcnow
from resume_forge.services.credit_ledger import CreditLedger
from resume_forge.services.generation import (
    CoverLetterGenerator,
    GenerationContext,
    GenerationResult,
    ResumeOptimizer,
)
from resume_forge.services.prompts import CoverLetterInputs, ResumeInputs
from resume_forge.services.state_machine import COVER_LETTER_STATES, RESUME_STATES
from utils.exceptions import ProviderError, StaleRecordError


logger = logging.getLogger(__name__)


class UseCase:
    OPTIMIZE = 'optimize'
    ATS_SCORE = 'ats_score'
    GENERATE_COVER_LETTER = 'generate_cover_letter'
    GENERATE_VARIATIONS = 'generate_variations'

    ALL = (OPTIMIZE, ATS_SCORE, GENERATE_COVER_LETTER, GENERATE_VARIATIONS)


@dataclass(frozen=True)
class GenerationRequest:
    """One queued generation, consumed once by the job runner."""

    artifact_id: int
    user_id: int
    use_case: str
    context: GenerationContext
    count: int = 1
    reserved_credits: int = 0
    # Unlimited entitlement held when the request was accepted
    entitled: bool = False
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class JobOutput:
    values: Dict[str, Any]
    provider: Optional[str]


def resume_inputs(resume: Resume) -> ResumeInputs:
    return ResumeInputs(
        content=resume.original_content,
        job_description=resume.job_description,
        target_role=resume.target_role,
        industry=resume.industry,
        experience_level=resume.experience_level,
    )


def cover_letter_inputs(cover_letter: CoverLetter) -> CoverLetterInputs:
    resume = cover_letter.resume
    return CoverLetterInputs(
        resume_content=resume.optimized_content or resume.original_content,
        job_description=cover_letter.job_description or resume.job_description,
        company_name=cover_letter.company_name,
        target_role=cover_letter.target_role,
        hiring_manager_name=cover_letter.hiring_manager_name,
        tone=cover_letter.tone,
        length=cover_letter.length,
    )


class JobHandler:
    """Loads the artifact, runs one generation and prices the result."""

    artifact_type = None
    states = None
    attempts = 3
    batch = False

    def load(self, request: GenerationRequest):
        artifact = db.session.get(self.states.model, request.artifact_id)
        if artifact is None:
            raise StaleRecordError(f"{self.artifact_type} {request.artifact_id} no longer exists")
        return artifact

    def generate(self, artifact, request: GenerationRequest) -> JobOutput:
        raise NotImplementedError

    def charge(self, ledger: CreditLedger, request: GenerationRequest, output: JobOutput) -> int:
        return ledger.charge_one_generation(
            request.user_id,
            request.use_case,
            provider=output.provider,
            artifact_id=request.artifact_id,
            reserved=request.reserved_credits,
            entitled=request.entitled,
        )


class OptimizeResumeJob(JobHandler):
    artifact_type = 'resume'
    states = RESUME_STATES

    def __init__(self, optimizer: ResumeOptimizer):
        self.optimizer = optimizer

    def generate(self, resume, request):
        result = self.optimizer.optimize(resume_inputs(resume), request.context)
        values = {
            'optimized_content': result.text,
            'provider': result.provider,
            'ats_score': None,
        }

        try:
            keywords = self.optimizer.extract_keywords(resume.job_description, request.context)
            values['keywords'] = ', '.join(keywords)
        except ProviderError as e:
            logger.warning(f"Keyword extraction failed for resume {resume.id}, keeping previous keywords: {e}")

        return JobOutput(values=values, provider=result.provider)


class AtsScoreJob(JobHandler):
    artifact_type = 'resume'
    states = RESUME_STATES

    def __init__(self, optimizer: ResumeOptimizer):
        self.optimizer = optimizer

    def generate(self, resume, request):
        analysis = self.optimizer.ats_score(resume.optimized_content, resume.job_description, request.context)
        logger.info(f"Resume {resume.id} ATS score: {analysis.score}")
        return JobOutput(values={'ats_score': analysis.score}, provider=analysis.provider)

    def charge(self, ledger, request, output):
        # Scoring is free
        return 0


class CoverLetterJob(JobHandler):
    artifact_type = 'cover_letter'
    states = COVER_LETTER_STATES

    def __init__(self, generator: CoverLetterGenerator):
        self.generator = generator

    def generate(self, cover_letter, request):
        result = self.generator.generate(cover_letter_inputs(cover_letter), request.context)
        return JobOutput(values={'content': result.text, 'provider': result.provider}, provider=result.provider)


class VariationsJob(JobHandler):
    """Independent drafts derived from one generated cover letter.

    The source letter is held in flight for the whole batch; each item is
    generated and persisted on its own so one failure does not abort the
    rest.
    """

    artifact_type = 'cover_letter'
    states = COVER_LETTER_STATES
    attempts = 2
    batch = True

    def __init__(self, generator: CoverLetterGenerator):
        self.generator = generator

    def generate_item(self, source: CoverLetter, request: GenerationRequest, index: int) -> GenerationResult:
        return self.generator.generate_variation(cover_letter_inputs(source), index, request.context)

    def persist_item(self, source: CoverLetter, result: GenerationResult) -> CoverLetter:
        variation = CoverLetter(
            user_id=source.user_id,
            resume_id=source.resume_id,
            company_name=source.company_name,
            hiring_manager_name=source.hiring_manager_name,
            target_role=source.target_role,
            tone=source.tone,
            length=source.length,
            job_description=source.job_description,
            content=result.text,
            provider=result.provider,
            status=COVER_LETTER_STATES.success,
        )
        db.session.add(variation)
        db.session.commit()
        return variation

    def charge(self, ledger, request, output):
        return ledger.charge_batch(
            request.user_id,
            request.count,
            artifact_id=request.artifact_id,
            reserved=request.reserved_credits,
            entitled=request.entitled,
        )


def default_handlers(client_factory=None) -> Dict[str, JobHandler]:
    optimizer = ResumeOptimizer(client_factory)
    generator = CoverLetterGenerator(client_factory)
    return {
        UseCase.OPTIMIZE: OptimizeResumeJob(optimizer),
        UseCase.ATS_SCORE: AtsScoreJob(optimizer),
        UseCase.GENERATE_COVER_LETTER: CoverLetterJob(generator),
        UseCase.GENERATE_VARIATIONS: VariationsJob(generator),
    }
