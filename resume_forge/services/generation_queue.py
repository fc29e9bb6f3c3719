"""Synchronous entry point for requesting a generation.

``request_generation`` validates the inputs, reserves credits, moves the
artifact into flight and hands the work to the job runner. It returns as
soon as the transition is committed; the result arrives through the
notification sink and the status query.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from models.cover_letter import CoverLetter
from models.resume import Resume
from models.user import User
from resume_forge.services.credit_ledger import MAX_VARIATIONS, CreditLedger, batch_cost
from resume_forge.services.generation import CoverLetterGenerator, GenerationContext, ResumeOptimizer
from resume_forge.services.job_runner import JobRunner
from resume_forge.services.jobs import GenerationRequest, UseCase, cover_letter_inputs, resume_inputs
from resume_forge.services.state_machine import COVER_LETTER_STATES, RESUME_STATES
from utils.exceptions import GenerationConflictError, InsufficientCreditsError, InvalidRequestError


logger = logging.getLogger(__name__)

ACCEPTED = 'accepted'
ALREADY_IN_FLIGHT = 'already_in_flight'
INSUFFICIENT_CREDITS = 'insufficient_credits'


@dataclass(frozen=True)
class EnqueueResult:
    status: str
    request: Optional[GenerationRequest] = None
    message: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED


def clamp_variation_count(count: Any) -> int:
    try:
        count = int(count)
    except (TypeError, ValueError):
        raise InvalidRequestError("count must be an integer")
    return max(1, min(count, MAX_VARIATIONS))


def context_for(user: User) -> GenerationContext:
    return GenerationContext(
        user_id=user.id,
        country=user.country_code,
        preferred_provider=user.preferred_provider,
    )


def _validate(artifact, use_case: str, updates: Dict[str, Any]) -> None:
    if use_case == UseCase.OPTIMIZE:
        ResumeOptimizer.validate(resume_inputs(artifact))
    elif use_case == UseCase.ATS_SCORE:
        ResumeOptimizer.validate_scoring(artifact.optimized_content, artifact.job_description)
    elif use_case in (UseCase.GENERATE_COVER_LETTER, UseCase.GENERATE_VARIATIONS):
        CoverLetterGenerator.validate(replace(cover_letter_inputs(artifact), **updates))
    else:
        raise InvalidRequestError(f"Unknown use case: {use_case}")


def _expected_model(use_case: str):
    return Resume if use_case in (UseCase.OPTIMIZE, UseCase.ATS_SCORE) else CoverLetter


def request_generation(user: User, artifact, use_case: str, runner: JobRunner,
                       ledger: CreditLedger, params: Dict[str, Any] = None) -> EnqueueResult:
    """Accept or reject one generation request for ``artifact``.

    Raises InvalidRequestError for bad input, InvalidTransitionError when the
    artifact's status does not allow the use case and StaleRecordError when it
    vanished. Conflicts and missing credits are reported in the result.
    """
    params = params or {}
    if not isinstance(artifact, _expected_model(use_case)):
        raise InvalidRequestError(f"{use_case} does not apply to this artifact")

    updates = params.get('updates') or {}
    if updates and use_case != UseCase.GENERATE_COVER_LETTER:
        raise InvalidRequestError(f"{use_case} does not take input changes")
    _validate(artifact, use_case, updates)

    count = 1
    if use_case == UseCase.GENERATE_VARIATIONS:
        count = clamp_variation_count(params.get('count', 3))
        cost = batch_cost(count)
    elif use_case == UseCase.ATS_SCORE:
        cost = 0
    else:
        cost = 1

    reserved = 0
    if cost:
        try:
            reserved = ledger.reserve(user.id, cost)
        except InsufficientCreditsError as e:
            logger.info(f"Rejected {use_case} for user {user.id}: insufficient credits")
            return EnqueueResult(INSUFFICIENT_CREDITS, message=str(e))

    states = RESUME_STATES if isinstance(artifact, Resume) else COVER_LETTER_STATES
    try:
        if use_case in (UseCase.ATS_SCORE, UseCase.GENERATE_VARIATIONS):
            states.begin_rework(artifact.id)
        else:
            states.begin_generation(artifact.id, **updates)
    except GenerationConflictError as e:
        ledger.release(user.id, reserved)
        logger.info(f"Rejected {use_case} for artifact {artifact.id}: already in flight")
        return EnqueueResult(ALREADY_IN_FLIGHT, message=str(e))
    except Exception:
        ledger.release(user.id, reserved)
        raise

    request = GenerationRequest(
        artifact_id=artifact.id,
        user_id=user.id,
        use_case=use_case,
        context=context_for(user),
        count=count,
        reserved_credits=reserved,
        # reserve holds nothing only for users with an unlimited entitlement
        entitled=bool(cost) and not reserved,
    )
    try:
        runner.submit(request)
    except Exception:
        logger.exception(f"Could not queue {use_case} for artifact {artifact.id}")
        states.fail(artifact.id, reason="queue unavailable")
        ledger.release(user.id, reserved)
        raise

    return EnqueueResult(ACCEPTED, request=request)
