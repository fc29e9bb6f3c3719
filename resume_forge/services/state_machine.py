"""Per-artifact generation status transitions.

Every transition is a single guarded UPDATE (``WHERE id = ? AND status IN
(...)``) so two requests racing for the same artifact cannot both move it
into flight.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import select, update

from models import db
from models.cover_letter import CoverLetter
from models.resume import Resume
from utils.exceptions import GenerationConflictError, InvalidTransitionError, StaleRecordError


logger = logging.getLogger(__name__)

DRAFT = 'draft'
FAILED = 'failed'


class GenerationStateMachine:
    """Legal status transitions for one artifact model."""

    def __init__(self, model, in_flight: str, success: str, output_column: str):
        self.model = model
        self.in_flight = in_flight
        self.success = success
        self.output = getattr(model, output_column)

    @property
    def startable_states(self):
        return (DRAFT, self.success, FAILED)

    def current_status(self, artifact_id: int) -> Optional[str]:
        return db.session.execute(
            select(self.model.status).where(self.model.id == artifact_id)
        ).scalar_one_or_none()

    def is_in_flight(self, artifact_id: int) -> bool:
        status = self.current_status(artifact_id)
        if status is None:
            raise StaleRecordError(f"{self.model.__name__} {artifact_id} no longer exists")
        return status == self.in_flight

    def begin_generation(self, artifact_id: int, **inputs: Any) -> None:
        """Move a draft or finished artifact into flight.

        ``inputs`` are written in the same statement, so they only land when
        the transition wins.
        """
        self._transition(artifact_id, self.startable_states, values=inputs)

    def begin_rework(self, artifact_id: int) -> None:
        """Move a finished artifact into flight, keeping its output.

        Used by ATS scoring and variation batches, which both read the
        existing output rather than replace it.
        """
        self._transition(artifact_id, (self.success,), self.output.isnot(None))

    def complete(self, artifact_id: int, **values: Any) -> bool:
        """Record the output and the success status in one statement."""
        return self._finish(artifact_id, dict(values, status=self.success))

    def fail(self, artifact_id: int, reason: str = None) -> bool:
        """Mark the artifact failed. Content columns are left untouched."""
        finished = self._finish(artifact_id, {'status': FAILED})
        if finished:
            logger.warning(f"{self.model.__name__} {artifact_id} failed: {reason}")
        return finished

    def _transition(self, artifact_id: int, allowed: Iterable[str], *criteria,
                    values: Dict[str, Any] = None) -> None:
        result = db.session.execute(
            update(self.model)
            .where(self.model.id == artifact_id, self.model.status.in_(tuple(allowed)), *criteria)
            .values(dict(values or {}, status=self.in_flight))
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        if result.rowcount == 1:
            logger.info(f"{self.model.__name__} {artifact_id} -> {self.in_flight}")
            return

        status = self.current_status(artifact_id)
        if status is None:
            raise StaleRecordError(f"{self.model.__name__} {artifact_id} no longer exists")
        if status == self.in_flight:
            raise GenerationConflictError("Generation already in progress")
        raise InvalidTransitionError(
            f"Cannot start generation for {self.model.__name__.lower()} in status '{status}'"
        )

    def _finish(self, artifact_id: int, values: Dict[str, Any]) -> bool:
        result = db.session.execute(
            update(self.model)
            .where(self.model.id == artifact_id, self.model.status == self.in_flight)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount == 1


RESUME_STATES = GenerationStateMachine(
    Resume, in_flight='processing', success='optimized', output_column='optimized_content',
)
COVER_LETTER_STATES = GenerationStateMachine(
    CoverLetter, in_flight='generating', success='generated', output_column='content',
)
