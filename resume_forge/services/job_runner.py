"""Runs queued generation requests on a bounded worker pool."""
import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional, TypeVar

from models import db
from resume_forge.services.credit_ledger import CreditLedger
from resume_forge.services.jobs import GenerationRequest, JobHandler, default_handlers
from resume_forge.services.notifications import NotificationSink, NullNotificationSink
from resume_forge.services.retry import RetryPolicy
from utils.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    ProviderError,
    ProviderTransientError,
    StaleRecordError,
)


logger = logging.getLogger(__name__)

T = TypeVar('T')

# Raised straight through: retrying cannot change the outcome
NON_RETRYABLE = (StaleRecordError, InvalidRequestError, ConfigurationError)

# Recently settled request ids kept to absorb redelivery
SETTLED_HISTORY = 1024


class JobRunner:
    """Executes generation requests under the state-machine guard.

    Each request runs in its own application context. Transient provider
    errors are retried with backoff; exhausting the budget marks the artifact
    failed. Credits reserved at enqueue are settled or released exactly once
    per request.
    """

    def __init__(self, app, executor=None, notifier: NotificationSink = None, ledger: CreditLedger = None,
                 client_factory=None, retry_policy: RetryPolicy = None,
                 handlers: Dict[str, JobHandler] = None, max_workers: int = 4,
                 settled_history: int = SETTLED_HISTORY):
        self.app = app
        self.executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='generation')
        self.notifier = notifier or NullNotificationSink()
        self.ledger = ledger or CreditLedger()
        self.retry_policy = retry_policy or RetryPolicy()
        self.handlers = handlers or default_handlers(client_factory)
        self.settled_history = settled_history
        self._settled = OrderedDict()
        self._lock = threading.Lock()

    def submit(self, request: GenerationRequest) -> Future:
        if request.use_case not in self.handlers:
            raise InvalidRequestError(f"Unknown use case: {request.use_case}")

        logger.info(
            f"Queued {request.use_case} for artifact {request.artifact_id} "
            f"(request {request.request_id}, user {request.user_id})"
        )
        future = self.executor.submit(self.run, request)
        future.add_done_callback(self._log_outcome)
        return future

    def run(self, request: GenerationRequest) -> None:
        with self.app.app_context():
            try:
                self.execute(request)
            finally:
                db.session.remove()

    def execute(self, request: GenerationRequest) -> None:
        handler = self.handlers[request.use_case]
        label = f"{request.use_case} {handler.artifact_type} {request.artifact_id}"

        try:
            in_flight = handler.states.is_in_flight(request.artifact_id)
        except StaleRecordError:
            logger.info(f"Discarding {label}: record no longer exists")
            self._release(request)
            return

        if not in_flight:
            logger.info(f"Skipping {label}: artifact is no longer in flight")
            self._release(request)
            return

        if handler.batch:
            self._run_batch(handler, request, label)
        else:
            self._run_single(handler, request, label)

    def call_with_retry(self, fn: Callable[[], T], label: str, max_attempts: int) -> T:
        """Call ``fn`` until it succeeds or the attempt budget is spent.

        Permanent provider errors and non-retryable errors propagate at once;
        after the last attempt the last error is raised.
        """
        policy = self.retry_policy.with_attempts(max_attempts)
        last_error = None

        for attempt in range(1, max_attempts + 1):
            try:
                result = fn()
                logger.info(f"{label} succeeded on attempt {attempt}/{max_attempts}")
                return result
            except NON_RETRYABLE:
                raise
            except ProviderTransientError as e:
                last_error = e
                logger.warning(f"{label} attempt {attempt}/{max_attempts} failed: {e}")
            except ProviderError:
                raise
            except Exception as e:
                last_error = e
                logger.exception(f"{label} attempt {attempt}/{max_attempts} hit an unexpected error")

            if attempt < max_attempts:
                policy.wait(attempt)

        raise last_error

    def _run_single(self, handler: JobHandler, request: GenerationRequest, label: str) -> None:
        try:
            output = self.call_with_retry(
                lambda: handler.generate(handler.load(request), request), label, handler.attempts
            )
        except StaleRecordError:
            logger.info(f"Discarding {label}: record vanished mid-job")
            self._release(request)
            return
        except (InvalidRequestError, ConfigurationError, ProviderError) as e:
            self._fail(handler, request, e)
            return
        except Exception as e:
            self._fail(handler, request, e)
            raise

        try:
            completed = handler.states.complete(request.artifact_id, **output.values)
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Could not store result of {label}")
            self._fail(handler, request, e)
            raise

        if not completed:
            logger.info(f"Discarding result of {label}: artifact moved on")
            self._release(request)
            return

        self._settle(request, lambda: handler.charge(self.ledger, request, output))
        logger.info(f"Completed {label} via {output.provider}")
        self._notify(handler, request.artifact_id)

    def _run_batch(self, handler, request: GenerationRequest, label: str) -> None:
        created = []
        unexpected = None
        for index in range(request.count):
            item_label = f"{label} variation {index + 1}/{request.count}"
            try:
                source = handler.load(request)
                result = self.call_with_retry(
                    lambda: handler.generate_item(source, request, index), item_label, handler.attempts
                )
                if not handler.states.is_in_flight(request.artifact_id):
                    logger.info(f"Stopping {label}: source moved on")
                    break
            except StaleRecordError:
                logger.info(f"Stopping {label}: source vanished")
                break
            except (InvalidRequestError, ConfigurationError, ProviderError) as e:
                logger.warning(f"{item_label} failed: {e}")
                continue
            except Exception as e:
                logger.error(f"{item_label} failed unexpectedly: {e}")
                unexpected = unexpected or e
                continue

            try:
                variation = handler.persist_item(source, result)
            except Exception as e:
                db.session.rollback()
                logger.exception(f"Could not store {item_label}")
                unexpected = unexpected or e
                break
            created.append(variation.id)

        try:
            handler.states.complete(request.artifact_id)
        except Exception as e:
            db.session.rollback()
            logger.exception(f"Could not return source of {label} to {handler.states.success}")
            unexpected = unexpected or e
            handler.states.fail(request.artifact_id, reason=str(e))
        finally:
            if created:
                self._settle(request, lambda: handler.charge(self.ledger, request, None))
            else:
                self._release(request)

        logger.info(f"Completed {label}: {len(created)} of {request.count} variation(s) persisted")
        for variation_id in created:
            self._notify(handler, variation_id)
        self._notify(handler, request.artifact_id)

        if unexpected is not None:
            raise unexpected

    def _fail(self, handler: JobHandler, request: GenerationRequest, error: Exception) -> None:
        try:
            failed = handler.states.fail(request.artifact_id, reason=str(error))
        finally:
            self._release(request)
        if failed:
            self._notify(handler, request.artifact_id)

    def _release(self, request: GenerationRequest) -> None:
        if request.reserved_credits:
            self._settle(request, lambda: self.ledger.release(request.user_id, request.reserved_credits))

    def _settle(self, request: GenerationRequest, action: Callable[[], Optional[int]]) -> None:
        with self._lock:
            if request.request_id in self._settled:
                logger.warning(f"Request {request.request_id} already settled")
                return
            self._settled[request.request_id] = True
            while len(self._settled) > self.settled_history:
                self._settled.popitem(last=False)

        try:
            action()
        except StaleRecordError:
            logger.info(f"User {request.user_id} vanished before settlement of {request.request_id}")

    def _notify(self, handler: JobHandler, artifact_id: int) -> None:
        artifact = db.session.get(handler.states.model, artifact_id)
        if artifact is None:
            return
        self.notifier.notify(handler.artifact_type, artifact_id, artifact.to_dict())

    @staticmethod
    def _log_outcome(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Generation job raised {type(error).__name__}: {error}", exc_info=error)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
