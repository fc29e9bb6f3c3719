"""Per-user credit balance.

Balances change only through single guarded UPDATE statements, so
concurrent requests for the same user can never drive the balance below
zero. Credits are reserved when a job is accepted and settled (charged) or
released when it ends; ``credits_remaining - credits_reserved`` is what a
new request may still claim.
"""
import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy import update

from models import db
from models.subscription import CreditPurchase
from models.user import UsageLog, User
from utils.exceptions import InsufficientCreditsError, InvalidRequestError, StaleRecordError


logger = logging.getLogger(__name__)

MAX_VARIATIONS = 5
VARIATION_COST_RATE = 0.5


def batch_cost(count: int) -> int:
    return max(math.ceil(count * VARIATION_COST_RATE), 1)


class CreditLedger:
    """Credit checks, reservations and charges for generation jobs."""

    def _load_user(self, user_id: int) -> User:
        user = db.session.get(User, user_id)
        if user is None:
            raise StaleRecordError(f"User {user_id} no longer exists")
        return user

    @staticmethod
    def has_unlimited_entitlement(user: User, now: datetime = None) -> bool:
        return user.has_active_subscription(now) or user.trial_active(now)

    def can_generate(self, user: User, now: datetime = None) -> bool:
        return user.available_credits > 0 or self.has_unlimited_entitlement(user, now)

    def reserve(self, user_id: int, amount: int) -> int:
        """Hold ``amount`` credits for an accepted job.

        Returns the number of credits actually held: zero for users with an
        unlimited entitlement. Raises InsufficientCreditsError when the
        available balance cannot cover the amount.
        """
        user = self._load_user(user_id)
        if self.has_unlimited_entitlement(user):
            return 0

        result = db.session.execute(
            update(User)
            .where(User.id == user_id, User.credits_remaining - User.credits_reserved >= amount)
            .values(credits_reserved=User.credits_reserved + amount)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        if result.rowcount != 1:
            raise InsufficientCreditsError("Insufficient credits. Please purchase more credits or subscribe.")

        logger.info(f"Reserved {amount} credit(s) for user {user_id}")
        return amount

    def release(self, user_id: int, amount: int) -> None:
        if amount <= 0:
            return
        result = db.session.execute(
            update(User)
            .where(User.id == user_id, User.credits_reserved >= amount)
            .values(credits_reserved=User.credits_reserved - amount)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        if result.rowcount == 1:
            logger.info(f"Released {amount} reserved credit(s) for user {user_id}")

    def charge_one_generation(self, user_id: int, use_case: str, provider: str = None,
                              artifact_id: int = None, reserved: int = 0,
                              entitled: bool = False) -> int:
        """Charge a single successful generation; returns the credits taken."""
        return self._charge(user_id, 1, use_case, provider, artifact_id, reserved, entitled)

    def charge_batch(self, user_id: int, count: int, provider: str = None,
                     artifact_id: int = None, reserved: int = 0,
                     entitled: bool = False) -> int:
        """Charge a completed variation batch of ``count`` requested items."""
        return self._charge(user_id, batch_cost(count), 'generate_variations', provider, artifact_id, reserved,
                            entitled)

    def _charge(self, user_id: int, cost: int, use_case: str, provider: Optional[str],
                artifact_id: Optional[int], reserved: int, entitled: bool = False) -> int:
        """Settle one job.

        Jobs accepted under an unlimited entitlement stay free even if it
        lapsed meanwhile; they hold no reservation to charge against.
        """
        user = self._load_user(user_id)

        if entitled or self.has_unlimited_entitlement(user):
            self.release(user_id, reserved)
            db.session.execute(
                update(User)
                .where(User.id == user_id)
                .values(total_generations=User.total_generations + 1)
                .execution_options(synchronize_session=False)
            )
            self._log_usage(user_id, use_case, provider, artifact_id, 0)
            return 0

        held = min(reserved, cost)
        result = db.session.execute(
            update(User)
            .where(
                User.id == user_id,
                User.credits_remaining >= cost,
                User.credits_reserved >= held,
            )
            .values(
                credits_remaining=User.credits_remaining - cost,
                credits_reserved=User.credits_reserved - held,
                total_generations=User.total_generations + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.session.rollback()
            logger.warning(f"User {user_id} cannot cover {cost} credit(s) for {use_case}; not charged")
            self.release(user_id, reserved)
            return 0

        self._log_usage(user_id, use_case, provider, artifact_id, cost)
        if reserved > held:
            self.release(user_id, reserved - held)
        logger.info(f"Charged user {user_id} {cost} credit(s) for {use_case}")
        return cost

    def _log_usage(self, user_id: int, use_case: str, provider: Optional[str],
                   artifact_id: Optional[int], credits: int) -> None:
        db.session.add(UsageLog(
            user_id=user_id,
            use_case=use_case,
            provider=provider,
            artifact_id=artifact_id,
            credits_charged=credits,
        ))
        db.session.commit()

    def add_credits(self, user_id: int, amount: int, external_reference: str = None) -> bool:
        """Credit a confirmed purchase.

        With an ``external_reference`` the purchase is applied at most once;
        returns False when that reference was already settled.
        """
        if amount <= 0:
            raise InvalidRequestError("Credit amount must be positive")
        self._load_user(user_id)

        if external_reference:
            exists = CreditPurchase.query.filter_by(external_reference=external_reference).first()
            if exists:
                logger.info(f"Credit purchase {external_reference} already applied")
                return False
            db.session.add(CreditPurchase(
                user_id=user_id, external_reference=external_reference, credits=amount,
            ))

        db.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(credits_remaining=User.credits_remaining + amount)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        logger.info(f"Added {amount} credit(s) to user {user_id}")
        return True
