"""Subscription and credit purchase records mirrored from billing settlement events."""

from . import db
from .user import utcnow, _aware


ACTIVE_STATUSES = ('active', 'trialing')


class Subscription(db.Model):
    """Paid plan giving unlimited generations while active."""

    __tablename__ = 'subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    external_id = db.Column(db.String(255), unique=True, nullable=False)  # billing gateway subscription id
    plan_id = db.Column(db.String(100), nullable=False)
    status = db.Column(db.String(30), nullable=False, default='active')
    current_period_end = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def is_active(self, now=None):
        now = now or utcnow()
        period_end = _aware(self.current_period_end)
        return self.status in ACTIVE_STATUSES and period_end is not None and period_end > now

    def to_dict(self):
        return {
            'id': self.id,
            'plan_id': self.plan_id,
            'status': self.status,
            'current_period_end': self.current_period_end.isoformat() if self.current_period_end else None,
            'active': self.is_active(),
        }

    def __repr__(self):
        return f'<Subscription {self.external_id} user={self.user_id} status={self.status}>'


class CreditPurchase(db.Model):
    """Confirmed credit purchase; the unique reference makes settlement idempotent."""

    __tablename__ = 'credit_purchases'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    external_reference = db.Column(db.String(255), unique=True, nullable=False)
    credits = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f'<CreditPurchase {self.external_reference} credits={self.credits}>'
