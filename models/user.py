"""User model with credit balance and subscription entitlements."""

from datetime import datetime, timezone
from . import db


def utcnow():
    return datetime.now(timezone.utc)


def _aware(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(db.Model):
    """Account that owns resumes and cover letters and is billed per generation."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(50), nullable=True)
    last_name = db.Column(db.String(50), nullable=True)
    country_code = db.Column(db.String(2), nullable=True)
    preferred_provider = db.Column(db.String(20), nullable=True)

    # Credit balance, only mutated through the credit ledger
    credits_remaining = db.Column(db.Integer, nullable=False, default=3)
    credits_reserved = db.Column(db.Integer, nullable=False, default=0)
    total_generations = db.Column(db.Integer, nullable=False, default=0)

    trial_ends_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        db.CheckConstraint('credits_remaining >= 0', name='ck_users_credits_non_negative'),
        db.CheckConstraint('credits_reserved >= 0', name='ck_users_reserved_non_negative'),
    )

    # Relationships
    resumes = db.relationship('Resume', backref='user', lazy=True, cascade='all, delete-orphan')
    cover_letters = db.relationship('CoverLetter', backref='user', lazy=True, cascade='all, delete-orphan')
    subscriptions = db.relationship('Subscription', backref='user', lazy=True, cascade='all, delete-orphan')
    usage_logs = db.relationship('UsageLog', backref='user', lazy=True, cascade='all, delete-orphan')
    credit_purchases = db.relationship('CreditPurchase', backref='user', lazy=True, cascade='all, delete-orphan')

    @property
    def available_credits(self):
        return max(self.credits_remaining - self.credits_reserved, 0)

    def trial_active(self, now=None):
        now = now or utcnow()
        trial_end = _aware(self.trial_ends_at)
        return trial_end is not None and trial_end > now

    def has_active_subscription(self, now=None):
        now = now or utcnow()
        return any(subscription.is_active(now) for subscription in self.subscriptions)

    def to_dict(self):
        """Convert user to dictionary."""
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'country_code': self.country_code,
            'credits_remaining': self.credits_remaining,
            'credits_reserved': self.credits_reserved,
            'total_generations': self.total_generations,
            'trial_ends_at': self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User {self.id} credits={self.credits_remaining}>'


class UsageLog(db.Model):
    """Track charged generations for billing."""

    __tablename__ = 'usage_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    use_case = db.Column(db.String(50), nullable=False)  # optimize, generate_cover_letter, ...
    provider = db.Column(db.String(20), nullable=True)
    artifact_id = db.Column(db.Integer, nullable=True)
    credits_charged = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        """Convert usage log to dictionary."""
        return {
            'id': self.id,
            'use_case': self.use_case,
            'provider': self.provider,
            'artifact_id': self.artifact_id,
            'credits_charged': self.credits_charged,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
