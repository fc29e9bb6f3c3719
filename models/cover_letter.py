"""Cover letter artifact model."""
import math

from . import db
from .user import utcnow


class CoverLetter(db.Model):
    """Cover letter generated from a resume for one job posting.

    Status lifecycle: draft -> generating -> generated | failed.
    """

    __tablename__ = 'cover_letters'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    resume_id = db.Column(db.Integer, db.ForeignKey('resumes.id'), nullable=False, index=True)

    # Inputs
    company_name = db.Column(db.String(150), nullable=False)
    hiring_manager_name = db.Column(db.String(150), nullable=True)
    target_role = db.Column(db.String(150), nullable=False)
    tone = db.Column(db.String(20), nullable=False, default='professional')
    length = db.Column(db.String(10), nullable=False, default='medium')
    job_description = db.Column(db.Text, nullable=True)

    # Output
    content = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default='draft', index=True)
    provider = db.Column(db.String(20), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def word_count(self):
        return len(self.content.split()) if self.content else 0

    @property
    def estimated_read_time(self):
        words = self.word_count
        if words < 200:
            return '< 1 min'
        minutes = math.ceil(words / 200.0)
        return f"{minutes} min{'s' if minutes > 1 else ''}"

    def to_dict(self):
        """Convert cover letter to dictionary representation."""
        return {
            'id': self.id,
            'type': 'cover_letter',
            'user_id': self.user_id,
            'resume_id': self.resume_id,
            'status': self.status,
            'provider': self.provider,
            'company_name': self.company_name,
            'hiring_manager_name': self.hiring_manager_name,
            'target_role': self.target_role,
            'tone': self.tone,
            'length': self.length,
            'job_description': self.job_description,
            'content': self.content,
            'word_count': self.word_count,
            'estimated_read_time': self.estimated_read_time,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<CoverLetter {self.id} resume={self.resume_id} status={self.status}>'
