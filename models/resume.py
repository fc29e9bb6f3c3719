"""Resume artifact model."""
from . import db
from .user import utcnow


class Resume(db.Model):
    """Resume submitted for optimization and ATS scoring.

    Status lifecycle: draft -> processing -> optimized | failed. The status
    column is only written through the generation state machine.
    """

    __tablename__ = 'resumes'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Inputs
    original_content = db.Column(db.Text, nullable=False)
    job_description = db.Column(db.Text, nullable=True)
    target_role = db.Column(db.String(150), nullable=False)
    industry = db.Column(db.String(100), nullable=True)
    experience_level = db.Column(db.String(30), nullable=True)

    # Outputs
    optimized_content = db.Column(db.Text, nullable=True)
    keywords = db.Column(db.Text, nullable=True)  # comma-separated
    ats_score = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(20), nullable=False, default='draft', index=True)
    provider = db.Column(db.String(20), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint('ats_score IS NULL OR (ats_score >= 0 AND ats_score <= 100)',
                           name='ck_resumes_ats_score_range'),
    )

    cover_letters = db.relationship('CoverLetter', backref='resume', lazy=True, cascade='all, delete-orphan')

    @property
    def keywords_array(self):
        if not self.keywords:
            return []
        return [keyword.strip() for keyword in self.keywords.split(',') if keyword.strip()]

    @property
    def ats_score_color(self):
        if self.ats_score is None:
            return 'gray'
        if self.ats_score <= 40:
            return 'red'
        if self.ats_score <= 70:
            return 'yellow'
        return 'green'

    def to_dict(self):
        """Convert resume to dictionary representation."""
        return {
            'id': self.id,
            'type': 'resume',
            'user_id': self.user_id,
            'status': self.status,
            'provider': self.provider,
            'target_role': self.target_role,
            'industry': self.industry,
            'experience_level': self.experience_level,
            'original_content': self.original_content,
            'job_description': self.job_description,
            'optimized_content': self.optimized_content,
            'keywords': self.keywords_array,
            'ats_score': self.ats_score,
            'ats_score_color': self.ats_score_color,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_dict_minimal(self):
        """Lightweight representation for list views."""
        return {
            'id': self.id,
            'status': self.status,
            'target_role': self.target_role,
            'ats_score': self.ats_score,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Resume {self.id} user={self.user_id} status={self.status}>'
