"""Resume API - create resumes and queue optimization and ATS scoring."""
from flask import Blueprint, current_app, g, jsonify, request
import logging

from models import db
from models.cover_letter import CoverLetter
from models.resume import Resume
from resume_forge.api import enqueue, enqueue_response
from resume_forge.services.generation import CoverLetterGenerator, ResumeOptimizer
from resume_forge.services.generation_queue import context_for
from resume_forge.services.jobs import UseCase, cover_letter_inputs
from utils.auth import require_user
from utils.exceptions import InsufficientCreditsError

bp = Blueprint('resumes', __name__)
logger = logging.getLogger(__name__)


def _get_owned_resume(resume_id):
    return Resume.query.filter_by(id=resume_id, user_id=g.current_user.id).first()


@bp.route('', methods=['POST'])
@require_user
def create_resume():
    """Create a draft resume from plain text.

    Required: content, target_role
    Optional: job_description, industry, experience_level

    Returns:
        201: Resume created
        400: Invalid request
    """
    data = request.get_json(silent=True) or {}

    content = (data.get('content') or '').strip()
    target_role = (data.get('target_role') or '').strip()
    if not content:
        return jsonify({'error': 'Missing required field: content'}), 400
    if not target_role:
        return jsonify({'error': 'Missing required field: target_role'}), 400

    resume = Resume(
        user_id=g.current_user.id,
        original_content=content,
        target_role=target_role,
        job_description=data.get('job_description'),
        industry=data.get('industry'),
        experience_level=data.get('experience_level'),
    )
    db.session.add(resume)
    db.session.commit()

    logger.info(f"Resume {resume.id} created for user {g.current_user.id}")
    return jsonify(resume.to_dict()), 201


@bp.route('', methods=['GET'])
@require_user
def list_resumes():
    """List the user's resumes, newest first."""
    resumes = (
        Resume.query.filter_by(user_id=g.current_user.id)
        .order_by(Resume.created_at.desc(), Resume.id.desc())
        .all()
    )
    return jsonify({
        'resumes': [resume.to_dict_minimal() for resume in resumes],
        'count': len(resumes),
    })


@bp.route('/<int:resume_id>', methods=['GET'])
@require_user
def get_resume(resume_id):
    """Status query: current status, output and score. No side effects."""
    resume = _get_owned_resume(resume_id)
    if not resume:
        return jsonify({'error': 'Resume not found'}), 404
    return jsonify(resume.to_dict())


@bp.route('/<int:resume_id>', methods=['DELETE'])
@require_user
def delete_resume(resume_id):
    """Delete a resume and its cover letters."""
    resume = _get_owned_resume(resume_id)
    if not resume:
        return jsonify({'error': 'Resume not found'}), 404

    db.session.delete(resume)
    db.session.commit()

    logger.info(f"Resume {resume_id} deleted by user {g.current_user.id}")
    return jsonify({'message': 'Resume deleted', 'id': resume_id})


@bp.route('/<int:resume_id>/optimize', methods=['POST'])
@require_user
def optimize_resume(resume_id):
    """Queue resume optimization.

    Returns:
        202: Accepted, result is pushed on the artifact's socket room
        400: Resume or job description too short
        402: No credits and no active subscription or trial
        409: Optimization already in progress
    """
    resume = _get_owned_resume(resume_id)
    if not resume:
        return jsonify({'error': 'Resume not found'}), 404

    result = enqueue(g.current_user, resume, UseCase.OPTIMIZE)
    return enqueue_response(result, resume)


@bp.route('/<int:resume_id>/ats-score', methods=['POST'])
@require_user
def score_resume(resume_id):
    """Queue ATS scoring of an optimized resume. Scoring is not charged."""
    resume = _get_owned_resume(resume_id)
    if not resume:
        return jsonify({'error': 'Resume not found'}), 404

    result = enqueue(g.current_user, resume, UseCase.ATS_SCORE)
    return enqueue_response(result, resume)


@bp.route('/<int:resume_id>/keywords', methods=['POST'])
@require_user
def extract_keywords(resume_id):
    """Extract job description keywords synchronously, without charging.

    Optional: job_description (defaults to the resume's)
    """
    resume = _get_owned_resume(resume_id)
    if not resume:
        return jsonify({'error': 'Resume not found'}), 404

    data = request.get_json(silent=True) or {}
    job_description = data.get('job_description') or resume.job_description

    optimizer = ResumeOptimizer(current_app.extensions.get('client_factory'))
    keywords = optimizer.extract_keywords(job_description, context_for(g.current_user))

    logger.info(f"Extracted {len(keywords)} keywords for resume {resume_id}")
    return jsonify({'resume_id': resume_id, 'keywords': keywords})


@bp.route('/<int:resume_id>/cover-letters', methods=['POST'])
@require_user
def create_cover_letter(resume_id):
    """Create a cover letter for this resume and queue its generation.

    Required: company_name, job_description (unless set on the resume)
    Optional: target_role, hiring_manager_name, tone, length

    Returns:
        202: Created and queued
        400: Invalid request
        402: No credits and no active subscription or trial
    """
    resume = _get_owned_resume(resume_id)
    if not resume:
        return jsonify({'error': 'Resume not found'}), 404

    user = g.current_user
    if not current_app.extensions['credit_ledger'].can_generate(user):
        raise InsufficientCreditsError("Insufficient credits. Please purchase more credits or subscribe.")

    data = request.get_json(silent=True) or {}
    cover_letter = CoverLetter(
        user_id=user.id,
        resume=resume,
        company_name=(data.get('company_name') or '').strip(),
        target_role=(data.get('target_role') or resume.target_role or '').strip(),
        hiring_manager_name=data.get('hiring_manager_name'),
        tone=data.get('tone') or 'professional',
        length=data.get('length') or 'medium',
        job_description=data.get('job_description') or resume.job_description,
    )

    CoverLetterGenerator.validate(cover_letter_inputs(cover_letter))

    db.session.add(cover_letter)
    db.session.commit()
    logger.info(f"Cover letter {cover_letter.id} created for resume {resume_id}")

    result = enqueue(user, cover_letter, UseCase.GENERATE_COVER_LETTER)
    return enqueue_response(result, cover_letter)
