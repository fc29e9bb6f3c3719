"""Cover letter API - regenerate, variations and company personalization."""
from flask import Blueprint, current_app, g, jsonify, request
import logging

from models import db
from models.cover_letter import CoverLetter
from resume_forge.api import enqueue, enqueue_response
from resume_forge.services.generation import CoverLetterGenerator
from resume_forge.services.generation_queue import clamp_variation_count, context_for
from resume_forge.services.jobs import UseCase
from utils.auth import require_user

bp = Blueprint('cover_letters', __name__)
logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('tone', 'length', 'hiring_manager_name', 'company_name', 'target_role', 'job_description')


def _get_owned_cover_letter(cover_letter_id):
    return CoverLetter.query.filter_by(id=cover_letter_id, user_id=g.current_user.id).first()


@bp.route('/<int:cover_letter_id>', methods=['GET'])
@require_user
def get_cover_letter(cover_letter_id):
    """Status query for one cover letter."""
    cover_letter = _get_owned_cover_letter(cover_letter_id)
    if not cover_letter:
        return jsonify({'error': 'Cover letter not found'}), 404
    return jsonify(cover_letter.to_dict())


@bp.route('/<int:cover_letter_id>', methods=['DELETE'])
@require_user
def delete_cover_letter(cover_letter_id):
    cover_letter = _get_owned_cover_letter(cover_letter_id)
    if not cover_letter:
        return jsonify({'error': 'Cover letter not found'}), 404

    db.session.delete(cover_letter)
    db.session.commit()

    logger.info(f"Cover letter {cover_letter_id} deleted by user {g.current_user.id}")
    return jsonify({'message': 'Cover letter deleted', 'id': cover_letter_id})


@bp.route('/<int:cover_letter_id>/generate', methods=['POST'])
@require_user
def regenerate_cover_letter(cover_letter_id):
    """Queue a new draft, optionally changing tone, length or other inputs first.

    Returns:
        202: Accepted
        400: Invalid tone, length or inputs
        402: No credits and no active subscription or trial
        409: Generation already in progress
    """
    cover_letter = _get_owned_cover_letter(cover_letter_id)
    if not cover_letter:
        return jsonify({'error': 'Cover letter not found'}), 404

    data = request.get_json(silent=True) or {}
    updates = {field: data[field] for field in EDITABLE_FIELDS if data.get(field)}

    # Edits land with the move into flight
    result = enqueue(g.current_user, cover_letter, UseCase.GENERATE_COVER_LETTER, params={'updates': updates})
    return enqueue_response(result, cover_letter)


@bp.route('/<int:cover_letter_id>/variations', methods=['POST'])
@require_user
def create_variations(cover_letter_id):
    """Queue a batch of variations of a generated cover letter.

    Optional: count (default 3, clamped to 1..5)

    Each variation is saved as a new cover letter. The batch costs half a
    credit per requested variation, rounded up.
    """
    cover_letter = _get_owned_cover_letter(cover_letter_id)
    if not cover_letter:
        return jsonify({'error': 'Cover letter not found'}), 404

    data = request.get_json(silent=True) or {}
    count = clamp_variation_count(data.get('count', 3))

    result = enqueue(g.current_user, cover_letter, UseCase.GENERATE_VARIATIONS, params={'count': count})
    return enqueue_response(result, cover_letter, count=count)


@bp.route('/<int:cover_letter_id>/personalization', methods=['POST'])
@require_user
def personalize(cover_letter_id):
    """Suggest company details worth mentioning. Synchronous and not charged."""
    cover_letter = _get_owned_cover_letter(cover_letter_id)
    if not cover_letter:
        return jsonify({'error': 'Cover letter not found'}), 404

    generator = CoverLetterGenerator(current_app.extensions.get('client_factory'))
    suggestions = generator.personalize_for_company(
        cover_letter.company_name,
        cover_letter.target_role,
        cover_letter.job_description or cover_letter.resume.job_description,
        context_for(g.current_user),
    )

    return jsonify({
        'cover_letter_id': cover_letter_id,
        'company_name': cover_letter.company_name,
        'suggestions': suggestions,
    })
