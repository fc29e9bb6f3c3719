"""Health check API blueprint."""
from flask import Blueprint, jsonify
import logging

bp = Blueprint('health', __name__)
logger = logging.getLogger(__name__)


@bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint to verify service is running."""
    logger.debug("Health check requested")

    return jsonify({
        "status": "healthy",
        "service": "Resume Forge API",
        "version": "1.0.0"
    })


@bp.route('/', methods=['GET'])
def root():
    """Root endpoint with API information."""
    return jsonify({
        "service": "Resume Forge API",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "credits": "/me/credits",
            "resumes": {
                "create": "/resumes",
                "optimize": "/resumes/{id}/optimize",
                "ats_score": "/resumes/{id}/ats-score",
                "keywords": "/resumes/{id}/keywords",
                "cover_letters": "/resumes/{id}/cover-letters"
            },
            "cover_letters": {
                "generate": "/cover-letters/{id}/generate",
                "variations": "/cover-letters/{id}/variations",
                "personalization": "/cover-letters/{id}/personalization"
            },
            "websocket": "/artifacts"
        }
    })
