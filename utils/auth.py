"""Request authentication helpers.

Users are identified by a JWT whose identity is the user id; issuing the
tokens is handled by the account service in front of this API. Billing
settlement events authenticate with a shared secret header.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, g, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from models import db

logger = logging.getLogger(__name__)

WEBHOOK_SECRET_HEADER = 'X-Billing-Secret'


def require_user(f):
    """Require a valid JWT and load its user into ``g.current_user``."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from models.user import User

        verify_jwt_in_request()
        identity = get_jwt_identity()
        try:
            user_id = int(identity)
        except (TypeError, ValueError):
            logger.warning(f"JWT identity is not a user id: {identity!r}")
            return jsonify({'error': 'Authentication required'}), 401

        user = db.session.get(User, user_id)
        if user is None:
            logger.warning(f"JWT for unknown user {user_id}")
            return jsonify({'error': 'Authentication required'}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_webhook_secret(f):
    """Require the billing gateway's shared secret."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('BILLING_WEBHOOK_SECRET')
        provided = request.headers.get(WEBHOOK_SECRET_HEADER, '')

        if not expected:
            logger.error("BILLING_WEBHOOK_SECRET is not configured; rejecting billing event")
            return jsonify({'error': 'Billing events are not enabled'}), 503
        if not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning("Billing event with invalid secret")
            return jsonify({'error': 'Invalid webhook secret'}), 401

        return f(*args, **kwargs)

    return decorated_function
