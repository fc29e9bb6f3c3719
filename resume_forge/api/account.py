"""Credit balance and entitlement for the signed-in user."""
from flask import Blueprint, current_app, g, jsonify
import logging

from utils.auth import require_user

bp = Blueprint('account', __name__)
logger = logging.getLogger(__name__)


@bp.route('/credits', methods=['GET'])
@require_user
def get_credits():
    """Return the user's balance, reservations and unlimited entitlements."""
    user = g.current_user
    ledger = current_app.extensions['credit_ledger']

    return jsonify({
        'credits_remaining': user.credits_remaining,
        'credits_reserved': user.credits_reserved,
        'available_credits': user.available_credits,
        'total_generations': user.total_generations,
        'has_active_subscription': user.has_active_subscription(),
        'trial_active': user.trial_active(),
        'can_generate': ledger.can_generate(user),
        'subscriptions': [subscription.to_dict() for subscription in user.subscriptions],
    })
