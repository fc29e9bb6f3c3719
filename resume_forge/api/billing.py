"""Billing settlement events pushed by the payment gateway."""
from datetime import datetime, timezone
from flask import Blueprint, current_app, jsonify, request
import logging

from models import db
from models.subscription import Subscription
from models.user import User
from utils.auth import require_webhook_secret
from utils.exceptions import InvalidRequestError

bp = Blueprint('billing', __name__)
logger = logging.getLogger(__name__)


def _parse_timestamp(value):
    """Accept ISO-8601 strings or unix timestamps."""
    if value in (None, ''):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise InvalidRequestError(f"Invalid timestamp: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require(data, field):
    value = data.get(field)
    if value in (None, ''):
        raise InvalidRequestError(f"Missing required field: {field}")
    return value


def _handle_credits_purchased(data):
    user_id = int(_require(data, 'user_id'))
    credits = int(_require(data, 'credits'))
    reference = str(_require(data, 'reference'))

    if db.session.get(User, user_id) is None:
        return jsonify({'error': 'User not found'}), 404

    applied = current_app.extensions['credit_ledger'].add_credits(user_id, credits, external_reference=reference)
    return jsonify({'applied': applied, 'reference': reference})


def _handle_subscription_updated(data):
    external_id = str(_require(data, 'subscription_id'))
    subscription = Subscription.query.filter_by(external_id=external_id).first()

    if subscription is None:
        user_id = int(_require(data, 'user_id'))
        if db.session.get(User, user_id) is None:
            return jsonify({'error': 'User not found'}), 404
        subscription = Subscription(
            user_id=user_id,
            external_id=external_id,
            plan_id=str(data.get('plan_id') or 'default'),
        )
        db.session.add(subscription)

    if data.get('plan_id'):
        subscription.plan_id = str(data['plan_id'])
    subscription.status = str(_require(data, 'status'))
    subscription.current_period_end = _parse_timestamp(data.get('current_period_end'))
    db.session.commit()

    logger.info(f"Subscription {external_id} is now {subscription.status}")
    return jsonify({'subscription': subscription.to_dict()})


def _handle_subscription_deleted(data):
    external_id = str(_require(data, 'subscription_id'))
    subscription = Subscription.query.filter_by(external_id=external_id).first()
    if subscription is None:
        return jsonify({'ignored': True, 'reason': 'unknown subscription'})

    subscription.status = 'canceled'
    db.session.commit()

    logger.info(f"Subscription {external_id} canceled")
    return jsonify({'subscription': subscription.to_dict()})


EVENT_HANDLERS = {
    'credits.purchased': _handle_credits_purchased,
    'subscription.updated': _handle_subscription_updated,
    'subscription.deleted': _handle_subscription_deleted,
}


@bp.route('/events', methods=['POST'])
@require_webhook_secret
def billing_event():
    """Apply one settlement event.

    Body: {"type": "<event type>", "data": {...}}

    Unknown event types are acknowledged and ignored so the gateway does not
    keep redelivering them.
    """
    payload = request.get_json(silent=True) or {}
    event_type = payload.get('type')
    data = payload.get('data') or {}

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Ignoring billing event type {event_type!r}")
        return jsonify({'ignored': True, 'type': event_type})

    try:
        return handler(data)
    except (TypeError, ValueError) as e:
        db.session.rollback()
        logger.warning(f"Malformed {event_type} event: {e}")
        return jsonify({'error': f'Malformed event: {e}'}), 400
