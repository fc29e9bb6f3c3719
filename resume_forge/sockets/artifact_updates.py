"""WebSocket handlers for live artifact status updates.

Clients connect to the ``/artifacts`` namespace with a JWT in the auth
payload, then subscribe to individual resumes or cover letters. The job
runner emits ``artifact_update`` to the artifact's room after every terminal
transition.
"""
import logging
from datetime import datetime, timezone

from flask import request
from flask_jwt_extended import decode_token
from flask_socketio import emit, join_room, leave_room

from models import db
from models.cover_letter import CoverLetter
from models.resume import Resume
from resume_forge.services.notifications import EVENT, NAMESPACE, artifact_room

logger = logging.getLogger(__name__)

ARTIFACT_MODELS = {
    'resume': Resume,
    'cover_letter': CoverLetter,
}

# Authenticated user per socket session id
active_connections = {}


def authenticate_websocket(auth: dict) -> int:
    """Return the user id carried by the connection's JWT.

    Raises:
        ValueError if no token is given or the identity is not a user id
    """
    if not auth or 'token' not in auth:
        raise ValueError("No authentication token provided")

    payload = decode_token(auth['token'])
    return int(payload['sub'])


def _load_owned_artifact(user_id: int, data: dict):
    model = ARTIFACT_MODELS.get((data or {}).get('artifact_type'))
    if model is None:
        return None, None
    try:
        artifact_id = int(data.get('artifact_id'))
    except (TypeError, ValueError):
        return None, None

    artifact = db.session.get(model, artifact_id)
    if artifact is None or artifact.user_id != user_id:
        return None, None
    return data['artifact_type'], artifact


def init_artifact_update_handlers(socketio):
    """Initialize WebSocket event handlers for artifact updates.

    Args:
        socketio: Flask-SocketIO instance
    """

    @socketio.on('connect', namespace=NAMESPACE)
    def handle_connect(auth=None):
        try:
            user_id = authenticate_websocket(auth)
        except Exception as e:
            logger.warning(f"Connection rejected: {e}")
            return False

        active_connections[request.sid] = {
            'user_id': user_id,
            'connected_at': datetime.now(timezone.utc).isoformat(),
        }
        logger.info(f"WebSocket connected: user_id={user_id}")
        emit('connected', {'user_id': user_id})
        return True

    @socketio.on('subscribe', namespace=NAMESPACE)
    def handle_subscribe(data):
        """Join an artifact's room and receive its current state right away."""
        connection = active_connections.get(request.sid)
        if connection is None:
            emit('error', {'message': 'Not authenticated'})
            return

        artifact_type, artifact = _load_owned_artifact(connection['user_id'], data)
        if artifact is None:
            emit('error', {'message': 'Artifact not found'})
            return

        room = artifact_room(artifact_type, artifact.id)
        join_room(room)
        logger.debug(f"Socket {request.sid} joined {room}")
        emit('subscribed', {'artifact_type': artifact_type, 'artifact_id': artifact.id})
        emit(EVENT, artifact.to_dict())

    @socketio.on('unsubscribe', namespace=NAMESPACE)
    def handle_unsubscribe(data):
        data = data or {}
        if data.get('artifact_type') in ARTIFACT_MODELS and data.get('artifact_id') is not None:
            leave_room(artifact_room(data['artifact_type'], data['artifact_id']))

    @socketio.on('disconnect', namespace=NAMESPACE)
    def handle_disconnect(*args):
        connection = active_connections.pop(request.sid, None)
        if connection:
            logger.info(f"WebSocket disconnected: user_id={connection['user_id']}")
