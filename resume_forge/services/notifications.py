"""Best-effort push of artifact state to live subscribers."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict


logger = logging.getLogger(__name__)

NAMESPACE = '/artifacts'
EVENT = 'artifact_update'


def artifact_room(artifact_type: str, artifact_id: int) -> str:
    return f"{artifact_type}_{artifact_id}"


class NotificationSink(ABC):
    """Delivers an artifact's rendered state after a terminal transition."""

    def notify(self, artifact_type: str, artifact_id: int, payload: Dict[str, Any]) -> None:
        try:
            self._send(artifact_type, artifact_id, payload)
        except Exception:
            logger.exception(f"Failed to notify subscribers of {artifact_type} {artifact_id}")

    @abstractmethod
    def _send(self, artifact_type: str, artifact_id: int, payload: Dict[str, Any]) -> None:
        ...


class SocketIONotificationSink(NotificationSink):
    """Emits ``artifact_update`` to the artifact's Socket.IO room."""

    def __init__(self, socketio):
        self.socketio = socketio

    def _send(self, artifact_type, artifact_id, payload):
        room = artifact_room(artifact_type, artifact_id)
        self.socketio.emit(EVENT, payload, to=room, namespace=NAMESPACE)
        logger.debug(f"Emitted {EVENT} to {room}")


class NullNotificationSink(NotificationSink):
    def _send(self, artifact_type, artifact_id, payload):
        pass
