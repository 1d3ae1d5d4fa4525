from __future__ import annotations

import logging
from typing import Any, Protocol

from flask_socketio import SocketIO


logger = logging.getLogger(__name__)

NAMESPACE = "/"


class Gateway(Protocol):
    def broadcast(self, room_id: str, event: str, payload: Any, skip_sid: str | None = None) -> None: ...

    def send_to(self, connection_id: str, event: str, payload: Any) -> None: ...

    def subscribe(self, connection_id: str, room_id: str) -> None: ...

    def unsubscribe(self, connection_id: str, room_id: str) -> None: ...


def channel_for(room_id: str) -> str:
    # Prefixed so a room id can never collide with a connection's own sid room.
    return f"room:{room_id}"


class SocketIOGateway:
    """Room fan-out on top of Flask-SocketIO rooms.

    Usable from request handlers and from background tasks alike, since it
    only goes through the ``SocketIO`` object and never through ``request``.
    """

    def __init__(self, socketio: SocketIO, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def broadcast(self, room_id: str, event: str, payload: Any, skip_sid: str | None = None) -> None:
        self.socketio.emit(event, payload, to=channel_for(room_id), skip_sid=skip_sid, namespace=self.namespace)

    def send_to(self, connection_id: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=connection_id, namespace=self.namespace)

    def subscribe(self, connection_id: str, room_id: str) -> None:
        self.socketio.server.enter_room(connection_id, channel_for(room_id), namespace=self.namespace)

    def unsubscribe(self, connection_id: str, room_id: str) -> None:
        self.socketio.server.leave_room(connection_id, channel_for(room_id), namespace=self.namespace)
