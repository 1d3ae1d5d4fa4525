from __future__ import annotations

import logging
from typing import Any

from flask import request
from flask_socketio import SocketIO, emit

from ..game.engine import GameEngine
from ..game.errors import GameError, RoomFullError


logger = logging.getLogger(__name__)


def _payload(data: Any) -> dict:
    return data if isinstance(data, dict) else {}


def register_socketio_handlers(socketio: SocketIO, engine: GameEngine) -> None:
    def _ignore(event: str, exc: GameError) -> None:
        # Late or duplicate commands (room gone, wrong phase, not the drawer) are dropped quietly.
        logger.debug("ignored %s from %s: [%s] %s", event, request.sid, exc.code, exc)

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.debug("connected %s", request.sid)

    @socketio.on("join_room")
    def on_join_room(data):
        payload = _payload(data)
        username = str(payload.get("username") or "").strip()
        room_id = str(payload.get("roomId") or "").strip()

        try:
            engine.join(request.sid, username, room_id)
        except RoomFullError:
            emit("error", "Room is full")
        except GameError as exc:
            _ignore("join_room", exc)

    @socketio.on("create_room")
    def on_create_room(data):
        payload = _payload(data)
        username = str(payload.get("username") or "").strip()
        try:
            engine.create_room(request.sid, username)
        except GameError as exc:
            _ignore("create_room", exc)

    @socketio.on("leave_room")
    def on_leave_room(data):
        payload = _payload(data)
        try:
            engine.leave(request.sid, payload.get("roomId"))
        except GameError as exc:
            _ignore("leave_room", exc)

    @socketio.on("start_game")
    def on_start_game(data):
        payload = _payload(data)
        try:
            engine.start_game(request.sid, payload.get("roomId"))
        except GameError as exc:
            _ignore("start_game", exc)

    @socketio.on("word_selected")
    def on_word_selected(data):
        payload = _payload(data)
        word = str(payload.get("word") or "")
        try:
            engine.select_word(request.sid, payload.get("roomId"), word)
        except GameError as exc:
            _ignore("word_selected", exc)

    @socketio.on("reset_game")
    def on_reset_game(data):
        payload = _payload(data)
        try:
            engine.reset_game(request.sid, payload.get("roomId"))
        except GameError as exc:
            _ignore("reset_game", exc)

    @socketio.on("draw")
    def on_draw(data):
        if not isinstance(data, dict):
            return
        try:
            engine.relay_draw(request.sid, data)
        except GameError as exc:
            _ignore("draw", exc)

    @socketio.on("clear_canvas")
    def on_clear_canvas(data):
        payload = _payload(data)
        try:
            engine.clear_canvas(request.sid, payload.get("roomId"))
        except GameError as exc:
            _ignore("clear_canvas", exc)

    @socketio.on("chat_message")
    def on_chat_message(data):
        payload = _payload(data)
        message = payload.get("message")
        if not isinstance(message, str):
            return
        try:
            engine.chat(request.sid, payload.get("roomId"), message)
        except GameError as exc:
            _ignore("chat_message", exc)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        engine.disconnect(request.sid)
