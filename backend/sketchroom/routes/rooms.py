from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game import service
from ..game.engine import GameEngine

bp = Blueprint("rooms", __name__)


def _engine() -> GameEngine:
    return current_app.extensions["sketchroom"]


@bp.get("/rooms")
def list_rooms():
    rooms = _engine().registry.list_rooms()
    return jsonify([service.room_summary(r) for r in rooms])


@bp.post("/rooms")
def create_room():
    # Suggests an unused id; the room comes to life when the first player joins it.
    room_id = _engine().registry.allocate_id()
    return jsonify({"roomId": room_id}), 201


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    room = _engine().registry.get(room_id)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    with room.lock:
        return jsonify({"id": room.id, **service.public_state(room)})
