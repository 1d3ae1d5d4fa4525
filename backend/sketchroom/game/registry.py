from __future__ import annotations

import logging
import secrets
import string
from threading import RLock

from .errors import UnknownRoomError
from .models import Room


logger = logging.getLogger(__name__)

ROOM_ID_ALPHABET = string.ascii_uppercase + string.digits
ROOM_ID_LENGTH = 4
ROOM_ID_SPACE = len(ROOM_ID_ALPHABET) ** ROOM_ID_LENGTH


class RoomRegistry:
    """Process-wide room table.

    Only the mapping is guarded here; a room's own state is guarded by
    ``room.lock``. Callers that hold a room lock may call into the registry,
    never the other way round.
    """

    def __init__(self, max_rounds: int = 3, default_room_id: str = "default"):
        self.max_rounds = max_rounds
        self.default_room_id = default_room_id
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        with self._lock:
            return room_id in self._rooms

    def normalize_room_id(self, raw: object) -> str:
        room_id = str(raw or "").strip()
        return room_id or self.default_room_id

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def require(self, room_id: str) -> Room:
        room = self.get(room_id)
        if room is None:
            raise UnknownRoomError(room_id)
        return room

    def get_or_create(self, room_id: str) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = Room(id=room_id, max_rounds=self.max_rounds)
                self._rooms[room_id] = room
                logger.info("room %s created", room_id)
            return room

    def allocate_id(self) -> str:
        """Pick a room id no live room uses. Nothing is held for it until someone joins."""
        with self._lock:
            if len(self._rooms) >= ROOM_ID_SPACE:
                raise RuntimeError("no free room ids left")
            while True:
                room_id = "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))
                if room_id not in self._rooms:
                    return room_id

    def create(self) -> Room:
        with self._lock:
            return self.get_or_create(self.allocate_id())

    def remove_if_empty(self, room_id: str) -> bool:
        """Drop the room if nobody is left in it. Idempotent."""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or room.players:
                return False
            room.cancel_timer()
            room.bump_generation()
            del self._rooms[room_id]
        logger.info("room %s is empty, removed", room_id)
        return True

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def rooms_with_player(self, connection_id: str) -> list[Room]:
        return [r for r in self.list_rooms() if r.has_player(connection_id)]
