from __future__ import annotations


class GameError(Exception):
    """Base class for rejected game commands."""

    code = "game_error"


class RoomFullError(GameError):
    code = "room_full"

    def __init__(self, room_id: str, capacity: int):
        super().__init__(f"Room {room_id} is full ({capacity} players)")
        self.room_id = room_id
        self.capacity = capacity


class InvalidTransitionError(GameError):
    code = "invalid_transition"

    def __init__(self, action: str, phase: str):
        super().__init__(f"Cannot {action} while room is in {phase}")
        self.action = action
        self.phase = phase


class UnknownRoomError(GameError):
    code = "room_not_found"

    def __init__(self, room_id: str):
        super().__init__(f"Unknown room {room_id!r}")
        self.room_id = room_id


class NotDrawerError(GameError):
    code = "not_drawer"


class InvalidWordError(GameError):
    code = "invalid_word"


class NotInRoomError(GameError):
    code = "not_in_room"

    def __init__(self, connection_id: str, room_id: str):
        super().__init__(f"{connection_id} is not in room {room_id}")
        self.connection_id = connection_id
        self.room_id = room_id
