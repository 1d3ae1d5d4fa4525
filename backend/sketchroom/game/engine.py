from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from ..config import GameSettings
from . import service
from .errors import NotInRoomError
from .models import Phase, Player, Room
from .registry import RoomRegistry
from .timer import RoundTimer, Scheduler
from .words import DEFAULT_WORDS, WordBank

if TYPE_CHECKING:
    from ..realtime.gateway import Gateway


logger = logging.getLogger(__name__)


class GameEngine:
    """Serializes every command for a room behind ``room.lock`` and fans out the results.

    Public methods raise ``GameError`` subclasses for rejected commands; the
    socket handlers decide which of those the client gets to see.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        gateway: Gateway,
        scheduler: Scheduler,
        settings: GameSettings | None = None,
        word_bank: WordBank | None = None,
    ):
        self.registry = registry
        self.gateway = gateway
        self.scheduler = scheduler
        self.settings = settings or GameSettings()
        self.word_bank = word_bank or WordBank(list(DEFAULT_WORDS) + list(self.settings.extra_words))

    # ---- helpers ----

    def _broadcast_state(self, room: Room) -> None:
        self.gateway.broadcast(room.id, "game_state", service.public_state(room))

    def _system(self, room: Room, text: str) -> None:
        self.gateway.broadcast(room.id, "system_message", text)

    def _is_current(self, room: Room, generation: int, phase: Phase) -> bool:
        return self.registry.get(room.id) is room and room.generation == generation and room.phase == phase

    def _room_for(self, connection_id: str, room_id: Any) -> Room:
        room = self.registry.require(self.registry.normalize_room_id(room_id))
        if not room.has_player(connection_id):
            raise NotInRoomError(connection_id, room.id)
        return room

    def _schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        def _runner() -> None:
            self.scheduler.sleep(delay)
            try:
                callback(*args)
            except Exception:
                logger.exception("[delayed-error] %s%r failed", getattr(callback, "__name__", callback), args)

        self.scheduler.start_background_task(_runner)

    # ---- roster ----

    def join(self, connection_id: str, username: str, room_id: Any = None) -> Player:
        room_id = self.registry.normalize_room_id(room_id)
        # Old rooms are left only after the new one has accepted the player.
        player = self._enter(connection_id, username, room_id)
        for other in self.registry.rooms_with_player(connection_id):
            if other.id != room_id:
                self._remove(other, connection_id, unsubscribe=True)
        return player

    def _enter(self, connection_id: str, username: str, room_id: str) -> Player:
        while True:
            room = self.registry.get_or_create(room_id)
            with room.lock:
                # Lost a race with the last player leaving; the room is gone, make a new one.
                if self.registry.get(room_id) is not room:
                    continue

                existing = room.find_player(connection_id)
                if existing is not None:
                    self.gateway.send_to(connection_id, "game_state", service.public_state(room))
                    return existing

                player = service.add_player(room, connection_id, username, self.settings.max_players)
                self.gateway.subscribe(connection_id, room.id)
                logger.info("%s joined room %s as %r", connection_id, room.id, player.name)

                self._system(room, f"{player.name} joined.")
                self._broadcast_state(room)
                if room.phase == "DRAWING":
                    self.gateway.send_to(connection_id, "timer_update", room.remaining_seconds)
                return player

    def create_room(self, connection_id: str, username: str) -> Player:
        room = self.registry.create()
        self.gateway.send_to(connection_id, "room_created", {"roomId": room.id})
        return self.join(connection_id, username, room.id)

    def leave(self, connection_id: str, room_id: Any) -> bool:
        room = self.registry.require(self.registry.normalize_room_id(room_id))
        return self._remove(room, connection_id, unsubscribe=True)

    def disconnect(self, connection_id: str) -> None:
        for room in self.registry.rooms_with_player(connection_id):
            self._remove(room, connection_id, unsubscribe=False)

    def _remove(self, room: Room, connection_id: str, unsubscribe: bool) -> bool:
        with room.lock:
            departure = service.remove_player(room, connection_id)
            if departure is None:
                return False
            if unsubscribe:
                self.gateway.unsubscribe(connection_id, room.id)

            name = departure.player.name
            logger.info("%s (%r) left room %s", connection_id, name, room.id)
            self._system(room, f"{name} left.")
            self._broadcast_state(room)

            if not room.players:
                self.registry.remove_if_empty(room.id)
                return True

            if departure.was_drawer and departure.phase == "DRAWING":
                self._system(room, f"Drawer {name} disconnected! Ending round.")
                self._end_round_locked(room)
            elif departure.was_drawer and departure.phase == "WORD_SELECT":
                self._system(room, f"Drawer {name} left before choosing a word. Skipping turn.")
                self._advance_locked(room)
            elif room.phase == "DRAWING" and service.all_guessed(room):
                self._end_round_locked(room)
            return True

    # ---- game flow ----

    def start_game(self, connection_id: str, room_id: Any) -> None:
        room = self._room_for(connection_id, room_id)
        with room.lock:
            service.start_game(room)
            logger.info("game started in room %s with %s players", room.id, len(room.players))
            self._begin_round_locked(room)

    def select_word(self, connection_id: str, room_id: Any, word: str) -> None:
        room = self._room_for(connection_id, room_id)
        with room.lock:
            chosen = service.select_word(room, connection_id, word)
            service.begin_drawing(room, chosen, self.settings.round_duration_sec)
            self._drawing_started_locked(room)

    def reset_game(self, connection_id: str, room_id: Any) -> None:
        room = self._room_for(connection_id, room_id)
        with room.lock:
            service.reset_game(room)
            logger.info("room %s back in lobby", room.id)
            self._system(room, "Back to the lobby.")
            self._broadcast_state(room)

    def _begin_round_locked(self, room: Room) -> None:
        drawer = service.begin_round(
            room,
            self.word_bank,
            offer_choices=self.settings.offers_choices,
            choices_count=self.settings.word_choices_count,
            round_seconds=self.settings.round_duration_sec,
        )
        logger.info("room %s round %s/%s, drawer %r", room.id, room.current_round, room.max_rounds, drawer.name)
        self.gateway.broadcast(room.id, "clear_canvas", {"roomId": room.id})

        if room.phase == "WORD_SELECT":
            self._system(room, f"Round {room.current_round} started. Drawer: {drawer.name} is choosing a word...")
            self._broadcast_state(room)
            self.gateway.send_to(drawer.id, "word_select_options", list(room.word_choices))
            if self.settings.choose_duration_sec > 0:
                self._schedule(self.settings.choose_duration_sec, self._on_choose_timeout, room.id, room.generation)
            return

        self._system(room, f"Round {room.current_round} started. Drawer: {drawer.name}")
        self._drawing_started_locked(room)

    def _drawing_started_locked(self, room: Room) -> None:
        drawer = room.drawer
        self._system(room, "Drawer has chosen a word! Guess the shape!")
        self._broadcast_state(room)
        if drawer is not None:
            self.gateway.send_to(drawer.id, "secret_word", room.secret_word)
        self.gateway.broadcast(room.id, "timer_update", room.remaining_seconds)
        self._start_timer_locked(room)

    def _start_timer_locked(self, room: Room) -> None:
        room.cancel_timer()
        room_id, generation = room.id, room.generation
        room.timer = RoundTimer(
            self.scheduler,
            lambda: self._on_timer_tick(room_id, generation),
            name=f"room:{room_id}:gen{generation}",
        ).start()

    def _on_timer_tick(self, room_id: str, generation: int) -> bool:
        room = self.registry.get(room_id)
        if room is None:
            return False
        with room.lock:
            if not self._is_current(room, generation, "DRAWING"):
                return False
            room.remaining_seconds -= 1
            self.gateway.broadcast(room.id, "timer_update", max(0, room.remaining_seconds))
            if room.remaining_seconds <= 0:
                self._system(room, "Time's up!")
                self._end_round_locked(room)
                return False
            return True

    def _on_choose_timeout(self, room_id: str, generation: int) -> None:
        room = self.registry.get(room_id)
        if room is None:
            return
        with room.lock:
            if not self._is_current(room, generation, "WORD_SELECT"):
                return
            word = room.word_choices[0] if room.word_choices else self.word_bank.pick_one()
            drawer = room.drawer
            logger.info("room %s: drawer did not choose in time, using %r", room.id, word)
            service.begin_drawing(room, word, self.settings.round_duration_sec)
            if drawer is not None:
                self.gateway.send_to(drawer.id, "system_message", "Time to choose ran out, a word was picked for you.")
            self._drawing_started_locked(room)

    def _end_round_locked(self, room: Room) -> None:
        room.cancel_timer()
        word = service.finish_round(room)
        logger.info("room %s round %s over, word was %r", room.id, room.current_round, word)
        self._system(room, f"Round over! Word: {word}")
        self.gateway.broadcast(room.id, "round_end", {"word": word})
        self._broadcast_state(room)
        self._schedule(self.settings.round_end_delay_sec, self._after_round_end, room.id, room.generation)

    def _after_round_end(self, room_id: str, generation: int) -> None:
        room = self.registry.get(room_id)
        if room is None:
            return
        with room.lock:
            if not self._is_current(room, generation, "ROUND_END"):
                return
            self._advance_locked(room)

    def _advance_locked(self, room: Room) -> None:
        if service.advance_round(room):
            self._begin_round_locked(room)
            return
        logger.info("room %s game over", room.id)
        self._system(room, "Game Over!")
        self._broadcast_state(room)

    # ---- chat / drawing ----

    def chat(self, connection_id: str, room_id: Any, message: Any) -> service.GuessResult:
        room = self.registry.require(self.registry.normalize_room_id(room_id))
        with room.lock:
            result = service.submit_guess(room, connection_id, message, self.settings.chat_max_length)
            player = result.player

            if result.kind == "chat" and player is not None:
                self.gateway.broadcast(room.id, "chat_message", {"username": player.name, "message": result.text})
            elif result.kind == "correct" and player is not None:
                self._system(room, f"{player.name} guessed the word!")
                self._broadcast_state(room)
                if result.round_complete:
                    self._system(room, "Everyone guessed the word!")
                    self._end_round_locked(room)
            elif result.kind == "already_guessed":
                self.gateway.send_to(connection_id, "system_message", "You already guessed the word.")
            elif result.kind == "suppressed":
                self.gateway.send_to(connection_id, "system_message", "The drawer can't reveal the word in chat.")
            return result

    def relay_draw(self, connection_id: str, data: dict) -> bool:
        room = self.registry.require(self.registry.normalize_room_id(data.get("roomId")))
        with room.lock:
            player = room.find_player(connection_id)
            if player is None or not service.can_draw(room, player):
                return False
            self.gateway.broadcast(room.id, "draw", data, skip_sid=connection_id)
            return True

    def clear_canvas(self, connection_id: str, room_id: Any) -> bool:
        room = self.registry.require(self.registry.normalize_room_id(room_id))
        with room.lock:
            player = room.find_player(connection_id)
            if player is None or not service.can_draw(room, player):
                return False
            self.gateway.broadcast(room.id, "clear_canvas", {"roomId": room.id})
            return True

    def shutdown(self) -> None:
        """Stop every countdown; used on app teardown and in tests."""
        for room in self.registry.list_rooms():
            with room.lock:
                room.cancel_timer()
                room.bump_generation()
