from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .timer import RoundTimer


Phase = Literal["LOBBY", "ROUND_START", "WORD_SELECT", "DRAWING", "ROUND_END", "GAME_OVER"]

# Phases in which a drawer is assigned for the current turn.
TURN_PHASES: tuple[Phase, ...] = ("WORD_SELECT", "DRAWING", "ROUND_END")


@dataclass
class Player:
    id: str
    name: str
    score: int = 0
    is_drawer: bool = False
    has_guessed: bool = False

    def public(self) -> dict:
        return {
            "username": self.name,
            "score": self.score,
            "isDrawer": self.is_drawer,
            "hasGuessed": self.has_guessed,
        }


@dataclass(eq=False)
class Room:
    id: str
    max_rounds: int = 3
    phase: Phase = "LOBBY"
    players: list[Player] = field(default_factory=list)
    current_round: int = 0
    drawer_index: int = 0
    secret_word: str = ""
    word_choices: list[str] = field(default_factory=list)
    remaining_seconds: int = 0
    # Bumped whenever pending timers for the previous phase must become no-ops.
    generation: int = 0
    # Set when the current turn's drawer left, so the next advance does not skip a player.
    drawer_left: bool = False
    # ...and the leaver was last in the rotation, so the next turn starts a new round.
    pending_wrap: bool = False
    timer: RoundTimer | None = field(default=None, repr=False)
    lock: RLock = field(default_factory=RLock, repr=False)

    def find_player(self, connection_id: str) -> Player | None:
        for p in self.players:
            if p.id == connection_id:
                return p
        return None

    def has_player(self, connection_id: str) -> bool:
        return self.find_player(connection_id) is not None

    @property
    def drawer(self) -> Player | None:
        for p in self.players:
            if p.is_drawer:
                return p
        return None

    @property
    def guessers(self) -> list[Player]:
        return [p for p in self.players if not p.is_drawer]

    def cancel_timer(self) -> bool:
        """Cancel the running countdown, if any. Safe to call repeatedly."""
        timer, self.timer = self.timer, None
        if timer is None:
            return False
        return timer.cancel()

    def bump_generation(self) -> int:
        self.generation += 1
        return self.generation
