from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO; empty means pick per platform in create_app
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Game
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "5"))
    MAX_ROUNDS = int(os.environ.get("MAX_ROUNDS", "3"))
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "60"))
    ROUND_END_DELAY_SEC = int(os.environ.get("ROUND_END_DELAY_SEC", "5"))
    # 0 disables the auto-pick when the drawer does not choose a word
    CHOOSE_DURATION_SEC = int(os.environ.get("CHOOSE_DURATION_SEC", "0"))
    # "choice": drawer picks one of WORD_CHOICES_COUNT words, "auto": one word is assigned
    WORD_SELECTION_MODE = os.environ.get("WORD_SELECTION_MODE", "choice")
    WORD_CHOICES_COUNT = int(os.environ.get("WORD_CHOICES_COUNT", "3"))
    CHAT_MAX_LENGTH = int(os.environ.get("CHAT_MAX_LENGTH", "200"))
    DEFAULT_ROOM_ID = os.environ.get("DEFAULT_ROOM_ID", "default")
    EXTRA_WORDS = os.environ.get("EXTRA_WORDS", "")


WORD_SELECTION_MODES = ("choice", "auto")


def _split_words(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = raw.split(",")
    elif raw:
        items = list(raw)
    else:
        items = []
    return tuple(w.strip() for w in items if isinstance(w, str) and w.strip())


@dataclass(frozen=True)
class GameSettings:
    max_players: int = 5
    max_rounds: int = 3
    round_duration_sec: int = 60
    round_end_delay_sec: int = 5
    choose_duration_sec: int = 0
    word_selection_mode: str = "choice"
    word_choices_count: int = 3
    chat_max_length: int = 200
    default_room_id: str = "default"
    extra_words: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.word_selection_mode not in WORD_SELECTION_MODES:
            raise ValueError(
                f"WORD_SELECTION_MODE must be one of {WORD_SELECTION_MODES}, got {self.word_selection_mode!r}"
            )
        if self.max_players < 1:
            raise ValueError("MAX_PLAYERS must be at least 1")
        if self.max_rounds < 1:
            raise ValueError("MAX_ROUNDS must be at least 1")
        if self.round_duration_sec < 1:
            raise ValueError("ROUND_DURATION_SEC must be at least 1")
        if self.word_choices_count < 1:
            raise ValueError("WORD_CHOICES_COUNT must be at least 1")

    @property
    def offers_choices(self) -> bool:
        return self.word_selection_mode == "choice"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "GameSettings":
        """Build settings from a Flask ``app.config`` (or any mapping)."""
        defaults = cls()
        return cls(
            max_players=int(config.get("MAX_PLAYERS", defaults.max_players)),
            max_rounds=int(config.get("MAX_ROUNDS", defaults.max_rounds)),
            round_duration_sec=int(config.get("ROUND_DURATION_SEC", defaults.round_duration_sec)),
            round_end_delay_sec=int(config.get("ROUND_END_DELAY_SEC", defaults.round_end_delay_sec)),
            choose_duration_sec=int(config.get("CHOOSE_DURATION_SEC", defaults.choose_duration_sec)),
            word_selection_mode=str(config.get("WORD_SELECTION_MODE", defaults.word_selection_mode)).strip().lower(),
            word_choices_count=int(config.get("WORD_CHOICES_COUNT", defaults.word_choices_count)),
            chat_max_length=int(config.get("CHAT_MAX_LENGTH", defaults.chat_max_length)),
            default_room_id=str(config.get("DEFAULT_ROOM_ID", defaults.default_room_id)).strip() or "default",
            extra_words=_split_words(config.get("EXTRA_WORDS", "")),
        )
