"""Room state transitions.

Everything here mutates a single ``Room`` in memory and never talks to the
network or the clock; the engine takes the room lock, calls into this
module, and fans the results out to clients.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from markupsafe import escape

from .errors import InvalidTransitionError, InvalidWordError, NotDrawerError, RoomFullError
from .models import TURN_PHASES, Player, Room
from .words import WordBank


GUESSER_POINTS = 10
DRAWER_POINTS = 5


# ---- roster ----

def resolve_name(room: Room, requested_name: str, connection_id: str) -> str:
    base = str(escape((requested_name or "").strip())) or f"Player {connection_id[:4]}"
    taken = {p.name for p in room.players}
    name = base
    n = 1
    while name in taken:
        name = f"{base} ({n})"
        n += 1
    return name


def add_player(room: Room, connection_id: str, requested_name: str, max_players: int) -> Player:
    if len(room.players) >= max_players:
        raise RoomFullError(room.id, max_players)

    player = Player(id=connection_id, name=resolve_name(room, requested_name, connection_id))
    # Late joiners queue behind everyone already in the rotation.
    room.players.append(player)
    return player


@dataclass
class Departure:
    player: Player
    was_drawer: bool
    phase: str


def remove_player(room: Room, connection_id: str) -> Departure | None:
    idx = next((i for i, p in enumerate(room.players) if p.id == connection_id), None)
    if idx is None:
        return None

    player = room.players.pop(idx)
    in_turn = room.phase in TURN_PHASES

    if in_turn and idx < room.drawer_index:
        room.drawer_index -= 1
    elif in_turn and idx == room.drawer_index:
        # Whoever followed the leaver now sits at drawer_index and gets the next turn.
        room.drawer_left = True

    if room.drawer_index >= len(room.players):
        room.drawer_index = 0
        if in_turn and room.drawer_left:
            room.pending_wrap = True

    return Departure(player=player, was_drawer=player.is_drawer, phase=room.phase)


# ---- rotation ----

def next_drawer_index(index: int, roster_len: int) -> tuple[int, bool]:
    """Returns (next index, wrapped) for a rotation over ``roster_len`` players."""
    if roster_len <= 0:
        return 0, False
    nxt = index + 1
    return nxt % roster_len, nxt >= roster_len


# ---- state machine ----

def start_game(room: Room) -> None:
    if room.phase != "LOBBY":
        raise InvalidTransitionError("start game", room.phase)
    if not room.players:
        raise InvalidTransitionError("start game without players", room.phase)

    room.phase = "ROUND_START"
    room.current_round = 1
    room.drawer_index = 0
    room.drawer_left = False
    room.pending_wrap = False
    room.bump_generation()


def begin_round(
    room: Room,
    word_bank: WordBank,
    offer_choices: bool,
    choices_count: int,
    round_seconds: int,
) -> Player:
    """Assign the drawer for the current turn and either offer words or start drawing."""
    if room.phase not in ("ROUND_START", "ROUND_END", "WORD_SELECT"):
        raise InvalidTransitionError("begin round", room.phase)
    if not room.players:
        raise InvalidTransitionError("begin round without players", room.phase)

    room.bump_generation()
    for p in room.players:
        p.is_drawer = False
        p.has_guessed = False
    room.secret_word = ""
    room.word_choices = []
    room.remaining_seconds = 0
    room.drawer_left = False
    room.pending_wrap = False

    if room.drawer_index >= len(room.players):
        room.drawer_index = 0
    drawer = room.players[room.drawer_index]
    drawer.is_drawer = True

    if offer_choices:
        room.phase = "WORD_SELECT"
        room.word_choices = word_bank.sample_distinct(choices_count)
    else:
        begin_drawing(room, word_bank.pick_one(), round_seconds)
    return drawer


def select_word(room: Room, connection_id: str, word: str) -> str:
    if room.phase != "WORD_SELECT":
        raise InvalidTransitionError("select a word", room.phase)
    player = room.find_player(connection_id)
    if player is None or not player.is_drawer:
        raise NotDrawerError(f"{connection_id} is not the drawer in room {room.id}")

    wanted = normalize_guess(word or "")
    for choice in room.word_choices:
        if normalize_guess(choice) == wanted:
            return choice
    raise InvalidWordError(f"{word!r} was not offered in room {room.id}")


def begin_drawing(room: Room, word: str, round_seconds: int) -> None:
    room.phase = "DRAWING"
    room.secret_word = word
    room.word_choices = []
    room.remaining_seconds = round_seconds
    for p in room.players:
        p.has_guessed = False
    room.bump_generation()


def finish_round(room: Room) -> str:
    """DRAWING -> ROUND_END. Returns the word to announce."""
    if room.phase != "DRAWING":
        raise InvalidTransitionError("end round", room.phase)

    room.phase = "ROUND_END"
    room.remaining_seconds = 0
    for p in room.players:
        p.is_drawer = False
    room.bump_generation()
    return room.secret_word


def advance_round(room: Room) -> bool:
    """Move the rotation on after ROUND_END (or a skipped turn).

    Returns True when another round should begin, False once the game is over.
    """
    if room.phase not in ("ROUND_END", "WORD_SELECT"):
        raise InvalidTransitionError("advance round", room.phase)

    if room.drawer_left:
        wrapped = room.pending_wrap
    else:
        room.drawer_index, wrapped = next_drawer_index(room.drawer_index, len(room.players))
    room.drawer_left = False
    room.pending_wrap = False

    if wrapped:
        room.current_round += 1

    if room.current_round > room.max_rounds or not room.players:
        end_game(room)
        return False
    return True


def end_game(room: Room) -> None:
    room.phase = "GAME_OVER"
    room.secret_word = ""
    room.word_choices = []
    room.remaining_seconds = 0
    room.drawer_index = 0
    for p in room.players:
        p.is_drawer = False
        p.has_guessed = False
    room.bump_generation()


def reset_game(room: Room) -> None:
    if room.phase != "GAME_OVER":
        raise InvalidTransitionError("reset game", room.phase)

    room.phase = "LOBBY"
    room.current_round = 0
    room.drawer_index = 0
    for p in room.players:
        p.score = 0
    room.bump_generation()


# ---- chat / guesses ----

def normalize_guess(text: str) -> str:
    return text.strip().casefold()


def sanitize_message(text: str, limit: int = 200) -> str:
    """Escape markup, then cap the escaped text at ``limit`` characters.

    A cut that lands inside an entity such as ``&lt;`` drops the partial entity.
    """
    escaped = str(escape(text))
    if len(escaped) <= limit:
        return escaped
    cut = escaped[:limit]
    amp = cut.rfind("&")
    if amp != -1 and ";" not in cut[amp:]:
        cut = cut[:amp]
    return cut


GuessKind = Literal["ignored", "chat", "correct", "already_guessed", "suppressed"]


@dataclass
class GuessResult:
    kind: GuessKind
    player: Player | None = None
    text: str = ""
    round_complete: bool = False


def all_guessed(room: Room) -> bool:
    guessers = room.guessers
    return bool(guessers) and all(p.has_guessed for p in guessers)


def submit_guess(room: Room, connection_id: str, message: str, limit: int = 200) -> GuessResult:
    """Classify a chat line and apply scoring for a correct guess."""
    player = room.find_player(connection_id)
    if player is None or not isinstance(message, str) or not message.strip():
        return GuessResult("ignored", player)

    guess = normalize_guess(message)
    secret = normalize_guess(room.secret_word)

    if room.phase == "DRAWING" and secret:
        if player.is_drawer:
            if secret in guess:
                return GuessResult("suppressed", player)
        elif player.has_guessed:
            if secret in guess:
                return GuessResult("already_guessed", player)
        elif guess == secret:
            player.has_guessed = True
            player.score += GUESSER_POINTS
            drawer = room.drawer
            if drawer is not None:
                drawer.score += DRAWER_POINTS
            return GuessResult("correct", player, round_complete=all_guessed(room))

    return GuessResult("chat", player, text=sanitize_message(message, limit))


def can_draw(room: Room, player: Player) -> bool:
    """Only the drawer draws during a round; anyone may doodle in the lobby or after the game."""
    if room.phase == "DRAWING":
        return player.is_drawer
    return room.phase in ("LOBBY", "GAME_OVER")


# ---- views ----

def public_state(room: Room) -> dict:
    return {
        "roomId": room.id,
        "state": room.phase,
        "currentRound": room.current_round,
        "maxRounds": room.max_rounds,
        "players": [p.public() for p in room.players],
    }


def room_summary(room: Room) -> dict:
    return {"id": room.id, "players": len(room.players), "state": room.phase}
