import os
import random
import sys
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

import pytest

# Ensure the backend root (containing the `sketchroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sketchroom.config import GameSettings
from sketchroom.game.engine import GameEngine
from sketchroom.game.registry import RoomRegistry
from sketchroom.game.words import DEFAULT_WORDS, WordBank
from sketchroom.server import EXTENSION_KEY, create_app


class ManualScheduler:
    """Collects background tasks instead of running them; sleeps are instant."""

    def __init__(self):
        self.tasks = []
        self.slept = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds=0):
        self.slept.append(seconds)

    def run_pending(self) -> int:
        tasks, self.tasks = self.tasks, []
        for target, args, kwargs in tasks:
            target(*args, **kwargs)
        return len(tasks)


@dataclass
class Sent:
    kind: str  # "room" or "sid"
    target: str
    event: str
    payload: Any
    skip_sid: Any = None


class RecordingGateway:
    def __init__(self):
        self.sent: list[Sent] = []
        self.members = defaultdict(set)

    def broadcast(self, room_id, event, payload, skip_sid=None):
        self.sent.append(Sent('room', room_id, event, payload, skip_sid))

    def send_to(self, connection_id, event, payload):
        self.sent.append(Sent('sid', connection_id, event, payload))

    def subscribe(self, connection_id, room_id):
        self.members[room_id].add(connection_id)

    def unsubscribe(self, connection_id, room_id):
        self.members[room_id].discard(connection_id)

    def events(self, event, kind=None):
        return [s for s in self.sent if s.event == event and (kind is None or s.kind == kind)]

    def payloads(self, event, kind=None):
        return [s.payload for s in self.events(event, kind)]

    def private(self, connection_id, event):
        return [s.payload for s in self.sent if s.kind == 'sid' and s.target == connection_id and s.event == event]

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def make_engine(scheduler, gateway):
    def _make(**overrides):
        settings = GameSettings(**overrides)
        registry = RoomRegistry(max_rounds=settings.max_rounds, default_room_id=settings.default_room_id)
        return GameEngine(
            registry=registry,
            gateway=gateway,
            scheduler=scheduler,
            settings=settings,
            word_bank=WordBank(DEFAULT_WORDS, rng=random.Random(7)),
        )

    return _make


@pytest.fixture()
def engine(make_engine):
    """Auto-assigned words so a started game goes straight to DRAWING."""
    return make_engine(word_selection_mode='auto')


class TestConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    CORS_ORIGINS = '*'
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = 'threading'
    MAX_PLAYERS = 5
    MAX_ROUNDS = 3
    ROUND_DURATION_SEC = 60
    ROUND_END_DELAY_SEC = 5
    CHOOSE_DURATION_SEC = 0
    WORD_SELECTION_MODE = 'choice'
    WORD_CHOICES_COUNT = 3
    CHAT_MAX_LENGTH = 200
    DEFAULT_ROOM_ID = 'default'
    EXTRA_WORDS = ''


@pytest.fixture()
def server(scheduler):
    application, sio = create_app(TestConfig, scheduler=scheduler)
    yield application, sio
    application.extensions[EXTENSION_KEY].shutdown()


@pytest.fixture()
def flask_app(server):
    return server[0]


@pytest.fixture()
def socketio(server):
    return server[1]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app, socketio):
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except Exception:
            pass
