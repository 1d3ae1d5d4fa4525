from __future__ import annotations

import logging
from threading import Event
from typing import Any, Callable, Protocol


logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """What the game needs from the async runtime.

    ``flask_socketio.SocketIO`` satisfies this directly, so background tasks
    run on eventlet greenlets or threads depending on the async mode.
    """

    def start_background_task(self, target: Callable[..., Any], *args: Any, **kwargs: Any) -> Any: ...

    def sleep(self, seconds: float = 0) -> Any: ...


class RoundTimer:
    """One-second countdown driving a room's DRAWING phase.

    ``on_tick`` runs after every interval and returns False to stop the
    countdown. Once cancelled, a tick that is already scheduled never calls
    ``on_tick``.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[], bool],
        interval: float = 1.0,
        name: str = "round-timer",
    ):
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._interval = interval
        self._cancelled = Event()
        self._started = False
        self.name = name
        self.ticks = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> "RoundTimer":
        if self._started:
            raise RuntimeError(f"{self.name} already started")
        self._started = True
        self._scheduler.start_background_task(self._run)
        return self

    def cancel(self) -> bool:
        """Returns True only for the call that actually cancelled the timer."""
        if self._cancelled.is_set():
            return False
        self._cancelled.set()
        logger.debug("[timer-cancel] %s after %s ticks", self.name, self.ticks)
        return True

    def _run(self) -> None:
        while not self._cancelled.is_set():
            self._scheduler.sleep(self._interval)
            if self._cancelled.is_set():
                return
            self.ticks += 1
            try:
                keep_going = self._on_tick()
            except Exception:
                logger.exception("[timer-error] %s tick %s failed", self.name, self.ticks)
                return
            if not keep_going:
                self._cancelled.set()
                return
