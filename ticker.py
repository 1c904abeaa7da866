"""Periodic elapsed-time ticker."""

from __future__ import annotations

import threading
from typing import Callable, Optional


class ElapsedTicker:
    """Calls ``on_tick`` every ``interval_s`` on a daemon thread until stopped.

    ``stop()`` does not join: a tick that is already running finishes on its
    own, so callers must ignore ticks from a ticker they have stopped.
    """

    def __init__(self, interval_s: float = 1.0) -> None:
        self._interval_s = interval_s
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def start(self, on_tick: Callable[[], None]) -> None:
        if self.running:
            return
        self._stop_event = threading.Event()
        stop_event = self._stop_event

        def _run() -> None:
            while not stop_event.wait(self._interval_s):
                on_tick()

        self._thread = threading.Thread(target=_run, name="elapsed-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        self._thread = None
