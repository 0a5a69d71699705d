from __future__ import annotations

import threading
from typing import Callable


class TickLoop:
    """
    Periodic driver for display state while a transport is active.

    `step()` returns False to end the loop; `cancel()` (from any thread)
    ends it at the next wait. A cancelled loop stays cancelled; use one
    loop per transport run.
    """

    def __init__(self, refresh_hz: float):
        self.interval_s = 1.0 / max(refresh_hz, 1.0)
        self._cancelled = threading.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        self._cancelled.set()

    def run(self, step: Callable[[], bool]) -> int:
        """Run until step() says stop or the loop is cancelled; returns ticks run."""
        self._running = True
        ticks = 0
        try:
            while not self._cancelled.is_set():
                ticks += 1
                if not step():
                    break
                self._cancelled.wait(self.interval_s)
        finally:
            self._running = False
        return ticks
