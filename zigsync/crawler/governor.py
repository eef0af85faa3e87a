from __future__ import annotations

import time
from typing import Callable


class DelayGovernor:
    """Enforce a minimum spacing between outbound requests.

    ``wait()`` is called right before a request; it sleeps only for whatever
    part of ``min_interval`` has not already elapsed since the previous call.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = float(min_interval)
        self._clock = clock
        self._sleep = sleep
        self._last_at: float | None = None

    def should_delay(self) -> float:
        if self._last_at is None:
            return 0.0
        remaining = self._last_at + self.min_interval - self._clock()
        return remaining if remaining > 0 else 0.0

    def mark(self) -> None:
        self._last_at = self._clock()

    def wait(self) -> float:
        delay = self.should_delay()
        if delay > 0:
            self._sleep(delay)
        self.mark()
        return delay
