"""Clock abstraction so backoff windows can be tested without sleeping."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float:
        """Return monotonic time in seconds."""
        ...


class SystemClock:
    """Default clock, delegates to time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class MockClock:
    """Controllable clock for tests.

    Example:
        clock = MockClock()
        pool = Pool(clock=clock)
        ...
        clock.advance(0.3)
        assert pool.host_is_available()
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        return self._current

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Cannot go back in time: {seconds}")
        self._current += seconds
