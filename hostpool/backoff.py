"""Backoff strategies used to decide how long a failed backend stays disabled.

Strategies are immutable values: ``next()`` and ``reset()`` return new
instances, so the same configured strategy can seed any number of backends.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import Protocol

# initial * 2**64 is past any sane ceiling, larger exponents only risk overflow
_MAX_EXPONENT = 64


class BackoffStrategy(Protocol):
    def delay(self) -> float:
        """Seconds to wait before the next attempt."""
        ...

    def next(self) -> "BackoffStrategy":
        """Strategy for the attempt after this one."""
        ...

    def reset(self) -> "BackoffStrategy":
        """Strategy as it was before any failure."""
        ...


@dataclass(frozen=True)
class ExponentialBackoff:
    """Exponential backoff with jitter.

    For ``attempt == 0`` the delay is ``initial``. For ``attempt == k`` the
    base delay is ``min(initial * 2**k, max)``; with a jitter factor ``j`` the
    returned delay is drawn uniformly from ``[base * (1 - j), base]``.
    """

    initial: float = 0.3
    max: float = 10.0
    jitter: float = 0.5
    attempt: int = 0

    def __post_init__(self) -> None:
        if self.initial <= 0:
            raise ValueError(f"initial must be positive, got {self.initial}")
        if self.max < self.initial:
            raise ValueError(f"max ({self.max}) must be >= initial ({self.initial})")
        if not 0 <= self.jitter <= 1:
            raise ValueError(f"jitter must be within [0, 1], got {self.jitter}")
        if self.attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {self.attempt}")

    def base_delay(self) -> float:
        if self.attempt == 0:
            return self.initial
        exponent = min(self.attempt, _MAX_EXPONENT)
        return min(self.initial * 2**exponent, self.max)

    def delay(self) -> float:
        base = self.base_delay()
        if self.attempt == 0 or self.jitter == 0:
            return base
        return min(random.uniform(base * (1 - self.jitter), base), base)

    def next(self) -> ExponentialBackoff:
        return replace(self, attempt=self.attempt + 1)

    def reset(self) -> ExponentialBackoff:
        return replace(self, attempt=0)
