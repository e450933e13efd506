"""Clock helpers.

All timeline arithmetic uses wall-clock milliseconds since the epoch, the
unit clients receive in ``startTimestamp`` and ``serverTime``. Components
that need a testable notion of "now" accept a ``Clock`` callable.
"""

from __future__ import annotations

import time
from collections.abc import Callable

Clock = Callable[[], float]
"""Zero-argument callable returning the current time in epoch milliseconds."""


def now_ms() -> float:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time() * 1000.0


def ms_to_seconds(value: float) -> float:
    return value / 1000.0


def seconds_to_ms(value: float) -> float:
    return value * 1000.0


class ManualClock:
    """A settable clock for deterministic tests and simulations."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self._now = start_ms

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new time in milliseconds."""
        self._now += seconds_to_ms(seconds)
        return self._now

    def set(self, value_ms: float) -> None:
        self._now = value_ms
