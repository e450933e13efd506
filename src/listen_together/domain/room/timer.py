"""Single-shot cancellable timer driving a room's automatic advance."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class AutoNextTimer:
    """Wraps one ``loop.call_later`` handle.

    Arming always cancels the previous handle first, so at most one
    callback is pending at any time and a stale callback never fires.
    """

    def __init__(self, on_fire: Callable[[], None]) -> None:
        self._on_fire = on_fire
        self._handle: asyncio.TimerHandle | None = None
        self._delay: float | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def delay(self) -> float | None:
        """Delay in seconds of the currently armed callback, if any."""
        return self._delay if self._handle is not None else None

    def arm(self, delay_seconds: float) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._delay = max(0.0, delay_seconds)
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._delay = None

    def _fire(self) -> None:
        self._handle = None
        self._delay = None
        self._on_fire()
