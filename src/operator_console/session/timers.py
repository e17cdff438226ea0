from __future__ import annotations

import asyncio
from typing import Callable, Optional


class SingleSlotTimer:
    """A timer with room for exactly one pending callback.

    Scheduling replaces whatever was pending, which is what debouncing needs:
    only the callback from the last ``schedule`` call before a quiet period
    ever runs.
    """

    def __init__(self) -> None:
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None], delay: float) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback)

    def cancel(self) -> bool:
        """Drop the pending callback. Returns True if one was pending."""

        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
