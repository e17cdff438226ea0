from __future__ import annotations

import logging
from typing import Set

logger = logging.getLogger("session")


def start_key(user_id: int, task_id: str, scenario_title: str) -> str:
    return f"{user_id}:{task_id}:{scenario_title}"


class SessionGuard:
    """Registry of session starts currently in flight.

    A start for ``user:task:scenario`` first claims its key. While the key is
    claimed every other claim fails, so the same attempt is never started
    twice concurrently. The claim is released once the start call settles,
    whatever its outcome.

    Claim and release run on the event loop thread only; there is no await
    between the membership check and the insert.
    """

    def __init__(self) -> None:
        self._claimed: Set[str] = set()

    def try_claim(self, key: str) -> bool:
        if key in self._claimed:
            logger.debug("Start for %s already in flight", key)
            return False
        self._claimed.add(key)
        return True

    def release(self, key: str) -> None:
        self._claimed.discard(key)

    def is_claimed(self, key: str) -> bool:
        return key in self._claimed


# Process-wide instance shared by every controller unless one is injected.
session_guard = SessionGuard()
