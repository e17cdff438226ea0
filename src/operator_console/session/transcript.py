from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from src.operator_console.domain.models.session import TranscriptEntry


class TranscriptAggregator:
    """Ordered, append-only log of dialogue turns for one session.

    Entries come from two places: the dialogue returned by the start call when
    an attempt is resumed (``seed``, once, before anything else) and the live
    stream (``append``). Nothing is ever reordered or removed, so subscribers
    can treat every notification as "scroll to the newest entry".
    """

    def __init__(self) -> None:
        self._entries: List[TranscriptEntry] = []
        self._seeded = False
        self._subscribers: List[Callable[[TranscriptEntry], None]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(tuple(self._entries))

    @property
    def entries(self) -> Tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    @property
    def latest(self) -> Optional[TranscriptEntry]:
        return self._entries[-1] if self._entries else None

    def subscribe(self, callback: Callable[[TranscriptEntry], None]) -> None:
        self._subscribers.append(callback)

    def seed(self, entries: Iterable[TranscriptEntry]) -> None:
        if self._seeded or self._entries:
            raise RuntimeError("Transcript can only be seeded once, before live entries")
        self._seeded = True
        for entry in entries:
            self._push(entry)

    def append(self, role: str, message: str, timestamp: Optional[str] = None) -> TranscriptEntry:
        entry = TranscriptEntry(
            role=role,
            message=message,
            timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        )
        self._push(entry)
        return entry

    def append_entry(self, entry: TranscriptEntry) -> TranscriptEntry:
        self._push(entry)
        return entry

    def _push(self, entry: TranscriptEntry) -> None:
        self._entries.append(entry)
        for callback in self._subscribers:
            callback(entry)
