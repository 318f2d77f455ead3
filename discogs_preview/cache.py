"""In-memory, time-bounded cache for query results."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable

log = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 10 * 60
CACHE_MAX_ENTRIES = 50


@dataclass(frozen=True)
class FilterKey:
    """Composite key for a filtered sub-result within one query session."""

    us_only: bool = False
    vg_plus: bool = False
    selected: int | None = None  # match index, or None for the aggregate

    @property
    def is_filtered(self) -> bool:
        return self.us_only or self.vg_plus


@dataclass
class _Entry:
    value: Any
    stored_at: float


class SearchCache:
    """TTL cache with an entry cap.

    Eviction drops expired entries first, then the oldest by timestamp until
    there is room for one more.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        max_entries: int = CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.stored_at > self.ttl

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None or self._expired(entry, self._clock()):
            return None
        return entry.value

    def peek(self, key: Hashable) -> Any | None:
        """Return a value even if expired; expired entries linger until the next prune."""
        entry = self._entries.get(key)
        return entry.value if entry else None

    def set(self, key: Hashable, value: Any) -> None:
        self._entries.pop(key, None)
        self.prune()
        self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def prune(self) -> None:
        now = self._clock()
        for key in [k for k, e in self._entries.items() if self._expired(e, now)]:
            del self._entries[key]
        while self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k].stored_at)
            log.debug("cache full, evicting %r", oldest)
            del self._entries[oldest]
