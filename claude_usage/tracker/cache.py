"""Parsed-file cache keyed by (path, modification time).

A changed file gets a new key on its next stat, so mutations are picked up
without any explicit invalidation. Entries also expire after ``timeout``
seconds. Each ``LogStoreReader`` owns one cache; nothing is process-global.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from claude_usage.tracker.models import UsageRecord

DEFAULT_TIMEOUT_SECONDS = 5 * 60

CacheKey = tuple[str, int]


@dataclass
class CacheEntry:
    records: list[UsageRecord]
    inserted_at: float


@dataclass
class CacheStats:
    size: int
    timeout: float  # seconds
    hits: int
    misses: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "timeout": self.timeout,
            "hits": self.hits,
            "misses": self.misses,
        }


class ReadCache:
    """TTL + mtime keyed map of parsed records.

    ``clock`` returns seconds; tests inject a fake one to control expiry.
    Insertion is guarded by a lock so readers on a thread pool can share it.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, path: str, mtime_ns: int) -> list[UsageRecord] | None:
        """Return cached records for this exact file version, or None."""
        key = (path, mtime_ns)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._evict_path(path)
                self.misses += 1
                return None
            if self._clock() - entry.inserted_at > self.timeout:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.records

    def put(self, path: str, mtime_ns: int, records: list[UsageRecord]) -> None:
        with self._lock:
            self._evict_path(path)
            self._entries[(path, mtime_ns)] = CacheEntry(records=records, inserted_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                timeout=self.timeout,
                hits=self.hits,
                misses=self.misses,
            )

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_path(self, path: str) -> None:
        # Caller holds the lock. Drops entries for older versions of the file.
        stale = [k for k in self._entries if k[0] == path]
        for k in stale:
            del self._entries[k]
