"""
Per-instance TTL cache for read responses.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional


@dataclass
class CacheEntry:
    payload: Any
    timestamp: float


class TtlCache:
    """
    Maps a cache key to (payload, timestamp).

    Each key belongs to an endpoint class (e.g. "collection" for
    "collection:Pets"); the class selects the TTL, falling back to
    `default_ttl`. The clock is injectable so tests can move time.
    """

    def __init__(
        self,
        ttls: Mapping[str, float],
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttls = dict(ttls)
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(endpoint: str, param: Optional[str] = None) -> str:
        return endpoint if param is None else f"{endpoint}:{param}"

    def ttl_for(self, key: str) -> float:
        endpoint = key.split(":", 1)[0]
        return self._ttls.get(endpoint, self._default_ttl)

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp >= self.ttl_for(key):
                del self._entries[key]
                return None
            return entry.payload

    def set(self, key: str, payload: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(payload=payload, timestamp=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
