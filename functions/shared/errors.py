"""
Error taxonomy shared by the sync pipeline and the HTTP API.
"""

from __future__ import annotations


class MirrorError(Exception):
    """Base class for errors raised by the mirror."""


class FetchExhausted(MirrorError):
    """The upstream resource could not be fetched after all retries."""

    def __init__(self, url: str, attempts: int, reason: str):
        super().__init__(f"Failed to fetch {url} after {attempts} attempts: {reason}")
        self.url = url
        self.attempts = attempts
        self.reason = reason


class Unsplittable(MirrorError):
    """An oversized payload whose data is neither a list nor a mapping."""

    def __init__(self, name: str, data_type: str):
        super().__init__(f"Cannot split {name}: data of type {data_type}")
        self.name = name
        self.data_type = data_type


class NotSynced(MirrorError):
    """The requested record has not been written by a sync run yet."""

    def __init__(self, what: str):
        super().__init__(f"{what} not synced yet")
        self.what = what


class StoreFault(MirrorError):
    """An I/O error against the document store."""


class ChunkMissing(StoreFault):
    """A chunk advertised by a metadata record does not exist."""

    def __init__(self, name: str, index: int, chunk_count: int):
        super().__init__(
            f"Chunk {index} of {chunk_count} missing for {name}"
        )
        self.name = name
        self.index = index
        self.chunk_count = chunk_count


class SyncSkipped(MirrorError):
    """Another sync run currently holds the run lock."""

    def __init__(self, owner: str, expires_at: float):
        super().__init__(f"Sync run {owner} holds the lock until {expires_at:.0f}")
        self.owner = owner
        self.expires_at = expires_at
