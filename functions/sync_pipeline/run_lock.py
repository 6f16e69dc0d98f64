"""
Leased run lock stored as a singleton record.

Overlapping sync runs would interleave chunk writes for the same records.
A run takes the lease before doing any work and releases it when done; a
crashed run's lease simply expires.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from mirror_api.store import RecordStore
from shared.errors import SyncSkipped
from shared.firebase_constants import SYNC_COLLECTION, SYNC_LOCK_DOC
from shared.types import RunLease

logger = logging.getLogger(__name__)


class RunLock:
    def __init__(
        self,
        store: RecordStore,
        *,
        lease_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.lease_seconds = lease_seconds
        self._clock = clock

    def current(self) -> Optional[RunLease]:
        record = self.store.get(SYNC_COLLECTION, SYNC_LOCK_DOC)
        if not record or not record.get("owner"):
            return None
        return RunLease(owner=record["owner"], expires_at=float(record.get("expiresAt", 0)))

    def acquire(self, owner: str) -> RunLease:
        """
        Takes the lease for `owner`.

        This is a read followed by a write, not a transaction; two runs
        starting within the same instant can both succeed.

        Raises:
            SyncSkipped: If another owner holds an unexpired lease.
        """
        now = self._clock()
        held = self.current()
        if held and held.owner != owner and not held.is_expired(now):
            raise SyncSkipped(held.owner, held.expires_at)
        if held and held.owner != owner:
            logger.warning("Taking over expired sync lease from %s", held.owner)

        lease = RunLease(owner=owner, expires_at=now + self.lease_seconds)
        self.store.set(
            SYNC_COLLECTION,
            SYNC_LOCK_DOC,
            {"owner": lease.owner, "expiresAt": lease.expires_at, "acquiredAt": now},
        )
        return lease

    def release(self, owner: str) -> None:
        held = self.current()
        if held is None or held.owner != owner:
            logger.warning("Sync lease no longer owned by %s, not releasing", owner)
            return
        self.store.delete(SYNC_COLLECTION, SYNC_LOCK_DOC)

    @contextmanager
    def held(self, owner: str) -> Iterator[RunLease]:
        lease = self.acquire(owner)
        try:
            yield lease
        finally:
            self.release(owner)
