"""
Queue abstraction carrying manual sync triggers from the API to the worker.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


@dataclass
class SyncTrigger:
    job_id: str
    requested_at: float

    @classmethod
    def new(cls) -> "SyncTrigger":
        return cls(job_id=uuid.uuid4().hex, requested_at=time.time())

    def encode(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def decode(cls, raw: str | bytes) -> "SyncTrigger":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        return cls(job_id=data["job_id"], requested_at=float(data["requested_at"]))


class TriggerQueue(Protocol):
    """Minimal queue interface for dispatching sync triggers to the worker."""

    def enqueue(self, trigger: SyncTrigger) -> None:
        ...

    def dequeue(
        self, *, block: bool = True, timeout: int | None = None
    ) -> Optional[SyncTrigger]:
        ...


@dataclass
class InMemoryTriggerQueue:
    """Simple FIFO queue for testing/dev. Blocking reads wait like BLPOP."""

    items: list[SyncTrigger] = field(default_factory=list)
    _ready: threading.Condition = field(
        default_factory=threading.Condition, init=False, repr=False, compare=False
    )

    def enqueue(self, trigger: SyncTrigger) -> None:
        with self._ready:
            self.items.append(trigger)
            self._ready.notify()

    def dequeue(
        self, *, block: bool = True, timeout: int | None = None
    ) -> Optional[SyncTrigger]:
        with self._ready:
            if block:
                # A timeout of 0 or None waits forever, as with BLPOP.
                self._ready.wait_for(lambda: self.items, timeout=timeout or None)
            if not self.items:
                return None
            return self.items.pop(0)


@dataclass
class RedisTriggerQueue:
    """Redis-backed queue using list push/pop operations."""

    url: str
    queue_key: str = "ps99-mirror:sync"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, trigger: SyncTrigger) -> None:
        self.client.rpush(self.queue_key, trigger.encode())

    def dequeue(
        self, *, block: bool = True, timeout: int | None = None
    ) -> Optional[SyncTrigger]:
        try:
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, raw = result
            else:
                raw = self.client.lpop(self.queue_key)
                if raw is None:
                    return None
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections. Reconnect and let the
            # worker loop poll again.
            logger.warning("Redis connection lost, reconnecting")
            self.client = redis.Redis.from_url(self.url)
            return None
        try:
            return SyncTrigger.decode(raw)
        except (ValueError, KeyError) as exc:
            logger.warning("Dropping malformed sync trigger %r: %s", raw, exc)
            return None
