"""
Dependency wiring for the FastAPI app and the sync worker.
"""

from __future__ import annotations

from fastapi import Request

from mirror_api.cache import TtlCache
from mirror_api.config import get_settings
from mirror_api.queue import InMemoryTriggerQueue, RedisTriggerQueue, TriggerQueue
from mirror_api.store import (
    FirestoreRecordStore,
    InMemoryRecordStore,
    RecordStore,
    initialize_firebase,
)
from sync_pipeline.fetch_utils import Fetcher

_record_store: RecordStore | None = None
_queue_client: TriggerQueue | None = None
_fetcher: Fetcher | None = None


def get_record_store() -> RecordStore:
    """
    Return a singleton record store so every request shares one Firestore client.
    """
    global _record_store
    if _record_store:
        return _record_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _record_store = InMemoryRecordStore()
    else:
        initialize_firebase(
            settings.google_application_credentials, settings.firebase_project_id
        )
        _record_store = FirestoreRecordStore()
    return _record_store


def get_queue_client() -> TriggerQueue:
    """
    Return a singleton queue client for dispatching sync triggers to the worker.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisTriggerQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryTriggerQueue()
    return _queue_client


def get_fetcher() -> Fetcher:
    global _fetcher
    if _fetcher:
        return _fetcher
    settings = get_settings()
    _fetcher = Fetcher(
        settings.upstream_base_url,
        timeout=settings.request_timeout_seconds,
        max_attempts=settings.fetch_max_attempts,
        base_delay=settings.fetch_base_delay_seconds,
    )
    return _fetcher


def get_cache(request: Request) -> TtlCache:
    """The read cache belongs to the app instance, not the process."""
    return request.app.state.cache
