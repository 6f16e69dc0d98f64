"""
Long-running sync worker.

Runs a scheduled sync every `sync_interval_seconds` and, between scheduled
runs, blocks on the trigger queue so manual syncs requested through the API
start promptly.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

from mirror_api.config import Settings, get_settings
from mirror_api.dependencies import get_fetcher, get_queue_client, get_record_store
from mirror_api.queue import TriggerQueue
from mirror_api.store import RecordStore
from shared.errors import SyncSkipped
from shared.types import SyncResult, SyncType
from sync_pipeline.fetch_utils import Fetcher
from sync_pipeline.run_lock import RunLock
from sync_pipeline.sync import SyncConfig, SyncOrchestrator

logger = logging.getLogger(__name__)

# Longest single wait on the queue, so schedule drift stays bounded.
MAX_QUEUE_WAIT_SECONDS = 60


def build_orchestrator(
    *,
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    fetcher: Optional[Fetcher] = None,
) -> SyncOrchestrator:
    settings = settings or get_settings()
    store = store or get_record_store()
    return SyncOrchestrator(
        fetcher or get_fetcher(),
        store,
        SyncConfig.from_settings(settings),
        lock=RunLock(store, lease_seconds=settings.sync_lock_lease_seconds),
    )


def run_sync(
    orchestrator: SyncOrchestrator,
    sync_type: SyncType,
    run_id: Optional[str] = None,
) -> Optional[SyncResult]:
    """Runs one sync. Returns None when another run holds the lock."""
    try:
        return orchestrator.run(sync_type, run_id=run_id)
    except SyncSkipped as exc:
        logger.warning("Skipping %s sync: %s", sync_type.value, exc)
        return None


def process_next(
    *,
    orchestrator: SyncOrchestrator,
    queue: Optional[TriggerQueue] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Consume one manual sync trigger and run it. Returns True if one was processed.
    """
    queue = queue or get_queue_client()
    trigger = queue.dequeue(block=block, timeout=timeout)
    if trigger is None:
        return False

    logger.info("Received manual sync trigger %s", trigger.job_id)
    run_sync(orchestrator, SyncType.MANUAL, run_id=trigger.job_id)
    return True


def run_loop(
    *,
    orchestrator: Optional[SyncOrchestrator] = None,
    queue: Optional[TriggerQueue] = None,
    interval_seconds: Optional[float] = None,
    jitter_seconds: Optional[float] = None,
    run_immediately: bool = True,
    max_iterations: Optional[int] = None,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """
    Polling loop intended to run under systemd/supervisor.

    `max_iterations` bounds the loop for tests; None runs forever.
    """
    settings = get_settings()
    orchestrator = orchestrator or build_orchestrator(settings=settings)
    queue = queue or get_queue_client()
    interval = interval_seconds if interval_seconds is not None else settings.sync_interval_seconds
    jitter = jitter_seconds if jitter_seconds is not None else settings.sync_jitter_seconds

    next_run = clock() if run_immediately else clock() + interval
    iterations = 0
    while max_iterations is None or iterations < max_iterations:
        iterations += 1
        now = clock()
        if now >= next_run:
            try:
                result = run_sync(orchestrator, SyncType.SCHEDULED)
                if result is not None and not result.ok:
                    logger.error("Scheduled sync failed: %s", result.error)
            except Exception as exc:
                logger.exception("Scheduled sync crashed: %s", exc)
            next_run = clock() + interval + random.uniform(0, jitter)
            logger.info("Next scheduled sync in %.1fs", next_run - clock())
            continue

        wait = int(min(max(next_run - now, 1), MAX_QUEUE_WAIT_SECONDS))
        try:
            process_next(
                orchestrator=orchestrator, queue=queue, block=True, timeout=wait
            )
        except Exception as exc:
            logger.exception("Manual sync crashed: %s", exc)

