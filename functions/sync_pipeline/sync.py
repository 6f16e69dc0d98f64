"""
Mirrors every upstream resource into the record store in one sequential run.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from mirror_api.config import Settings
from mirror_api.store import RecordStore
from shared import firebase_constants as names
from shared.errors import FetchExhausted
from shared.json_utils import convert_keys
from shared.types import SyncMetadata, SyncResult, SyncStatus, SyncType
from sync_pipeline.chunking import (
    DEFAULT_THRESHOLD_BYTES,
    KEYED_CHUNK_SIZE,
    SEQUENCE_CHUNK_SIZE,
    store_payload,
)
from sync_pipeline.fetch_utils import Fetcher
from sync_pipeline.run_lock import RunLock

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_CLANS = ("SOPU", "RFIL", "V1LN", "GANG", "AR2Y")


@dataclass
class SyncConfig:
    threshold: int = DEFAULT_THRESHOLD_BYTES
    sequence_chunk_size: int = SEQUENCE_CHUNK_SIZE
    keyed_chunk_size: int = KEYED_CHUNK_SIZE
    clans_page_size: int = 100
    clans_max_pages: Optional[int] = None
    sample_clan_names: list[str] = field(
        default_factory=lambda: list(DEFAULT_SAMPLE_CLANS)
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfig":
        return cls(
            threshold=settings.chunk_threshold_bytes,
            sequence_chunk_size=settings.sequence_chunk_size,
            keyed_chunk_size=settings.keyed_chunk_size,
            clans_page_size=settings.clans_page_size,
            clans_max_pages=settings.clans_max_pages,
            sample_clan_names=list(settings.sample_clan_names),
        )


@dataclass
class _Tally:
    successful: int = 0
    failed: int = 0
    failed_resources: list[str] = field(default_factory=list)

    def record(self, name: str, stored: bool) -> None:
        if stored:
            self.successful += 1
        else:
            self.failed += 1
            self.failed_resources.append(name)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_payload(response: Any) -> dict:
    """Upstream bodies are usually `{status, data}`; wrap anything else."""
    if isinstance(response, dict):
        return response
    return {"data": response}


def _data_of(response: Any) -> Any:
    if isinstance(response, dict):
        return response.get("data")
    return response


class SyncOrchestrator:
    """
    Drives Fetcher -> chunked storage across the fixed resource plan.

    A failure on one resource is logged and counted; only a failure to list
    the collections aborts the run.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: RecordStore,
        config: Optional[SyncConfig] = None,
        *,
        lock: Optional[RunLock] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.fetcher = fetcher
        self.store = store
        self.config = config or SyncConfig()
        self.lock = lock
        self._clock = clock

    def run(
        self, sync_type: SyncType = SyncType.MANUAL, run_id: Optional[str] = None
    ) -> SyncResult:
        """
        Runs one full sync.

        Raises:
            SyncSkipped: If another run holds the run lock. The sync metadata
                record is left untouched in that case.
        """
        run_id = run_id or uuid.uuid4().hex
        if self.lock is None:
            return self._run(sync_type, run_id)
        with self.lock.held(run_id):
            return self._run(sync_type, run_id)

    def _store(self, tally: _Tally, name: str, payload: dict) -> bool:
        stored = store_payload(
            self.store,
            names.API_DATA_COLLECTION,
            name,
            payload,
            threshold=self.config.threshold,
            sequence_chunk_size=self.config.sequence_chunk_size,
            keyed_chunk_size=self.config.keyed_chunk_size,
        )
        tally.record(name, stored)
        return stored

    def _sync_resource(
        self, tally: _Tally, name: str, load: Callable[[], dict]
    ) -> bool:
        try:
            payload = load()
        except FetchExhausted as exc:
            logger.error("Skipping %s: %s", name, exc)
            tally.record(name, False)
            return False
        return self._store(tally, name, payload)

    def _write_metadata(self, payload: dict) -> None:
        self.store.set(
            names.SYNC_COLLECTION, names.SYNC_METADATA_DOC, payload, merge=True
        )

    def _fetch_collection_names(self) -> list[str]:
        response = self.fetcher.fetch_json(self.fetcher.api_url("collections"))
        collections = _data_of(response)
        if not isinstance(collections, list):
            raise ValueError("No collections found")
        return [str(name) for name in collections]

    def _fetch_clan_pages(self) -> list:
        page_size = self.config.clans_page_size
        max_pages = self.config.clans_max_pages
        clans: list = []
        page = 1
        while max_pages is None or page <= max_pages:
            url = self.fetcher.api_url(
                "clans",
                params={
                    "page": page,
                    "pageSize": page_size,
                    "sort": "Points",
                    "sortOrder": "desc",
                },
            )
            try:
                response = self.fetcher.fetch_json(url)
            except FetchExhausted as exc:
                logger.warning("Clans listing stopped at page %d: %s", page, exc)
                break
            data = _data_of(response)
            if not isinstance(data, list):
                logger.info("Clans listing page %d has no data, stopping", page)
                break
            clans.extend(data)
            logger.info("Page %d: %d clans (total: %d)", page, len(data), len(clans))
            if len(data) < page_size:
                break
            page += 1
        return clans

    def _run(self, sync_type: SyncType, run_id: str) -> SyncResult:
        timestamp = _utc_now()
        start = self._clock()
        logger.info("Starting %s sync %s", sync_type.value, run_id)
        self._write_metadata(
            {
                "lastSync": timestamp,
                "status": SyncStatus.IN_PROGRESS.value,
                "type": sync_type.value,
                "runId": run_id,
                "startTime": start,
            }
        )

        tally = _Tally()
        collections: list[str] = []
        clans: list = []
        api_url = self.fetcher.api_url
        fetch = self.fetcher.fetch_json
        try:
            collections = self._fetch_collection_names()
            logger.info("Found %d collections", len(collections))

            for collection in collections:
                self._sync_resource(
                    tally,
                    names.collection_doc_name(collection),
                    lambda collection=collection: {
                        "name": collection,
                        "data": _data_of(fetch(api_url("collection", collection))),
                    },
                )

            clans = self._fetch_clan_pages()
            if clans:
                self._store(
                    tally,
                    names.CLANS_ALL_DOC,
                    {"status": "ok", "data": clans, "totalClans": len(clans)},
                )
            else:
                logger.warning("No clans fetched, keeping previous %s", names.CLANS_ALL_DOC)
                tally.record(names.CLANS_ALL_DOC, False)

            singletons = (
                (names.CLANS_LIST_DOC, "clansList"),
                (names.CLANS_TOTAL_DOC, "clansTotal"),
                (names.RAP_DOC, "rap"),
                (names.EXISTS_DOC, "exists"),
                (names.ACTIVE_CLAN_BATTLE_DOC, "activeClanBattle"),
            )
            for doc_name, endpoint in singletons:
                self._sync_resource(
                    tally,
                    doc_name,
                    lambda endpoint=endpoint: _as_payload(fetch(api_url(endpoint))),
                )

            for clan_name in self.config.sample_clan_names:
                self._sync_resource(
                    tally,
                    names.clan_detail_doc_name(clan_name),
                    lambda clan_name=clan_name: {
                        "status": "ok",
                        "data": _data_of(fetch(api_url("clan", clan_name))),
                    },
                )

            self._store(
                tally,
                names.COLLECTIONS_LIST_DOC,
                {"status": "ok", "data": collections, "count": len(collections)},
            )
        except Exception as exc:
            logger.exception("Sync %s failed: %s", run_id, exc)
            end = self._clock()
            metadata = SyncMetadata(
                last_sync=timestamp,
                status=SyncStatus.FAILED,
                type=sync_type,
                run_id=run_id,
                successful=tally.successful,
                failed=tally.failed,
                collection_count=len(collections),
                clan_count=len(clans),
                duration=f"{end - start:.1f}s",
                start_time=start,
                end_time=end,
                error=str(exc),
            )
            self._write_metadata(convert_keys(asdict(metadata), "snake_to_camel"))
            return SyncResult(
                run_id=run_id,
                status=SyncStatus.FAILED,
                successful=tally.successful,
                failed=tally.failed,
                collection_count=len(collections),
                clan_count=len(clans),
                duration_seconds=end - start,
                error=str(exc),
                failed_resources=tally.failed_resources,
            )

        end = self._clock()
        metadata = SyncMetadata(
            last_sync=timestamp,
            status=SyncStatus.COMPLETE,
            type=sync_type,
            run_id=run_id,
            successful=tally.successful,
            failed=tally.failed,
            collection_count=len(collections),
            clan_count=len(clans),
            duration=f"{end - start:.1f}s",
            start_time=start,
            end_time=end,
        )
        self._write_metadata(convert_keys(asdict(metadata), "snake_to_camel"))
        logger.info(
            "Sync %s complete in %.1fs: %d stored, %d failed",
            run_id,
            end - start,
            tally.successful,
            tally.failed,
        )
        return SyncResult(
            run_id=run_id,
            status=SyncStatus.COMPLETE,
            successful=tally.successful,
            failed=tally.failed,
            collection_count=len(collections),
            clan_count=len(clans),
            duration_seconds=end - start,
            failed_resources=tally.failed_resources,
        )
