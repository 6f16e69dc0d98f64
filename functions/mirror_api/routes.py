"""
HTTP routes for the mirror API.

Every record-backed route goes cache -> record store (reassembling chunked
records) -> NotSynced. Exception handlers in `mirror_api.app` turn NotSynced
into 404 and StoreFault into 500.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from urllib.parse import quote

import requests
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, Response

from mirror_api.cache import TtlCache
from mirror_api.config import get_settings
from mirror_api.dependencies import (
    get_cache,
    get_fetcher,
    get_queue_client,
    get_record_store,
)
from mirror_api.queue import SyncTrigger, TriggerQueue
from mirror_api.schemas import (
    ApiResponse,
    HealthResponse,
    SyncTriggerData,
    SyncTriggerResponse,
)
from mirror_api.store import RecordStore
from shared import firebase_constants as names
from shared.errors import NotSynced
from sync_pipeline.chunking import read_payload
from sync_pipeline.fetch_utils import Fetcher

logger = logging.getLogger(__name__)

api_router = APIRouter()
router = APIRouter()


def _read(store: RecordStore, doc_name: str, what: str) -> dict:
    record = read_payload(store, names.API_DATA_COLLECTION, doc_name)
    if record is None:
        raise NotSynced(what)
    return record


def _serve(cache: TtlCache, key: str, load: Callable[[], Any]) -> dict:
    cached = cache.get(key)
    if cached is not None:
        logger.debug("Cache hit: %s", key)
        return cached
    response = {"status": "ok", "data": load()}
    cache.set(key, response)
    return response


def _data(record: dict, default: Any) -> Any:
    data = record.get("data")
    return default if data is None else data


@api_router.get("/collections", response_model=ApiResponse, response_model_exclude_none=True)
def list_collections(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    def load():
        data = _data(_read(store, names.COLLECTIONS_LIST_DOC, "Collections data"), [])
        return data if isinstance(data, list) else []

    return _serve(cache, TtlCache.make_key("collections"), load)


@api_router.get(
    "/collection/{collection_name}",
    response_model=ApiResponse,
    response_model_exclude_none=True,
)
def get_collection(
    collection_name: str,
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("collection", collection_name),
        lambda: _data(
            _read(
                store,
                names.collection_doc_name(collection_name),
                f"Collection {collection_name}",
            ),
            [],
        ),
    )


@api_router.get("/clansList", response_model=ApiResponse, response_model_exclude_none=True)
def get_clans_list(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("clansList"),
        lambda: _data(_read(store, names.CLANS_LIST_DOC, "Clans list"), []),
    )


@api_router.get("/clansTotal", response_model=ApiResponse, response_model_exclude_none=True)
def get_clans_total(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("clansTotal"),
        lambda: _data(_read(store, names.CLANS_TOTAL_DOC, "Clans total"), 0),
    )


@api_router.get("/clans", response_model=ApiResponse, response_model_exclude_none=True)
def get_clans(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("clans"),
        lambda: _data(_read(store, names.CLANS_ALL_DOC, "Clans data"), []),
    )


def _find_clan(clans: Any, clan_name: str) -> Optional[Any]:
    if isinstance(clans, dict):
        return clans.get(clan_name)
    if isinstance(clans, list):
        for clan in clans:
            if isinstance(clan, dict) and clan.get("Name") == clan_name:
                return clan
    return None


@api_router.get("/clan/{clan_name}", response_model=ApiResponse, response_model_exclude_none=True)
def get_clan(
    clan_name: str,
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    def load():
        detail = read_payload(
            store, names.API_DATA_COLLECTION, names.clan_detail_doc_name(clan_name)
        )
        if detail is not None:
            return _data(detail, {})
        clans = _read(store, names.CLANS_ALL_DOC, f"Clan {clan_name}")
        clan = _find_clan(clans.get("data"), clan_name)
        if clan is None:
            raise HTTPException(status_code=404, detail=f"Clan not found: {clan_name}")
        return clan

    return _serve(cache, TtlCache.make_key("clan", clan_name), load)


@api_router.get("/exists", response_model=ApiResponse, response_model_exclude_none=True)
def get_exists(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("exists"),
        lambda: _data(_read(store, names.EXISTS_DOC, "Exists data"), []),
    )


@api_router.get("/rap", response_model=ApiResponse, response_model_exclude_none=True)
def get_rap(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("rap"),
        lambda: _data(_read(store, names.RAP_DOC, "RAP data"), []),
    )


@api_router.get(
    "/activeClanBattle", response_model=ApiResponse, response_model_exclude_none=True
)
def get_active_clan_battle(
    store: RecordStore = Depends(get_record_store),
    cache: TtlCache = Depends(get_cache),
):
    return _serve(
        cache,
        TtlCache.make_key("activeClanBattle"),
        lambda: _data(
            _read(store, names.ACTIVE_CLAN_BATTLE_DOC, "Active clan battle"), {}
        ),
    )


@api_router.get("/sync/status", response_model=ApiResponse, response_model_exclude_none=True)
def get_sync_status(store: RecordStore = Depends(get_record_store)):
    metadata = store.get(names.SYNC_COLLECTION, names.SYNC_METADATA_DOC)
    if metadata is None:
        raise NotSynced("Sync metadata")
    return {"status": "ok", "data": metadata}


@api_router.post("/sync", response_model=SyncTriggerResponse, status_code=202)
def request_sync(queue: TriggerQueue = Depends(get_queue_client)):
    """
    Enqueue a manual sync. The worker picks it up between scheduled runs.
    """
    trigger = SyncTrigger.new()
    queue.enqueue(trigger)
    logger.info("Queued manual sync %s", trigger.job_id)
    return SyncTriggerResponse(
        data=SyncTriggerData(job_id=trigger.job_id, requested_at=trigger.requested_at)
    )


@router.get("/image/{image_id}")
def get_image(image_id: str, fetcher: Fetcher = Depends(get_fetcher)):
    url = get_settings().avatar_url_template.format(image_id=quote(image_id, safe=""))
    try:
        content, content_type = fetcher.fetch_bytes(url)
    except requests.RequestException as exc:
        logger.warning("Image %s unavailable: %s", image_id, exc)
        return JSONResponse(
            status_code=404, content={"status": "error", "error": "Image not found"}
        )
    return Response(
        content=content,
        media_type=content_type or "image/png",
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse()
