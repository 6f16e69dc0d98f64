"""
Size-bounded storage of upstream payloads.

Payloads that serialize below the threshold are written as a single record.
Larger payloads have their `data` field split into numbered chunk records
(`<name>_chunk_<i>`) described by a metadata record under the base name.
`read_payload` reverses the split.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from mirror_api.store import RecordStore
from shared.errors import ChunkMissing, StoreFault, Unsplittable
from shared.firebase_constants import chunk_doc_name
from shared.json_utils import convert_keys, serialized_size
from shared.types import ChunkMetadata, PayloadKind

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_BYTES = 900_000
SEQUENCE_CHUNK_SIZE = 100
KEYED_CHUNK_SIZE = 50

METADATA_FIELD = "metadata"
DATA_FIELD = "data"


@dataclass(frozen=True)
class SequencePayload:
    elements: list


@dataclass(frozen=True)
class KeyedPayload:
    entries: list[tuple[str, Any]]


SplittablePayload = Union[SequencePayload, KeyedPayload]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def classify(name: str, data: Any) -> SplittablePayload:
    """Decides once whether `data` splits as a sequence or as keyed entries."""
    if isinstance(data, list):
        return SequencePayload(elements=data)
    if isinstance(data, dict):
        return KeyedPayload(entries=list(data.items()))
    raise Unsplittable(name, type(data).__name__)


def split(
    payload: SplittablePayload,
    *,
    sequence_chunk_size: int = SEQUENCE_CHUNK_SIZE,
    keyed_chunk_size: int = KEYED_CHUNK_SIZE,
) -> list:
    """Returns contiguous runs; the last may be shorter. Never empty."""
    if isinstance(payload, SequencePayload):
        items = payload.elements
        return [
            items[i : i + sequence_chunk_size]
            for i in range(0, len(items), sequence_chunk_size)
        ] or [[]]
    entries = payload.entries
    return [
        dict(entries[i : i + keyed_chunk_size])
        for i in range(0, len(entries), keyed_chunk_size)
    ] or [{}]


def _kind_of(payload: SplittablePayload) -> PayloadKind:
    if isinstance(payload, SequencePayload):
        return PayloadKind.SEQUENCE
    return PayloadKind.KEYED


def _total_items(payload: SplittablePayload) -> int:
    if isinstance(payload, SequencePayload):
        return len(payload.elements)
    return len(payload.entries)


def write_chunked(
    store: RecordStore,
    namespace: str,
    name: str,
    payload: dict,
    *,
    sequence_chunk_size: int = SEQUENCE_CHUNK_SIZE,
    keyed_chunk_size: int = KEYED_CHUNK_SIZE,
) -> int:
    """
    Writes the metadata record then each chunk record, in order.

    The writes are not transactional: a failure part way leaves the metadata
    record advertising chunks that were never written. Readers detect that as
    ChunkMissing.

    Returns:
        int: The number of chunk records written.

    Raises:
        Unsplittable: If `payload["data"]` is neither a list nor a mapping.
        StoreFault: If a write fails.
    """
    splittable = classify(name, payload.get(DATA_FIELD))
    chunks = split(
        splittable,
        sequence_chunk_size=sequence_chunk_size,
        keyed_chunk_size=keyed_chunk_size,
    )
    metadata = ChunkMetadata(
        total_items=_total_items(splittable),
        chunk_count=len(chunks),
        kind=_kind_of(splittable),
        last_updated=_utc_now(),
    )
    extras = {
        key: value
        for key, value in payload.items()
        if key not in (DATA_FIELD, METADATA_FIELD)
    }
    metadata_json = convert_keys(asdict(metadata), "snake_to_camel")
    metadata_json["_lastUpdated"] = metadata_json.pop("lastUpdated")
    store.set(namespace, name, {**extras, METADATA_FIELD: metadata_json})

    for index, chunk in enumerate(chunks):
        store.set(
            namespace,
            chunk_doc_name(name, index),
            {"chunk": index, DATA_FIELD: chunk, "_size": serialized_size(chunk)},
        )
    return len(chunks)


def store_payload(
    store: RecordStore,
    namespace: str,
    name: str,
    payload: dict,
    *,
    threshold: int = DEFAULT_THRESHOLD_BYTES,
    sequence_chunk_size: int = SEQUENCE_CHUNK_SIZE,
    keyed_chunk_size: int = KEYED_CHUNK_SIZE,
) -> bool:
    """
    Stores `payload` directly when it serializes below `threshold` bytes,
    otherwise splits it into chunk records.

    Returns:
        bool: True when the payload (or every chunk of it) was written.
    """
    size = serialized_size(payload)
    size_kb = size / 1024
    try:
        if size < threshold:
            store.set(
                namespace,
                name,
                {**payload, "_size": size, "_lastUpdated": _utc_now()},
            )
            logger.info("Stored %s (%.1fKB)", name, size_kb)
            return True

        logger.info("Large document %s (%.1fKB), splitting", name, size_kb)
        chunk_count = write_chunked(
            store,
            namespace,
            name,
            payload,
            sequence_chunk_size=sequence_chunk_size,
            keyed_chunk_size=keyed_chunk_size,
        )
        logger.info("Stored %s in %d chunks", name, chunk_count)
        return True
    except Unsplittable as exc:
        logger.error("Failed to store %s (%.1fKB): %s", name, size_kb, exc)
        return False
    except StoreFault as exc:
        logger.error("Failed to store %s: %s", name, exc)
        return False


def _chunk_count(record: dict) -> Optional[int]:
    metadata = record.get(METADATA_FIELD)
    if not isinstance(metadata, dict):
        return None
    count = metadata.get("chunkCount")
    if isinstance(count, int) and not isinstance(count, bool) and count >= 1:
        return count
    return None


def read_payload(store: RecordStore, namespace: str, name: str) -> Optional[dict]:
    """
    Reads a record, reassembling it from chunks when it was split.

    Returns:
        Optional[dict]: The stored payload, or None when the base record
        does not exist. Reassembled payloads carry `isChunked: True`.

    Raises:
        ChunkMissing: If a chunk advertised by the metadata record is absent.
        StoreFault: If the store cannot be read.
    """
    record = store.get(namespace, name)
    if record is None:
        return None

    chunk_count = _chunk_count(record)
    if chunk_count is None:
        return record

    kind = record[METADATA_FIELD].get("kind")
    combined: Any = None
    for index in range(chunk_count):
        chunk = store.get(namespace, chunk_doc_name(name, index))
        if chunk is None:
            raise ChunkMissing(name, index, chunk_count)
        data = chunk.get(DATA_FIELD)
        if combined is None:
            if kind == PayloadKind.KEYED or (kind is None and isinstance(data, dict)):
                combined = {}
            else:
                combined = []
        if isinstance(combined, dict):
            combined.update(data or {})
        else:
            combined.extend(data or [])

    extras = {key: value for key, value in record.items() if key != METADATA_FIELD}
    logger.debug("Reassembled %s from %d chunks", name, chunk_count)
    return {**extras, DATA_FIELD: combined, "isChunked": True}
