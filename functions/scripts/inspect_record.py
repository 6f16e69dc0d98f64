"""
Print the shape of a stored record: whether it is chunked, how many chunks
it advertises, and what its data field holds.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mirror_api.dependencies import get_record_store
from mirror_api.store import RecordStore
from shared.errors import StoreFault
from shared.firebase_constants import API_DATA_COLLECTION
from sync_pipeline.chunking import read_payload

logger = logging.getLogger(__name__)


def describe(store: RecordStore, namespace: str, name: str) -> dict | None:
    record = store.get(namespace, name)
    if record is None:
        return None
    metadata = record.get("metadata") if isinstance(record.get("metadata"), dict) else None
    summary = {
        "keys": sorted(record.keys()),
        "hasMetadata": metadata is not None,
        "chunkCount": metadata.get("chunkCount") if metadata else None,
        "statusField": record.get("status"),
    }
    payload = read_payload(store, namespace, name)
    data = payload.get("data") if payload else None
    summary["dataType"] = type(data).__name__
    summary["dataLength"] = len(data) if isinstance(data, (list, dict)) else None
    return summary


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect a mirrored record")
    parser.add_argument("name", help="Record name, e.g. exists_data")
    parser.add_argument(
        "--namespace",
        default=API_DATA_COLLECTION,
        help="Firestore collection holding the record",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    try:
        summary = describe(get_record_store(), args.namespace, args.name)
    except StoreFault as exc:
        logger.error("Could not read %s/%s: %s", args.namespace, args.name, exc)
        return 1
    if summary is None:
        print("NOT FOUND")
        return 0
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
