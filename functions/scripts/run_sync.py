"""
Run one full sync of the upstream API into Firestore and exit.

Exit codes: 0 on success, 1 when the run failed, 2 when another run holds
the sync lock.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mirror_api.config import get_settings
from shared.errors import SyncSkipped
from shared.types import SyncType
from sync_pipeline.worker import build_orchestrator

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Mirror the upstream API into Firestore")
    parser.add_argument(
        "--type",
        choices=[sync_type.value for sync_type in SyncType],
        default=SyncType.MANUAL.value,
        help="Sync type recorded in the sync metadata",
    )
    parser.add_argument(
        "--clans-max-pages",
        type=int,
        default=None,
        help="Stop the clans listing after N pages (default: all pages)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    if args.clans_max_pages is not None:
        settings = settings.model_copy(update={"clans_max_pages": args.clans_max_pages})
    orchestrator = build_orchestrator(settings=settings)

    try:
        result = orchestrator.run(SyncType(args.type))
    except SyncSkipped as exc:
        logger.warning("Sync not started: %s", exc)
        return 2

    logger.info(
        "Results: %d stored, %d failed, %d collections, %d clans",
        result.successful,
        result.failed,
        result.collection_count,
        result.clan_count,
    )
    if result.failed_resources:
        logger.warning("Failed resources: %s", ", ".join(result.failed_resources))
    if not result.ok:
        logger.error("Sync failed: %s", result.error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
