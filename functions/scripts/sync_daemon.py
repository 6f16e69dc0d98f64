"""
Daemon that periodically mirrors the upstream API and serves manual sync
triggers queued through the HTTP API.
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
from shared.types import SyncType
from sync_pipeline.worker import build_orchestrator, run_loop, run_sync

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="PS99 API mirror sync daemon")
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=settings.sync_interval_seconds,
        help="Seconds between scheduled syncs",
    )
    parser.add_argument(
        "--jitter-seconds",
        type=int,
        default=settings.sync_jitter_seconds,
        help="Max random jitter added to the interval",
    )
    parser.add_argument(
        "--no-initial-sync",
        action="store_true",
        help="Wait one interval before the first scheduled sync",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scheduled sync and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    orchestrator = build_orchestrator(settings=settings)
    if args.once:
        result = run_sync(orchestrator, SyncType.SCHEDULED)
        return 0 if result is not None and result.ok else 1

    run_loop(
        orchestrator=orchestrator,
        interval_seconds=args.interval_seconds,
        jitter_seconds=args.jitter_seconds,
        run_immediately=not args.no_initial_sync,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
