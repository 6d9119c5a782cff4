#!/usr/bin/env python3
"""Run one inventory sync from cron.

Usage:
  python scripts/run_inventory_sync.py
  python scripts/run_inventory_sync.py --source-url https://dealer.example --delay 2 --http

Exits 0 on a completed run, 1 on a failed run and 2 when another sync
already holds the lock.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.core.logging_config import configure_logging
from backend.app.core.settings import settings
from backend.app.db.store import SqlAlchemyInventoryStore
from backend.app.services.inventory_sync import SyncInProgressError, run_inventory_sync
from backend.app.services.page_fetcher import HttpxFetcher, PlaywrightFetcher


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Scrape the source inventory site and sync the local catalog.")
    ap.add_argument("--source-url", default=settings.source_site_url, help="Base URL of the source inventory site")
    ap.add_argument("--delay", type=float, default=settings.scrape_delay_seconds, help="Seconds between detail pages")
    ap.add_argument("--http", action="store_true", help="Fetch with plain HTTP instead of a headless browser")
    ap.add_argument("--log-level", default=settings.log_level)
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    fetcher_factory = HttpxFetcher if args.http else PlaywrightFetcher
    try:
        report = asyncio.run(
            run_inventory_sync(
                SqlAlchemyInventoryStore(),
                fetcher_factory,
                base_url=args.source_url,
                delay_seconds=args.delay,
            )
        )
    except SyncInProgressError as exc:
        print(json.dumps({"success": False, "log_id": exc.active_log_id, "error": str(exc)}))
        return 2
    print(json.dumps({"success": report.success, "log_id": report.log_id, "message": report.message,
                      "error": report.error, "stats": report.stats()}))
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
