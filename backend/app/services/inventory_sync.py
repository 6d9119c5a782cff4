from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from backend.app.core.rate_limit import RequestPacer
from backend.app.core.settings import settings
from backend.app.db.store import InventoryStore
from backend.app.services.job_log import ScrapeJobLog
from backend.app.services.page_fetcher import PageFetcher
from backend.app.services.reconciler import sync_vehicles
from backend.app.services.scrape_orchestrator import InventoryScraper

logger = logging.getLogger(__name__)

LOCK_NAME = "inventory-sync"

FetcherFactory = Callable[[], PageFetcher]


class SyncInProgressError(RuntimeError):
    def __init__(self, active_log_id: Optional[int]):
        super().__init__("Sync already running")
        self.active_log_id = active_log_id


@dataclass
class SyncReport:
    log_id: int
    success: bool
    message: str
    found: int = 0
    skipped: int = 0
    added: int = 0
    updated: int = 0
    removed: int = 0
    error: Optional[str] = None

    def stats(self) -> Dict[str, Any]:
        data = asdict(self)
        return {key: data[key] for key in ("found", "added", "updated", "removed", "skipped")}


def _error_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


async def run_inventory_sync(
    store: InventoryStore,
    fetcher_factory: FetcherFactory,
    *,
    base_url: Optional[str] = None,
    delay_seconds: Optional[float] = None,
    lock_ttl_seconds: Optional[int] = None,
    pacer: Optional[RequestPacer] = None,
) -> SyncReport:
    """Run one scrape-and-reconcile cycle under the ``inventory-sync`` lock.

    Raises ``SyncInProgressError`` when another run holds the lock. Every
    other failure is recorded on the scrape log and reported, not raised.
    """
    ttl = lock_ttl_seconds if lock_ttl_seconds is not None else settings.sync_lock_ttl_seconds
    acquired_at = datetime.now(timezone.utc)
    if not store.acquire_lock(LOCK_NAME, now=acquired_at, ttl_seconds=ttl):
        raise SyncInProgressError(store.latest_active_scrape_log_id())

    try:
        job = ScrapeJobLog.start(store)
        return await _run(job, store, fetcher_factory, base_url=base_url, delay_seconds=delay_seconds, pacer=pacer)
    finally:
        store.release_lock(LOCK_NAME, acquired_at=acquired_at)


async def _run(
    job: ScrapeJobLog,
    store: InventoryStore,
    fetcher_factory: FetcherFactory,
    *,
    base_url: Optional[str],
    delay_seconds: Optional[float],
    pacer: Optional[RequestPacer],
) -> SyncReport:
    if pacer is None:
        pacer = RequestPacer(delay_seconds if delay_seconds is not None else settings.scrape_delay_seconds)

    try:
        async with fetcher_factory() as fetcher:
            run = await InventoryScraper(fetcher, base_url=base_url, pacer=pacer).run()
    except Exception as exc:
        logger.exception("Scrape failed before sync")
        message = _error_message(exc)
        job.fail(message)
        return SyncReport(log_id=job.log_id, success=False, message="Scrape failed", error=message)

    found = len(run.vehicles)
    skipped = len(run.skipped)

    try:
        job.begin_sync(found=found, skipped=skipped)
        result = sync_vehicles(run.vehicles, store)
    except Exception as exc:
        logger.exception("Sync failed after %d vehicles scraped", found)
        message = _error_message(exc)
        job.fail(message)
        return SyncReport(
            log_id=job.log_id,
            success=False,
            message="Scrape failed",
            found=found,
            skipped=skipped,
            error=message,
        )

    job.complete(result)
    return SyncReport(
        log_id=job.log_id,
        success=True,
        message="Scrape completed successfully",
        found=found,
        skipped=skipped,
        added=result.added,
        updated=result.updated,
        removed=result.removed,
    )
