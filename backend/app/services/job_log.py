from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional

from backend.app.db.store import InventoryStore
from backend.app.services.reconciler import SyncResult

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    RUNNING = "running"
    SYNCING = "syncing"
    COMPLETED = "completed"
    FAILED = "failed"


TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.RUNNING: frozenset({JobStatus.SYNCING, JobStatus.FAILED}),
    JobStatus.SYNCING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    pass


class ScrapeJobLog:
    """Lifecycle of one ScrapeLog row: running -> syncing -> completed/failed."""

    def __init__(self, store: InventoryStore, log_id: int, status: JobStatus = JobStatus.RUNNING):
        self.store = store
        self.log_id = log_id
        self.status = status

    @classmethod
    def start(cls, store: InventoryStore) -> "ScrapeJobLog":
        log_id = store.create_scrape_log(started_at=datetime.now(timezone.utc), status=JobStatus.RUNNING.value)
        logger.info("Scrape log %d started", log_id)
        return cls(store, log_id)

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]

    def _advance(self, target: JobStatus) -> None:
        if target not in TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"scrape log {self.log_id}: {self.status.value} -> {target.value}")
        self.status = target

    def begin_sync(self, *, found: int, skipped: int = 0) -> None:
        self._advance(JobStatus.SYNCING)
        self.store.update_scrape_log(
            self.log_id,
            status=self.status.value,
            vehicles_found=found,
            vehicles_skipped=skipped,
        )
        logger.info("Scrape log %d syncing %d vehicles (%d skipped)", self.log_id, found, skipped)

    def complete(self, result: SyncResult) -> None:
        self._advance(JobStatus.COMPLETED)
        self.store.update_scrape_log(
            self.log_id,
            status=self.status.value,
            vehicles_added=result.added,
            vehicles_updated=result.updated,
            vehicles_removed=result.removed,
            completed_at=datetime.now(timezone.utc),
        )
        logger.info("Scrape log %d completed", self.log_id)

    def fail(self, message: Optional[str]) -> None:
        self._advance(JobStatus.FAILED)
        self.store.update_scrape_log(
            self.log_id,
            status=self.status.value,
            error_message=message,
            completed_at=datetime.now(timezone.utc),
        )
        logger.info("Scrape log %d failed: %s", self.log_id, message)
