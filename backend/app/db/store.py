"""Persistence boundary for the inventory sync pipeline.

The reconciler, job log and pipeline only talk to an ``InventoryStore``;
``SqlAlchemyInventoryStore`` is the production implementation and
``backend.app.db.memory_store.InMemoryInventoryStore`` backs tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from backend.app.db import models
from backend.app.db.session import session_scope

ACTIVE_LOG_STATUSES = ("running", "syncing")


class VehicleNotFoundError(LookupError):
    """Raised when updating a VIN that has no persisted vehicle."""


@dataclass(frozen=True)
class ImageRow:
    url: str
    position: int
    is_primary: bool


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def lock_is_stale(acquired_at: datetime, now: datetime, ttl_seconds: int) -> bool:
    return _ensure_utc(acquired_at) <= _ensure_utc(now) - timedelta(seconds=ttl_seconds)


class InventoryStore(Protocol):
    def existing_inventory(self) -> Dict[str, bool]: ...

    def insert_vehicle(self, fields: Dict[str, Any], images: Sequence[ImageRow]) -> int: ...

    def update_vehicle(self, vin: str, fields: Dict[str, Any], images: Sequence[ImageRow]) -> None: ...

    def mark_sold(self, vin: str) -> None: ...

    def get_vehicle(self, vin: str) -> Optional[Dict[str, Any]]: ...

    def list_images(self, vin: str) -> List[Dict[str, Any]]: ...

    def create_scrape_log(self, *, started_at: datetime, status: str) -> int: ...

    def update_scrape_log(self, log_id: int, **changes: Any) -> None: ...

    def get_scrape_log(self, log_id: int) -> Optional[Dict[str, Any]]: ...

    def latest_active_scrape_log_id(self) -> Optional[int]: ...

    def acquire_lock(self, name: str, *, now: datetime, ttl_seconds: int) -> bool: ...

    def release_lock(self, name: str, *, acquired_at: datetime) -> None: ...


def _row_to_dict(row: Any) -> Dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


class SqlAlchemyInventoryStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _scope(self):
        return session_scope(self._session_factory)

    def existing_inventory(self) -> Dict[str, bool]:
        with self._scope() as session:
            rows = session.execute(select(models.Vehicle.vin, models.Vehicle.is_sold)).all()
        return {vin: bool(is_sold) for vin, is_sold in rows}

    def insert_vehicle(self, fields: Dict[str, Any], images: Sequence[ImageRow]) -> int:
        now = datetime.now(timezone.utc)
        with self._scope() as session:
            vehicle = models.Vehicle(**fields, created_at=now, updated_at=now)
            session.add(vehicle)
            session.flush()
            self._add_images(session, vehicle.id, images)
            return vehicle.id

    def update_vehicle(self, vin: str, fields: Dict[str, Any], images: Sequence[ImageRow]) -> None:
        # Field update and image replacement commit together; a reader never
        # sees the vehicle without images in between.
        with self._scope() as session:
            vehicle = session.execute(
                select(models.Vehicle).where(models.Vehicle.vin == vin)
            ).scalar_one_or_none()
            if vehicle is None:
                raise VehicleNotFoundError(vin)
            for name, value in fields.items():
                setattr(vehicle, name, value)
            vehicle.updated_at = datetime.now(timezone.utc)
            session.execute(delete(models.VehicleImage).where(models.VehicleImage.vehicle_id == vehicle.id))
            session.flush()
            self._add_images(session, vehicle.id, images)

    @staticmethod
    def _add_images(session, vehicle_id: int, images: Sequence[ImageRow]) -> None:
        session.add_all(
            models.VehicleImage(
                vehicle_id=vehicle_id,
                url=image.url,
                position=image.position,
                is_primary=image.is_primary,
            )
            for image in images
        )

    def mark_sold(self, vin: str) -> None:
        with self._scope() as session:
            vehicle = session.execute(
                select(models.Vehicle).where(models.Vehicle.vin == vin)
            ).scalar_one_or_none()
            if vehicle is None:
                raise VehicleNotFoundError(vin)
            vehicle.is_sold = True
            vehicle.updated_at = datetime.now(timezone.utc)

    def get_vehicle(self, vin: str) -> Optional[Dict[str, Any]]:
        with self._scope() as session:
            vehicle = session.execute(
                select(models.Vehicle).where(models.Vehicle.vin == vin)
            ).scalar_one_or_none()
            return _row_to_dict(vehicle) if vehicle else None

    def list_images(self, vin: str) -> List[Dict[str, Any]]:
        with self._scope() as session:
            stmt = (
                select(models.VehicleImage)
                .join(models.Vehicle, models.Vehicle.id == models.VehicleImage.vehicle_id)
                .where(models.Vehicle.vin == vin)
                .order_by(models.VehicleImage.position)
            )
            return [_row_to_dict(image) for image in session.execute(stmt).scalars().all()]

    def create_scrape_log(self, *, started_at: datetime, status: str) -> int:
        with self._scope() as session:
            log = models.ScrapeLog(started_at=started_at, status=status)
            session.add(log)
            session.flush()
            return log.id

    def update_scrape_log(self, log_id: int, **changes: Any) -> None:
        with self._scope() as session:
            log = session.get(models.ScrapeLog, log_id)
            if log is None:
                raise LookupError(f"scrape log {log_id} not found")
            for name, value in changes.items():
                setattr(log, name, value)

    def get_scrape_log(self, log_id: int) -> Optional[Dict[str, Any]]:
        with self._scope() as session:
            log = session.get(models.ScrapeLog, log_id)
            return _row_to_dict(log) if log else None

    def latest_active_scrape_log_id(self) -> Optional[int]:
        with self._scope() as session:
            return session.execute(
                select(models.ScrapeLog.id)
                .where(models.ScrapeLog.status.in_(ACTIVE_LOG_STATUSES))
                .order_by(models.ScrapeLog.started_at.desc(), models.ScrapeLog.id.desc())
                .limit(1)
            ).scalar_one_or_none()

    def acquire_lock(self, name: str, *, now: datetime, ttl_seconds: int) -> bool:
        try:
            with self._scope() as session:
                lock = session.get(models.SyncLock, name)
                if lock is None:
                    session.add(models.SyncLock(name=name, acquired_at=now))
                    return True
                if not lock_is_stale(lock.acquired_at, now, ttl_seconds):
                    return False
                # Take over only the stale row we read; a concurrent takeover leaves rowcount 0.
                result = session.execute(
                    update(models.SyncLock)
                    .where(models.SyncLock.name == name, models.SyncLock.acquired_at == lock.acquired_at)
                    .values(acquired_at=now),
                    execution_options={"synchronize_session": False},
                )
                return result.rowcount == 1
        except IntegrityError:
            # Another run inserted the row between our read and commit.
            return False

    def release_lock(self, name: str, *, acquired_at: datetime) -> None:
        with self._scope() as session:
            session.execute(
                delete(models.SyncLock).where(
                    models.SyncLock.name == name,
                    models.SyncLock.acquired_at == acquired_at,
                )
            )
