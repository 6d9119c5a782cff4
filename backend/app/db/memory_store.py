from __future__ import annotations

import itertools
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from backend.app.db.store import ACTIVE_LOG_STATUSES, ImageRow, VehicleNotFoundError, lock_is_stale

VEHICLE_DEFAULTS = {"is_featured": False, "is_sold": False}


class InMemoryInventoryStore:
    """Dict-backed ``InventoryStore`` with the same semantics as the SQL store."""

    def __init__(self):
        self.vehicles: Dict[str, Dict[str, Any]] = {}
        self.images: Dict[int, List[Dict[str, Any]]] = {}
        self.logs: Dict[int, Dict[str, Any]] = {}
        self.locks: Dict[str, datetime] = {}
        self._vehicle_ids = itertools.count(1)
        self._image_ids = itertools.count(1)
        self._log_ids = itertools.count(1)

    def existing_inventory(self) -> Dict[str, bool]:
        return {vin: bool(vehicle["is_sold"]) for vin, vehicle in self.vehicles.items()}

    def insert_vehicle(self, fields: Dict[str, Any], images: Sequence[ImageRow]) -> int:
        vin = fields["vin"]
        if vin in self.vehicles:
            raise ValueError(f"duplicate VIN {vin}")
        now = datetime.now(timezone.utc)
        vehicle_id = next(self._vehicle_ids)
        self.vehicles[vin] = {
            **VEHICLE_DEFAULTS,
            **deepcopy(fields),
            "id": vehicle_id,
            "created_at": now,
            "updated_at": now,
        }
        self.images[vehicle_id] = self._image_rows(vehicle_id, images)
        return vehicle_id

    def update_vehicle(self, vin: str, fields: Dict[str, Any], images: Sequence[ImageRow]) -> None:
        vehicle = self.vehicles.get(vin)
        if vehicle is None:
            raise VehicleNotFoundError(vin)
        replacement = self._image_rows(vehicle["id"], images)
        vehicle.update(deepcopy(fields))
        vehicle["updated_at"] = datetime.now(timezone.utc)
        self.images[vehicle["id"]] = replacement

    def _image_rows(self, vehicle_id: int, images: Sequence[ImageRow]) -> List[Dict[str, Any]]:
        return [
            {
                "id": next(self._image_ids),
                "vehicle_id": vehicle_id,
                "url": image.url,
                "position": image.position,
                "is_primary": image.is_primary,
            }
            for image in images
        ]

    def mark_sold(self, vin: str) -> None:
        vehicle = self.vehicles.get(vin)
        if vehicle is None:
            raise VehicleNotFoundError(vin)
        vehicle["is_sold"] = True
        vehicle["updated_at"] = datetime.now(timezone.utc)

    def get_vehicle(self, vin: str) -> Optional[Dict[str, Any]]:
        vehicle = self.vehicles.get(vin)
        return deepcopy(vehicle) if vehicle else None

    def list_images(self, vin: str) -> List[Dict[str, Any]]:
        vehicle = self.vehicles.get(vin)
        if vehicle is None:
            return []
        rows = self.images.get(vehicle["id"], [])
        return sorted(deepcopy(rows), key=lambda row: row["position"])

    def create_scrape_log(self, *, started_at: datetime, status: str) -> int:
        log_id = next(self._log_ids)
        self.logs[log_id] = {
            "id": log_id,
            "started_at": started_at,
            "completed_at": None,
            "status": status,
            "vehicles_found": None,
            "vehicles_skipped": None,
            "vehicles_added": None,
            "vehicles_updated": None,
            "vehicles_removed": None,
            "error_message": None,
        }
        return log_id

    def update_scrape_log(self, log_id: int, **changes: Any) -> None:
        if log_id not in self.logs:
            raise LookupError(f"scrape log {log_id} not found")
        self.logs[log_id].update(changes)

    def get_scrape_log(self, log_id: int) -> Optional[Dict[str, Any]]:
        log = self.logs.get(log_id)
        return dict(log) if log else None

    def latest_active_scrape_log_id(self) -> Optional[int]:
        active = [log for log in self.logs.values() if log["status"] in ACTIVE_LOG_STATUSES]
        if not active:
            return None
        return max(active, key=lambda log: (log["started_at"], log["id"]))["id"]

    def acquire_lock(self, name: str, *, now: datetime, ttl_seconds: int) -> bool:
        acquired_at = self.locks.get(name)
        if acquired_at is not None and not lock_is_stale(acquired_at, now, ttl_seconds):
            return False
        self.locks[name] = now
        return True

    def release_lock(self, name: str, *, acquired_at: datetime) -> None:
        if self.locks.get(name) == acquired_at:
            del self.locks[name]
