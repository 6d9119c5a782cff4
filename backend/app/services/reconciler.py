from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Sequence

from backend.app.db.store import ImageRow, InventoryStore
from backend.app.parsers._inventory_common import ScrapedVehicle

logger = logging.getLogger(__name__)

# Vehicle columns populated from the source site. Anything else on the row
# (is_featured in particular) belongs to the admin panel.
SCRAPED_FIELDS = (
    "stock_number",
    "year",
    "make",
    "model",
    "trim",
    "price",
    "mileage",
    "exterior_color",
    "interior_color",
    "transmission",
    "fuel_type",
    "body_style",
    "drivetrain",
    "engine",
    "short_description",
    "long_description",
    "source_url",
)


@dataclass(frozen=True)
class SyncResult:
    added: int = 0
    updated: int = 0
    removed: int = 0


def build_image_rows(urls: Sequence[str]) -> List[ImageRow]:
    """Full-replace image set: dense positions in scrape order, first is primary."""
    return [ImageRow(url=url, position=index, is_primary=index == 0) for index, url in enumerate(urls)]


def _insert_fields(vehicle: ScrapedVehicle) -> Dict[str, Any]:
    fields = {name: getattr(vehicle, name) for name in SCRAPED_FIELDS}
    fields.update(vin=vehicle.vin, features=list(vehicle.features), is_sold=False)
    return fields


def _update_fields(vehicle: ScrapedVehicle) -> Dict[str, Any]:
    # A field missing from this scrape keeps its last known value.
    fields = {name: getattr(vehicle, name) for name in SCRAPED_FIELDS if getattr(vehicle, name) is not None}
    fields.update(features=list(vehicle.features), is_sold=False)
    return fields


def _unique_by_vin(scraped: Iterable[ScrapedVehicle]) -> List[ScrapedVehicle]:
    unique: Dict[str, ScrapedVehicle] = {}
    for vehicle in scraped:
        vin = vehicle.vin.upper()
        if vin in unique:
            logger.warning("Duplicate VIN %s in scrape (%s); keeping first", vin, vehicle.source_url)
            continue
        unique[vin] = vehicle if vehicle.vin == vin else replace(vehicle, vin=vin)
    return list(unique.values())


def sync_vehicles(scraped: Iterable[ScrapedVehicle], store: InventoryStore) -> SyncResult:
    """Reconcile a scraped snapshot against persisted inventory by VIN.

    Known VINs are updated (and un-sold) with their images replaced, new VINs
    are inserted, and unsold VINs missing from the snapshot are marked sold.
    Nothing is ever deleted.
    """
    existing = store.existing_inventory()
    vehicles = _unique_by_vin(scraped)

    added = 0
    updated = 0
    for vehicle in vehicles:
        images = build_image_rows(vehicle.images)
        if vehicle.vin in existing:
            store.update_vehicle(vehicle.vin, _update_fields(vehicle), images)
            updated += 1
        else:
            store.insert_vehicle(_insert_fields(vehicle), images)
            added += 1

    scraped_vins = {vehicle.vin for vehicle in vehicles}
    removed = 0
    for vin, is_sold in existing.items():
        if vin in scraped_vins or is_sold:
            continue
        store.mark_sold(vin)
        removed += 1

    result = SyncResult(added=added, updated=updated, removed=removed)
    logger.info("Sync complete: %d added, %d updated, %d marked sold", added, updated, removed)
    return result
