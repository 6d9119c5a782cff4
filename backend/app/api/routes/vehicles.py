from fastapi import APIRouter, Depends, HTTPException

from backend.app.api.deps import get_store
from backend.app.db.store import InventoryStore

router = APIRouter()

@router.get("/{vin}")
async def vehicle_detail(vin: str, store: InventoryStore = Depends(get_store)):
    """Return the persisted vehicle and its images in display order."""
    vehicle = store.get_vehicle(vin.strip().upper())
    if vehicle is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return {"vehicle": vehicle, "images": store.list_images(vehicle["vin"])}
