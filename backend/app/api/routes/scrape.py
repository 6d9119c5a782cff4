from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from backend.app.api.auth import require_sync_auth
from backend.app.api.deps import get_fetcher_factory, get_store
from backend.app.db.store import InventoryStore
from backend.app.services.inventory_sync import FetcherFactory, SyncInProgressError, run_inventory_sync

router = APIRouter(dependencies=[Depends(require_sync_auth)])

@router.post("")
async def trigger_scrape(
    store: InventoryStore = Depends(get_store),
    fetcher_factory: FetcherFactory = Depends(get_fetcher_factory),
):
    try:
        report = await run_inventory_sync(store, fetcher_factory)
    except SyncInProgressError as exc:
        return JSONResponse(
            status_code=409,
            content={"success": False, "log_id": exc.active_log_id, "error": "Sync already running"},
        )

    if not report.success:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "log_id": report.log_id,
                "error": report.message,
                "message": report.error,
            },
        )
    return {
        "success": True,
        "log_id": report.log_id,
        "message": report.message,
        "stats": report.stats(),
    }

@router.get("")
async def scrape_status(log_id: Optional[int] = None, store: InventoryStore = Depends(get_store)):
    if log_id is None:
        return {"status": "ready"}
    log = store.get_scrape_log(log_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Log not found")
    return log
