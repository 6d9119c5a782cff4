from fastapi import FastAPI

from backend.app.core.logging_config import configure_logging
from backend.app.core.settings import settings
from .routes import scrape, vehicles

configure_logging(settings.log_level)

app = FastAPI(title="Inventory Sync API", version="0.1.0")

app.include_router(scrape.router, prefix="/scrape", tags=["scrape"])
app.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
