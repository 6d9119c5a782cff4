from backend.app.db.store import InventoryStore, SqlAlchemyInventoryStore
from backend.app.services.inventory_sync import FetcherFactory
from backend.app.services.page_fetcher import PlaywrightFetcher


def get_store() -> InventoryStore:
    return SqlAlchemyInventoryStore()


def get_fetcher_factory() -> FetcherFactory:
    return PlaywrightFetcher
