from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from backend.app.core.rate_limit import RequestPacer
from backend.app.core.settings import settings
from backend.app.parsers._inventory_common import (
    SKIP_EXTRACTION_ERROR,
    SKIP_FETCH_ERROR,
    DetailOutcome,
    ListingRef,
    ScrapedVehicle,
)
from backend.app.parsers.dws import (
    DETAIL_READY_SELECTOR,
    LISTING_READY_SELECTOR,
    parse_listings,
    parse_vehicle_detail,
)
from backend.app.services.page_fetcher import FetchError, PageFetcher

logger = logging.getLogger(__name__)


@dataclass
class ScrapeRun:
    listings: List[ListingRef] = field(default_factory=list)
    vehicles: List[ScrapedVehicle] = field(default_factory=list)
    skipped: List[Tuple[ListingRef, str]] = field(default_factory=list)


class InventoryScraper:
    """Walks the source inventory: index page once, then each detail page in turn.

    Detail pages are fetched strictly one at a time with a fixed pause after
    each, whatever the outcome. Only a failure on the index page propagates.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        base_url: Optional[str] = None,
        inventory_path: Optional[str] = None,
        pacer: Optional[RequestPacer] = None,
    ):
        self.fetcher = fetcher
        self.base_url = (base_url or settings.source_site_url).rstrip("/")
        self.inventory_path = inventory_path or settings.inventory_path
        self.pacer = pacer or RequestPacer(settings.scrape_delay_seconds)

    @property
    def inventory_url(self) -> str:
        return f"{self.base_url}/{self.inventory_path.lstrip('/')}"

    async def run(self) -> ScrapeRun:
        run = ScrapeRun(listings=await self.fetch_listings())

        for listing in run.listings:
            try:
                outcome = await self._scrape_detail(listing)
            finally:
                await self.pacer.wait()
            if outcome.vehicle is not None:
                run.vehicles.append(outcome.vehicle)
            else:
                run.skipped.append((listing, outcome.skipped_reason or "unknown"))

        logger.info(
            "Scraped %d of %d listings (%d skipped)",
            len(run.vehicles),
            len(run.listings),
            len(run.skipped),
        )
        return run

    async def fetch_listings(self) -> List[ListingRef]:
        logger.info("Fetching inventory page: %s", self.inventory_url)
        html = await self.fetcher.render(self.inventory_url, wait_for=LISTING_READY_SELECTOR)
        listings = parse_listings(html, self.base_url)
        logger.info("Found %d vehicle listings", len(listings))
        return listings

    async def _scrape_detail(self, listing: ListingRef) -> DetailOutcome:
        logger.info("Scraping: %s - %s", listing.label, listing.detail_url)
        try:
            html = await self.fetcher.render(listing.detail_url, wait_for=DETAIL_READY_SELECTOR)
        except FetchError as exc:
            logger.warning("Skipping %s: %s", listing.detail_url, exc)
            return DetailOutcome.skipped(SKIP_FETCH_ERROR)
        except Exception as exc:
            logger.warning("Skipping %s: unexpected %s: %s", listing.detail_url, type(exc).__name__, exc)
            return DetailOutcome.skipped(SKIP_EXTRACTION_ERROR)
        return parse_vehicle_detail(listing, html)
