from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from backend.app.core.rate_limit import RequestPacer
from backend.app.parsers._inventory_common import SKIP_EXTRACTION_ERROR, SKIP_FETCH_ERROR
from backend.app.parsers.dws import DETAIL_READY_SELECTOR, LISTING_READY_SELECTOR
from backend.app.services.page_fetcher import FetchError
from backend.app.services.scrape_orchestrator import InventoryScraper
from backend.tests.factories import BASE_URL, FakeFetcher, build_detail, build_index, detail_url

FIXTURE_DIR = Path(__file__).parents[1] / "parsers" / "fixtures" / "dws"


def _scraper(fetcher: FakeFetcher, pacer: Optional[RequestPacer] = None) -> InventoryScraper:
    return InventoryScraper(fetcher, base_url=BASE_URL, inventory_path="/inventory", pacer=pacer or RequestPacer(0))


@pytest.mark.asyncio
async def test_run_collects_vehicles_in_listing_order():
    stocks = ["S1", "S2", "S3"]
    pages = {f"{BASE_URL}/inventory": build_index(stocks)}
    pages.update({detail_url(s): build_detail(f"WBS00000000000{i:03d}") for i, s in enumerate(stocks)})
    fetcher = FakeFetcher(pages)

    run = await _scraper(fetcher).run()

    assert [v.vin for v in run.vehicles] == ["WBS00000000000000", "WBS00000000000001", "WBS00000000000002"]
    assert run.skipped == []
    assert run.vehicles[0].price == 75000
    assert run.vehicles[0].images == ["https://cdn.test/1920/1080/WBS00000000000000.jpg"]
    assert fetcher.calls[0] == (f"{BASE_URL}/inventory", LISTING_READY_SELECTOR)
    assert all(wait_for == DETAIL_READY_SELECTOR for _, wait_for in fetcher.calls[1:])


@pytest.mark.asyncio
async def test_one_bad_detail_page_is_skipped_and_run_continues():
    stocks = ["S1", "S2", "S3", "S4", "S5"]
    pages = {f"{BASE_URL}/inventory": build_index(stocks)}
    pages.update({detail_url(s): build_detail(f"VIN{s}") for s in stocks})
    pages[detail_url("S3")] = FetchError("Timed out loading page")
    fetcher = FakeFetcher(pages)

    run = await _scraper(fetcher).run()

    assert len(run.listings) == 5
    assert [v.vin for v in run.vehicles] == ["VINS1", "VINS2", "VINS4", "VINS5"]
    assert [(listing.stock_number, reason) for listing, reason in run.skipped] == [("S3", SKIP_FETCH_ERROR)]


@pytest.mark.asyncio
async def test_unexpected_detail_error_is_skipped():
    pages = {f"{BASE_URL}/inventory": build_index(["S1", "S2"])}
    pages[detail_url("S1")] = RuntimeError("page crashed")
    pages[detail_url("S2")] = build_detail("VINS2")

    run = await _scraper(FakeFetcher(pages)).run()

    assert [v.vin for v in run.vehicles] == ["VINS2"]
    assert run.skipped[0][1] == SKIP_EXTRACTION_ERROR


@pytest.mark.asyncio
async def test_pacer_waits_after_every_listing_even_on_failure():
    sleeps: List[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    pages = {f"{BASE_URL}/inventory": build_index(["S1", "S2", "S3"])}
    pages[detail_url("S1")] = build_detail("VINS1")
    pages[detail_url("S2")] = FetchError("boom")
    pages[detail_url("S3")] = build_detail("VINS3")
    pacer = RequestPacer(1.0, sleep=fake_sleep)

    await _scraper(FakeFetcher(pages), pacer=pacer).run()

    assert sleeps == [1.0, 1.0, 1.0]
    assert pacer.waits == 3


@pytest.mark.asyncio
async def test_index_page_failure_is_fatal():
    fetcher = FakeFetcher({f"{BASE_URL}/inventory": FetchError("Timed out loading inventory")})

    with pytest.raises(FetchError):
        await _scraper(fetcher).run()


@pytest.mark.asyncio
async def test_run_against_fixture_pages():
    base = "https://www.elpaseoauto.com"
    inventory = (FIXTURE_DIR / "inventory.html").read_text(encoding="utf-8")
    detail = (FIXTURE_DIR / "detail.html").read_text(encoding="utf-8")
    no_vin = (FIXTURE_DIR / "detail_no_vin.html").read_text(encoding="utf-8")
    fetcher = FakeFetcher(
        {
            f"{base}/inventory": inventory,
            f"{base}/inventory/porsche/911/ep1234": detail,
            f"{base}/inventory/mercedes-benz/g-class/ep2000": no_vin,
            f"{base}/inventory/land-rover/defender/nostock": no_vin,
        }
    )

    run = await InventoryScraper(fetcher, base_url=base, inventory_path="inventory", pacer=RequestPacer(0)).run()

    assert [v.vin for v in run.vehicles] == ["WP0AB2A92MS221234", "EP2000"]
    assert len(run.skipped) == 1
