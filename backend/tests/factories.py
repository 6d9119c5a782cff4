from __future__ import annotations

from typing import Dict, List, Optional, Union

from backend.app.parsers._inventory_common import ListingRef, ScrapedVehicle


def make_vehicle(vin: str, images: Optional[List[str]] = None, **overrides) -> ScrapedVehicle:
    values: Dict[str, object] = {
        "vin": vin,
        "year": 2021,
        "make": "Porsche",
        "model": "911",
        "source_url": f"https://www.elpaseoauto.com/inventory/porsche/911/{vin.lower()}",
        "price": 142000,
        "mileage": 4500,
        "images": list(images) if images is not None else [f"https://cdn.example.com/{vin}/1.jpg"],
    }
    values.update(overrides)
    return ScrapedVehicle(**values)


def make_listing(stock_number: str, **overrides) -> ListingRef:
    values: Dict[str, object] = {
        "detail_url": f"https://www.elpaseoauto.com/inventory/porsche/911/{stock_number.lower()}",
        "stock_number": stock_number,
        "year": 2021,
        "make": "Porsche",
        "model": "911",
    }
    values.update(overrides)
    return ListingRef(**values)


BASE_URL = "https://dealer.test"


def build_index(stock_numbers: List[str]) -> str:
    cards = []
    for stock in stock_numbers:
        cards.append(
            f"""
            <div class="item-vehicle">
              <div class="vlp-image-slider" data-vehicle-stock-number="{stock}"
                   data-vehicle-year="2022" data-vehicle-make="BMW" data-vehicle-model="M4"></div>
              <a class="view-details-link" href="/inventory/bmw/m4/{stock.lower()}">View Details</a>
            </div>
            """
        )
    return f"<html><body>{''.join(cards)}</body></html>"


def build_detail(vin: str, price: str = "$75,000") -> str:
    return f"""
    <html><body>
      <span class="dws-vdp-single-field-value-vehicleprice">{price}</span>
      <div class="dws-vehicle-fields-wrap">
        <i class="dws-icons-feature-vin"></i>
        <span class="dws-vehicle-fields-value">{vin}</span>
      </div>
      <div class="dws-media-slide-image lslide" data-thumb="https://cdn.test/1024/768/{vin}.jpg"></div>
    </body></html>
    """


def detail_url(stock: str) -> str:
    return f"{BASE_URL}/inventory/bmw/m4/{stock.lower()}"


class FakeFetcher:
    def __init__(self, pages: Dict[str, Union[str, Exception]]):
        self._pages = dict(pages)
        self.calls: List[tuple[str, Optional[str]]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def render(self, url: str, *, wait_for: Optional[str] = None) -> str:
        self.calls.append((url, wait_for))
        if url not in self._pages:
            raise AssertionError(f"Unexpected fetch of {url}")
        page = self._pages[url]
        if isinstance(page, Exception):
            raise page
        return page
