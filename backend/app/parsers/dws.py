"""DWS dealer-website inventory parser.

The index page embeds per-vehicle metadata as ``data-vehicle-*`` attributes
on each card's image slider; detail pages expose labelled vehicle fields keyed
by icon class, a price block, an image carousel and free-form seller notes.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ._inventory_common import (
    SKIP_EXTRACTION_ERROR,
    SKIP_MISSING_VIN,
    DetailOutcome,
    ListingRef,
    ScrapedVehicle,
    clean_text,
    parse_mileage,
    parse_price,
    parse_year,
)

logger = logging.getLogger(__name__)

LISTING_CARD_SELECTOR = ".vlp-image-slider[data-vehicle-stock-number]"
LISTING_WRAPPER_CLASSES = ["dws-listing-vehicle-info-wrapper", "item-vehicle"]
DETAIL_LINK_SELECTOR = "a.view-details-link, a.view-details-button"
INVENTORY_LINK_SELECTOR = "a[href*='/inventory/']"

# Selectors that signal the page finished client-side rendering.
LISTING_READY_SELECTOR = ".vlp-image-slider"
DETAIL_READY_SELECTOR = ".dws-vehicle-fields-wrap"

PRICE_SELECTOR = ".dws-vdp-single-field-value-vehicleprice"
IMAGE_SELECTOR = ".dws-media-slide-image.lslide[data-thumb]"
FEATURE_SELECTOR = ".dws-vdp-features-container li"
SELLER_NOTES_SELECTOR = ".dws-vdp-seller-notes-container"

THUMBNAIL_SIZE = "/1024/768/"
FULL_SIZE = "/1920/1080/"

DISCLAIMER_PHRASES = (
    "informational purposes",
    "cannot guarantee",
    "subject to prior sale",
)

# attribute on ScrapedVehicle -> DWS field icon key
DETAIL_FIELDS: Dict[str, str] = {
    "vin": "vin",
    "mileage": "mileage",
    "transmission": "transmission",
    "drivetrain": "drivetrain",
    "exterior_color": "exterior-color",
    "interior_color": "interior-color",
    "fuel_type": "fuel-type",
    "engine": "engine",
}


def parse_listings(html: str, base_url: str) -> List[ListingRef]:
    """Read the inventory index into listing references, one per detail URL."""
    soup = BeautifulSoup(html or "", "html.parser")
    listings: List[ListingRef] = []
    seen_urls = set()

    for slider in soup.select(LISTING_CARD_SELECTOR):
        stock_number = (slider.get("data-vehicle-stock-number") or "").strip()
        card = slider.find_parent(class_=LISTING_WRAPPER_CLASSES) or slider
        detail_url = _find_detail_url(card, stock_number, base_url)
        if not detail_url:
            logger.debug("Skipping card without detail link (stock %r)", stock_number)
            continue
        if detail_url in seen_urls:
            continue
        seen_urls.add(detail_url)

        listings.append(
            ListingRef(
                detail_url=detail_url,
                stock_number=stock_number,
                year=parse_year(slider.get("data-vehicle-year")),
                make=(slider.get("data-vehicle-make") or "").strip(),
                model=(slider.get("data-vehicle-model") or "").strip(),
                body_style=(slider.get("data-vehicle-body-type") or "").strip(),
                engine=(slider.get("data-vehicle-engine") or "").strip(),
                trim=(slider.get("data-vehicle-trim") or "").strip(),
            )
        )
    return listings


def _find_detail_url(card: Tag, stock_number: str, base_url: str) -> Optional[str]:
    for link in card.select(DETAIL_LINK_SELECTOR):
        href = (link.get("href") or "").strip()
        if "/inventory/" in href:
            return urljoin(base_url, href)

    if not stock_number:
        return None
    needle = f"/{stock_number.lower()}"
    for link in card.select(INVENTORY_LINK_SELECTOR):
        href = (link.get("href") or "").strip()
        if needle in href.lower():
            return urljoin(base_url, href)
    return None


def parse_vehicle_detail(listing: ListingRef, html: str) -> DetailOutcome:
    """Extract one vehicle from its detail page.

    Never raises: malformed markup or a missing VIN yields a skipped outcome
    so one bad page cannot abort the whole scrape.
    """
    try:
        return _parse_vehicle_detail(listing, html)
    except Exception as exc:
        logger.warning("Failed to extract %s: %s", listing.detail_url, exc)
        return DetailOutcome.skipped(SKIP_EXTRACTION_ERROR)


def _parse_vehicle_detail(listing: ListingRef, html: str) -> DetailOutcome:
    soup = BeautifulSoup(html or "", "html.parser")
    fields = {attr: _dws_field(soup, key) for attr, key in DETAIL_FIELDS.items()}

    vin = (fields["vin"] or listing.stock_number or "").strip().upper()
    if not vin:
        logger.warning("No VIN found for %s", listing.detail_url)
        return DetailOutcome.skipped(SKIP_MISSING_VIN)

    price_node = soup.select_one(PRICE_SELECTOR)
    short_description, long_description = _split_seller_notes(soup)

    vehicle = ScrapedVehicle(
        vin=vin,
        stock_number=listing.stock_number or None,
        year=listing.year,
        make=listing.make or "Unknown",
        model=listing.model or "Unknown",
        trim=listing.trim or None,
        price=parse_price(price_node.get_text(" ") if price_node else None),
        mileage=parse_mileage(fields["mileage"]),
        exterior_color=fields["exterior_color"],
        interior_color=fields["interior_color"],
        transmission=fields["transmission"],
        fuel_type=fields["fuel_type"],
        body_style=listing.body_style or None,
        drivetrain=fields["drivetrain"],
        engine=fields["engine"] or listing.engine or None,
        short_description=short_description,
        long_description=long_description,
        features=_extract_features(soup),
        images=_extract_images(soup),
        source_url=listing.detail_url,
    )
    logger.info(
        "Scraped %s %s %s - $%s - %d images",
        vehicle.year,
        vehicle.make,
        vehicle.model,
        vehicle.price if vehicle.price is not None else "N/A",
        len(vehicle.images),
    )
    return DetailOutcome.scraped(vehicle)


def _dws_field(soup: BeautifulSoup, key: str) -> Optional[str]:
    icon = soup.select_one(f".dws-icons-feature-{key}")
    if icon is None:
        return None
    wrap = icon.find_parent(class_="dws-vehicle-fields-wrap")
    if wrap is None:
        return None
    value = wrap.select_one(".dws-vehicle-fields-value")
    if value is None:
        return None
    return clean_text(value.get_text(" "))


def _extract_images(soup: BeautifulSoup) -> List[str]:
    images: List[str] = []
    for slide in soup.select(IMAGE_SELECTOR):
        thumb = (slide.get("data-thumb") or "").strip()
        if not thumb:
            continue
        url = thumb.replace(THUMBNAIL_SIZE, FULL_SIZE)
        if url not in images:
            images.append(url)
    return images


def _extract_features(soup: BeautifulSoup) -> List[str]:
    features: List[str] = []
    for item in soup.select(FEATURE_SELECTOR):
        text = clean_text(item.get_text(" "))
        if text and text not in features:
            features.append(text)
    return features


def _split_seller_notes(soup: BeautifulSoup) -> tuple[Optional[str], Optional[str]]:
    container = soup.select_one(SELLER_NOTES_SELECTOR)
    if container is None:
        return None, None

    paragraphs = []
    for node in container.find_all("p"):
        text = clean_text(node.get_text(" "))
        if text and len(text) > 1:
            paragraphs.append(text)
    if not paragraphs:
        return None, None

    body = [p for p in paragraphs[1:] if not _is_disclaimer(p)]
    return paragraphs[0], "\n\n".join(body) or None


def _is_disclaimer(paragraph: str) -> bool:
    lowered = paragraph.lower()
    return any(phrase in lowered for phrase in DISCLAIMER_PHRASES)
