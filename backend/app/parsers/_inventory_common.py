"""Common records and text helpers for parsing dealer inventory pages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

DIGITS_RE = re.compile(r"\d+")
NOISE_RE = re.compile(r"[,$\s]")

SKIP_MISSING_VIN = "missing_vin"
SKIP_FETCH_ERROR = "fetch_error"
SKIP_EXTRACTION_ERROR = "extraction_error"


@dataclass(frozen=True)
class ListingRef:
    detail_url: str
    stock_number: str
    year: int
    make: str
    model: str
    body_style: str = ""
    engine: str = ""
    trim: str = ""

    @property
    def label(self) -> str:
        return f"{self.year} {self.make} {self.model}".strip()


@dataclass
class ScrapedVehicle:
    vin: str
    year: int
    make: str
    model: str
    source_url: str
    stock_number: Optional[str] = None
    trim: Optional[str] = None
    price: Optional[int] = None
    mileage: Optional[int] = None
    exterior_color: Optional[str] = None
    interior_color: Optional[str] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    body_style: Optional[str] = None
    drivetrain: Optional[str] = None
    engine: Optional[str] = None
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    features: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DetailOutcome:
    """Either a scraped vehicle or the reason its listing was skipped."""

    vehicle: Optional[ScrapedVehicle] = None
    skipped_reason: Optional[str] = None

    @classmethod
    def scraped(cls, vehicle: ScrapedVehicle) -> "DetailOutcome":
        return cls(vehicle=vehicle)

    @classmethod
    def skipped(cls, reason: str) -> "DetailOutcome":
        return cls(skipped_reason=reason)


def _first_digit_run(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    match = DIGITS_RE.search(NOISE_RE.sub("", raw))
    if not match:
        return None
    return int(match.group(0))


def parse_price(raw: Optional[str]) -> Optional[int]:
    """Whole currency units from text such as ``"$142,000"``."""
    return _first_digit_run(raw)


def parse_mileage(raw: Optional[str]) -> Optional[int]:
    return _first_digit_run(raw)


def parse_year(raw: Optional[str]) -> int:
    value = _first_digit_run(raw)
    return value or 0


def clean_text(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    text = " ".join(raw.split())
    return text or None
