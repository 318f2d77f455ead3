"""Discogs sell-page parsing.

Sell pages are server-rendered HTML whose ``ships_from=``/``condition=``
query params are not reliably applied server-side, so every listing is
classified here. The page is split at each "Media Condition:" marker and
each block is checked against a handful of small named rules. Sidebar
condition filters also contain "Media Condition" headings and dollar
amounts; they never contain "Ships From:", which is what rejects them.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Mapping

from discogs_preview.grades import GRADE_LABELS, is_vg_plus_or_better

log = logging.getLogger(__name__)

PAGE_SIZE = 25
MAX_SCRAPE_PAGES = 2

_PAGINATION = re.compile(r"\d+\s*[-–—]\s*\d+\s+of\s+([\d,]+)")
_NO_RESULTS = re.compile(
    r"No\s+items\s+for\s+sale|(?<!\d)0\s+results|Sorry,\s+no\s+results",
    re.IGNORECASE,
)
_CONDITION_MARKER = re.compile(r"Media[\s-]+Condition\s*:", re.IGNORECASE)
_MEDIA_GRADE = re.compile(
    r"\s*(?:<[^>]*>\s*)*(" + "|".join(re.escape(g) for g in GRADE_LABELS) + ")"
)
_SHIPS_FROM_MARKER = re.compile(r"Ships\s+From\s*:", re.IGNORECASE)
_SHIPS_FROM = re.compile(
    r"Ships\s+From\s*:\s*(?:<[^>]*>\s*)*([A-Za-z\s]+)", re.IGNORECASE
)
_AMOUNT = re.compile(
    r"(?P<plus>\+\s*)?(?P<about>about\s+)?"
    r"(?P<cur>(?<![a-z])[a-z]{1,3}\$|(?<![a-z])\$|€|&euro;|£|&pound;)\s*"
    r"(?P<value>\d[\d,]*(?:\.\d+)?)",
    re.IGNORECASE,
)
_SHIPPING_BEFORE = re.compile(r"shipping\s*$", re.IGNORECASE)

_CURRENCY_CODES = {
    "$": "USD",
    "ca$": "CAD",
    "us$": "USD",
    "€": "EUR",
    "&euro;": "EUR",
    "£": "GBP",
    "&pound;": "GBP",
}


@dataclass(frozen=True)
class Listing:
    grade: str
    ships_from: str
    price: float | None  # USD; None when the currency could not be converted


@dataclass(frozen=True)
class PageParseResult:
    total: int
    on_page_count: int
    matched_count: int
    prices: list[float] = field(default_factory=list)
    lowest: float | None = None


# -- extraction rules --

def find_pagination_total(html: str) -> int | None:
    """Total from a "1 - 25 of 1,234" pagination header, or None."""
    m = _PAGINATION.search(html)
    if m is None:
        return None
    return int(m.group(1).replace(",", ""))


def has_no_results(html: str) -> bool:
    return _NO_RESULTS.search(html) is not None


def count_condition_markers(html: str) -> int:
    return len(_CONDITION_MARKER.findall(html))


def split_listing_blocks(html: str) -> list[str]:
    """One candidate block per condition marker; the preamble is dropped."""
    return _CONDITION_MARKER.split(html)[1:]


def match_media_grade(block: str) -> str | None:
    """Grade label directly after the split point, skipping markup."""
    m = _MEDIA_GRADE.match(block)
    return m.group(1) if m else None


def match_ships_from(block: str) -> str | None:
    m = _SHIPS_FROM.search(block)
    if m is None:
        return None
    return m.group(1).strip()


def convert_to_usd(
    amount: float, currency: str, currency_rates: Mapping[str, float] | None
) -> float | None:
    """Convert using a units-per-USD table; None for unknown currencies."""
    if currency == "USD":
        return amount
    rate = (currency_rates or {}).get(currency)
    if not rate:
        return None
    return round(amount / rate, 2)


def extract_price(
    block: str, currency_rates: Mapping[str, float] | None = None
) -> float | None:
    """Item price of one listing block, in USD.

    Skips "+$6.00" shipping add-ons, "about $94.12" conversion notes and
    "shipping $56.00" totals. A block showing a real USD amount uses the
    first one; a block priced only in a native currency converts its first
    amount through the rate table.
    """
    native: tuple[float, str] | None = None
    for m in _AMOUNT.finditer(block):
        if m.group("plus") or m.group("about"):
            continue
        if _SHIPPING_BEFORE.search(block[max(0, m.start() - 20):m.start()]):
            continue
        value = float(m.group("value").replace(",", ""))
        if value <= 0:
            continue
        # A$, NZ$ and other unlisted dollar prefixes stay unconvertible
        currency = _CURRENCY_CODES.get(m.group("cur").lower(), "")
        if currency == "USD":
            return value
        if native is None:
            native = (value, currency)
    if native is None:
        return None
    return convert_to_usd(native[0], native[1], currency_rates)


def parse_listing(
    block: str, currency_rates: Mapping[str, float] | None = None
) -> Listing | None:
    """Materialize a listing, or None for phantom/non-listing fragments."""
    if _AMOUNT.search(block) is None:
        return None
    grade = match_media_grade(block)
    if grade is None:
        return None
    if _SHIPS_FROM_MARKER.search(block) is None:
        return None
    return Listing(
        grade=grade,
        ships_from=match_ships_from(block) or "",
        price=extract_price(block, currency_rates),
    )


def listing_passes(listing: Listing, us_only: bool, vg_plus: bool) -> bool:
    # Only the media grade gates VG+; sleeve condition is ignored.
    if vg_plus and not is_vg_plus_or_better(listing.grade):
        return False
    if us_only and "united states" not in listing.ships_from.lower():
        return False
    return True


def parse_filtered_page(
    html: str,
    us_only: bool,
    vg_plus: bool,
    currency_rates: Mapping[str, float] | None = None,
) -> PageParseResult:
    """Count and price the listings of one sell page under the given filters."""
    html = html or ""
    pagination_total = find_pagination_total(html)
    if pagination_total is None and has_no_results(html):
        log.debug("parse_filtered_page: explicit no-results page")
        return PageParseResult(total=0, on_page_count=0, matched_count=0)

    on_page = 0
    matched = 0
    prices: list[float] = []
    for block in split_listing_blocks(html):
        listing = parse_listing(block, currency_rates)
        if listing is None:
            continue
        on_page += 1
        if not listing_passes(listing, us_only, vg_plus):
            continue
        matched += 1
        if listing.price is not None:
            prices.append(listing.price)

    if pagination_total is None:
        total = on_page
    else:
        # Stray markers elsewhere in the page can inflate block counts.
        total = pagination_total
        on_page = min(on_page, total)
        matched = min(matched, total)

    log.debug(
        "parse_filtered_page: markers=%d total=%d on_page=%d matched=%d "
        "prices=%s us_only=%s vg_plus=%s",
        count_condition_markers(html), total, on_page, matched, prices,
        us_only, vg_plus,
    )
    return PageParseResult(
        total=total,
        on_page_count=on_page,
        matched_count=matched,
        prices=prices,
        lowest=min(prices) if prices else None,
    )


@dataclass
class ListingTally:
    """Running merge of consecutive sell pages for one entity."""

    total: int = 0
    on_page: int = 0
    matched: int = 0
    prices: list[float] = field(default_factory=list)
    lowest: float | None = None
    pages: int = 0

    def add(self, page: PageParseResult) -> None:
        if self.pages == 0:
            self.total = page.total
        self.pages += 1
        self.on_page += page.on_page_count
        self.matched += page.matched_count
        self.prices.extend(page.prices)
        if page.lowest is not None and (
            self.lowest is None or page.lowest < self.lowest
        ):
            self.lowest = page.lowest

    def done(self, page: PageParseResult, page_size: int = PAGE_SIZE) -> bool:
        """True once a short page arrives or every listing has been seen."""
        return page.on_page_count < page_size or self.on_page >= self.total

    @property
    def num_for_sale(self) -> int:
        """Matched count, extrapolated to the full total when pages were skipped."""
        if self.total > self.on_page > 0:
            return math.floor(self.matched / self.on_page * self.total + 0.5)
        return self.matched
