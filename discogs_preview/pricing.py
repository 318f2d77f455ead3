"""Price aggregation across matched releases and filter-aware display stats."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from discogs_preview.grades import GRADE_ABBR, NEAR_MINT, VG_PLUS


@dataclass(frozen=True)
class AggregateStats:
    num_for_sale: int = 0
    lowest_price: float | None = None
    lowest_grade: str | None = None
    median_price: float | None = None
    vg_plus_price: float | None = None
    near_mint_price: float | None = None


@dataclass(frozen=True)
class EntityStats:
    """Scraped, filter-aware numbers for one sell page."""

    num_for_sale: int = 0
    scraped_total: int = 0
    lowest_price: float | None = None
    median_price: float | None = None
    prices: tuple[float, ...] = ()


@dataclass(frozen=True)
class FilteredStats:
    num_for_sale: int
    scraped_total: int
    lowest_price: float | None
    median_price: float | None
    match_stats: tuple[EntityStats, ...] = ()


@dataclass(frozen=True)
class EntityPricing:
    """Unfiltered pricing of one release: scrape plus price suggestions."""

    num_for_sale: int = 0
    lowest_price: float | None = None
    lowest_grade: str | None = None
    median_price: float | None = None
    vg_plus_price: float | None = None
    near_mint_price: float | None = None
    prices: tuple[float, ...] = ()


@dataclass(frozen=True)
class MatchDetail:
    master_id: int | None
    release_id: int | None
    title: str
    artists: str
    year: int | str | None
    thumb: str | None
    format: str | None
    sell_url: str
    num_for_sale: int
    lowest_price: float | None
    lowest_grade: str | None
    median_price: float | None
    vg_plus_price: float | None

    @property
    def stats(self) -> AggregateStats:
        return AggregateStats(
            num_for_sale=self.num_for_sale,
            lowest_price=self.lowest_price,
            lowest_grade=self.lowest_grade,
            median_price=self.median_price,
            vg_plus_price=self.vg_plus_price,
        )


def compute_median(values: Iterable[float]) -> float | None:
    """Median; even counts average the two central values."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return None
    mid = n // 2
    if n % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def _min_or_none(values: Iterable[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    return min(present) if present else None


def combine_entity_stats(stats: Sequence[EntityStats]) -> FilteredStats:
    """Pool per-entity scrapes; the median is over pooled listing prices."""
    pooled = [p for s in stats for p in s.prices]
    return FilteredStats(
        num_for_sale=sum(s.num_for_sale for s in stats),
        scraped_total=sum(s.scraped_total for s in stats),
        lowest_price=_min_or_none(s.lowest_price for s in stats),
        median_price=compute_median(pooled),
        match_stats=tuple(stats),
    )


def suggested_price(
    suggestions: Mapping[str, float] | None, label: str
) -> float | None:
    if not suggestions:
        return None
    return suggestions.get(label)


def estimate_grade(
    suggestions: Mapping[str, float] | None, price: float | None
) -> str | None:
    """Abbreviated grade whose suggested price sits closest to ``price``."""
    if not suggestions or price is None:
        return None
    best_label = None
    best_diff = float("inf")
    for label, value in suggestions.items():
        if value is None:
            continue
        diff = abs(value - price)
        if diff < best_diff:
            best_diff = diff
            best_label = label
    if best_label is None:
        return None
    return GRADE_ABBR.get(best_label, best_label)


def price_entity(
    stats: EntityStats, suggestions: Mapping[str, float] | None
) -> EntityPricing:
    return EntityPricing(
        num_for_sale=stats.num_for_sale,
        lowest_price=stats.lowest_price,
        lowest_grade=estimate_grade(suggestions, stats.lowest_price),
        median_price=stats.median_price,
        vg_plus_price=suggested_price(suggestions, VG_PLUS),
        near_mint_price=suggested_price(suggestions, NEAR_MINT),
        prices=stats.prices,
    )


def aggregate_pricing(pricings: Sequence[EntityPricing]) -> AggregateStats:
    """Combine unfiltered per-release pricing into one set of global stats.

    The lowest grade follows the release holding the lowest price; the
    median is taken over every scraped listing price, not over per-release
    medians.
    """
    pooled: list[float] = []
    lowest = None
    lowest_grade = None
    for p in pricings:
        if p.lowest_price is not None and (lowest is None or p.lowest_price < lowest):
            lowest = p.lowest_price
            lowest_grade = p.lowest_grade
        pooled.extend(p.prices)
    return AggregateStats(
        num_for_sale=sum(p.num_for_sale for p in pricings),
        lowest_price=lowest,
        lowest_grade=lowest_grade,
        median_price=compute_median(pooled),
        vg_plus_price=_min_or_none(p.vg_plus_price for p in pricings),
        near_mint_price=_min_or_none(p.near_mint_price for p in pricings),
    )


def publishable_matches(details: Iterable[MatchDetail]) -> list[MatchDetail]:
    """Drop releases with nothing for sale; cheapest first, unpriced last."""
    listed = [d for d in details if d.num_for_sale > 0]
    return sorted(
        listed,
        key=lambda d: (d.lowest_price is None, d.lowest_price or 0.0),
    )


def select_display_stats(
    unfiltered: AggregateStats,
    filtered: FilteredStats,
    us_only: bool,
    vg_plus: bool,
) -> AggregateStats:
    """Pick the numbers to show for the active filter combination.

    A condition filter always uses the fresh filtered scrape: the unfiltered
    lowest/median may belong to a listing the filter rejects. A location-only
    filter may reuse unfiltered prices while it excluded nothing. An empty
    scope shows no prices at all.
    """
    count = filtered.num_for_sale
    if count == 0:
        return AggregateStats(num_for_sale=0)

    if vg_plus:
        lowest = filtered.lowest_price
        median = filtered.median_price
    elif us_only:
        if count == unfiltered.num_for_sale:
            lowest = unfiltered.lowest_price
            median = unfiltered.median_price
        else:
            lowest = filtered.lowest_price
            median = filtered.median_price
    else:
        lowest = (
            filtered.lowest_price
            if filtered.lowest_price is not None
            else unfiltered.lowest_price
        )
        median = (
            filtered.median_price
            if filtered.median_price is not None
            else unfiltered.median_price
        )

    return AggregateStats(
        num_for_sale=count,
        lowest_price=lowest,
        lowest_grade=None if (us_only or vg_plus) else unfiltered.lowest_grade,
        median_price=median,
        vg_plus_price=unfiltered.vg_plus_price,
        near_mint_price=unfiltered.near_mint_price,
    )
