"""Plain-text rendering of search results for the terminal."""

from __future__ import annotations

from discogs_preview.cache import FilterKey
from discogs_preview.pipeline import FilteredView, SearchResult
from discogs_preview.pricing import AggregateStats, MatchDetail


def fmt_price(value: float | None) -> str:
    return f"${value:.2f}" if value is not None else "—"


def filter_label(key: FilterKey) -> str:
    if not key.is_filtered:
        return "All Vinyl - All Conditions Worldwide"
    tags = []
    if key.us_only:
        tags.append("Ships from US")
    if key.vg_plus:
        tags.append("VG+ or better")
    return "All Vinyl - " + ", ".join(tags)


def format_stats(stats: AggregateStats) -> list[str]:
    lowest = fmt_price(stats.lowest_price)
    if stats.lowest_grade:
        lowest += f" (est. {stats.lowest_grade})"
    return [
        f"Copies for sale: {stats.num_for_sale}",
        f"Median price:    {fmt_price(stats.median_price)}",
        f"Lowest price:    {lowest}",
        f"Lowest VG+:      {fmt_price(stats.vg_plus_price)}",
    ]


def format_match(index: int, m: MatchDetail) -> str:
    year = f" ({m.year})" if m.year else ""
    fmt = f" · {m.format}" if m.format else ""
    price = (
        f"{fmt_price(m.lowest_price)}, {m.num_for_sale} for sale"
        if m.num_for_sale > 0
        else "none listed"
    )
    return f"  [{index}] {m.artists} - {m.title}{year}{fmt}: {price}"


def format_result(result: SearchResult) -> str:
    lines = [
        f"{result.artists} - {result.title} ({result.year or '?'})",
        "",
        *format_stats(result.stats),
        "",
        f"View copies: {result.sell_url}",
    ]
    if len(result.matches) > 1:
        lines.append("")
        lines.append("Releases containing this track:")
        lines.extend(format_match(i, m) for i, m in enumerate(result.matches))
    return "\n".join(lines)


def format_filtered(view: FilteredView) -> str:
    lines = [filter_label(view.key)]
    if view.key.selected is not None:
        lines[0] += f" (match #{view.key.selected})"
    lines.extend(format_stats(view.display))
    lines.append(f"View filtered copies: {view.link}")
    return "\n".join(lines)
