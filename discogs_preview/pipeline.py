"""Search pipeline: discovery -> track verification -> sell-page pricing."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

import httpx

from discogs_preview.cache import FilterKey, SearchCache
from discogs_preview.discogs import (
    DiscogsAPIError,
    DiscogsAuthError,
    DiscogsClient,
    DiscogsError,
    MissingTokenError,
    RateLimitExceededError,
)
from discogs_preview.listings import (
    MAX_SCRAPE_PAGES,
    ListingTally,
    parse_filtered_page,
)
from discogs_preview.marketplace import MarketplaceClient, SearchDiscovery
from discogs_preview.matcher import TrackFilter
from discogs_preview.pricing import (
    AggregateStats,
    EntityPricing,
    EntityStats,
    FilteredStats,
    MatchDetail,
    aggregate_pricing,
    combine_entity_stats,
    compute_median,
    price_entity,
    publishable_matches,
    select_display_stats,
)
from discogs_preview.text import parse_artist_track
from discogs_preview.urls import (
    PRICE_ASC,
    EntityRef,
    add_query_param,
    build_filtered_url,
    extract_artist_names,
    is_vinyl_format,
    make_sell_url,
)

log = logging.getLogger(__name__)

DISCOVERY_CAP = 5
VERSION_CAP = 10


class NoResultsError(Exception):
    """No verified Discogs release for a query, even after the fallback."""

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"No Discogs results found for {query!r}")


@dataclass(frozen=True)
class Candidate:
    """A verified master/release, before pricing."""

    master_id: int | None
    release_id: int | None
    title: str
    artists: str
    year: int | str | None
    thumb: str | None
    format: str | None = None


@dataclass(frozen=True)
class SearchResult:
    query: str
    stats: AggregateStats
    master_id: int | None
    release_id: int | None
    title: str
    artists: str
    year: int | str | None
    thumb: str | None
    sell_url: str
    match_count: int
    matches: tuple[MatchDetail, ...] = ()


@dataclass(frozen=True)
class FilteredView:
    key: FilterKey
    stats: FilteredStats
    display: AggregateStats
    link: str


@dataclass
class QuerySession:
    """Cached full result plus filtered sub-results for one query."""

    result: SearchResult
    filtered: dict[FilterKey, FilteredStats] = field(default_factory=dict)


def _thumb(data: Mapping) -> str | None:
    images = data.get("images") or []
    return images[0].get("uri150") if images else None


async def expand_master_versions(
    client: DiscogsClient,
    master: dict,
    master_id: int,
    seen_releases: set[int],
    cap: int = VERSION_CAP,
) -> list[Candidate]:
    """One candidate per vinyl pressing of a master.

    Falls back to a single master-level candidate when no vinyl version is
    found.
    """
    artists = extract_artist_names(master.get("artists"))
    try:
        versions = await client.get_master_versions(master_id)
    except (DiscogsAuthError, RateLimitExceededError):
        raise
    except DiscogsAPIError as exc:
        log.warning("versions for master %s failed: %s", master_id, exc)
        versions = []

    results: list[Candidate] = []
    for v in versions[:cap]:
        if "Vinyl" not in (v.get("major_formats") or []):
            continue
        if v["id"] in seen_releases:
            continue
        seen_releases.add(v["id"])
        results.append(Candidate(
            master_id=master_id,
            release_id=v["id"],
            title=v.get("title") or master.get("title", ""),
            artists=artists,
            year=v.get("released") or master.get("year"),
            thumb=v.get("thumb") or _thumb(master),
            format=v.get("format"),
        ))

    if not results:
        results.append(Candidate(
            master_id=master_id,
            release_id=None,
            title=master.get("title", ""),
            artists=artists,
            year=master.get("year"),
            thumb=_thumb(master),
        ))
    return results


async def fetch_discogs_details(
    client: DiscogsClient,
    refs: Sequence[EntityRef],
    track_filter: TrackFilter,
    cap: int = DISCOVERY_CAP,
) -> list[Candidate]:
    """Look up discovered refs and keep the ones carrying the track.

    Masters (and releases that belong to a master carrying the track) are
    expanded into their vinyl versions. Standalone releases must be vinyl.
    """
    matches: list[Candidate] = []
    seen_masters: set[int] = set()
    seen_releases: set[int] = set()

    for ref in refs[:cap]:
        if ref.kind == "master":
            if ref.id in seen_masters:
                continue
            seen_masters.add(ref.id)
            master = await client.get_master(ref.id)
            if master is None:
                continue
            ok = track_filter.accepts(master.get("tracklist"))
            log.info("master %s %r -> track: %s", ref.id, master.get("title"), ok)
            if ok:
                matches.extend(
                    await expand_master_versions(client, master, ref.id, seen_releases)
                )
            continue

        release = await client.get_release(ref.id)
        if release is None:
            continue

        master_id = release.get("master_id")
        if master_id and master_id in seen_masters:
            continue
        if master_id:
            seen_masters.add(master_id)
            master = await client.get_master(master_id)
            if master is not None:
                ok = track_filter.accepts(master.get("tracklist"))
                log.info(
                    "release %s -> master %s %r -> track: %s",
                    ref.id, master_id, master.get("title"), ok,
                )
                if ok:
                    matches.extend(
                        await expand_master_versions(client, master, master_id, seen_releases)
                    )
                    continue
            # master missing or without the track: judge the release itself

        if not is_vinyl_format(release.get("formats")):
            log.info("release %s %r -> skipped (not vinyl)", ref.id, release.get("title"))
            continue
        ok = track_filter.accepts(release.get("tracklist"))
        log.info("release %s %r -> track: %s", ref.id, release.get("title"), ok)
        if not ok:
            continue
        matches.append(Candidate(
            master_id=None,
            release_id=ref.id,
            title=release.get("title", ""),
            artists=extract_artist_names(release.get("artists")),
            year=release.get("year"),
            thumb=_thumb(release),
        ))

    return matches


async def find_matching_releases(
    client: DiscogsClient,
    discovery: SearchDiscovery,
    query: str,
    cap: int = DISCOVERY_CAP,
) -> list[Candidate]:
    """Discover candidates for a query and verify the track is on them.

    When nothing verifies, the top discovery result is accepted once without
    a track check.
    """
    parsed = parse_artist_track(query)
    track = parsed.track or query
    log.info("searching %r (artist=%r, track=%r)", query, parsed.artist, track)

    refs = await discovery.find_refs(query)
    if not refs:
        log.info("no Discogs URLs discovered for %r", query)
        return []

    matches = await fetch_discogs_details(client, refs, TrackFilter(track), cap)
    log.info("verified matches: %d", len(matches))
    if not matches:
        log.info("no track matches, accepting the first discovery result as-is")
        matches = await fetch_discogs_details(
            client, refs[:1], TrackFilter.accept_any(), cap
        )
    return matches


async def scrape_entity(
    market: MarketplaceClient,
    sell_url: str,
    us_only: bool,
    vg_plus: bool,
    currency_rates: Mapping[str, float] | None = None,
    max_pages: int = MAX_SCRAPE_PAGES,
) -> EntityStats:
    """Scrape up to ``max_pages`` price-sorted sell pages for one entity.

    Any failure yields an empty result for this entity only.
    """
    try:
        tally = ListingTally()
        for page_no in range(1, max_pages + 1):
            url = sell_url if page_no == 1 else add_query_param(sell_url, "page", page_no)
            html = await market.fetch_page(url)
            if html is None:
                break
            page = parse_filtered_page(html, us_only, vg_plus, currency_rates)
            tally.add(page)
            if tally.total == 0:
                return EntityStats()
            if tally.done(page):
                break
    except Exception:
        log.exception("scrape failed for %s", sell_url)
        return EntityStats()

    stats = EntityStats(
        num_for_sale=tally.num_for_sale,
        scraped_total=tally.total,
        lowest_price=tally.lowest,
        median_price=compute_median(tally.prices),
        prices=tuple(sorted(tally.prices)),
    )
    log.info(
        "scrape %s: %d/%d on %d page(s) -> %d of %d, lowest=%s median=%s",
        sell_url, tally.matched, tally.on_page, tally.pages,
        stats.num_for_sale, stats.scraped_total,
        stats.lowest_price, stats.median_price,
    )
    return stats


async def _price_suggestions(
    client: DiscogsClient, release_id: int
) -> dict[str, float] | None:
    try:
        return await client.get_price_suggestions(release_id)
    except DiscogsAuthError:
        raise
    except DiscogsAPIError as exc:
        log.warning("price suggestions for %s failed: %s", release_id, exc)
        return None


async def gather_pricing(
    client: DiscogsClient,
    market: MarketplaceClient,
    candidate: Candidate,
    query: str,
    currency_rates: Mapping[str, float] | None = None,
    max_pages: int = MAX_SCRAPE_PAGES,
) -> EntityPricing:
    sell_url = make_sell_url(candidate.release_id, candidate.master_id, query)
    scraped = await scrape_entity(
        market,
        add_query_param(sell_url, "sort", PRICE_ASC),
        us_only=False,
        vg_plus=False,
        currency_rates=currency_rates,
        max_pages=max_pages,
    )
    suggestions = None
    if candidate.release_id and scraped.num_for_sale > 0:
        suggestions = await _price_suggestions(client, candidate.release_id)
    return price_entity(scraped, suggestions)


async def build_result(
    client: DiscogsClient,
    market: MarketplaceClient,
    candidates: Sequence[Candidate],
    query: str,
    currency_rates: Mapping[str, float] | None = None,
    max_pages: int = MAX_SCRAPE_PAGES,
) -> SearchResult:
    """Price every candidate and aggregate into the global result."""
    pricings: list[EntityPricing] = []
    details: list[MatchDetail] = []
    for c in candidates:
        p = await gather_pricing(client, market, c, query, currency_rates, max_pages)
        pricings.append(p)
        details.append(MatchDetail(
            master_id=c.master_id,
            release_id=c.release_id,
            title=c.title,
            artists=c.artists,
            year=c.year,
            thumb=c.thumb,
            format=c.format,
            sell_url=make_sell_url(c.release_id, c.master_id, query),
            num_for_sale=p.num_for_sale,
            lowest_price=p.lowest_price,
            lowest_grade=p.lowest_grade,
            median_price=p.median_price,
            vg_plus_price=p.vg_plus_price,
        ))

    published = publishable_matches(details)
    primary = published[0] if published else details[0]
    return SearchResult(
        query=query,
        stats=aggregate_pricing(pricings),
        master_id=primary.master_id,
        release_id=primary.release_id,
        title=primary.title,
        artists=primary.artists,
        year=primary.year,
        thumb=primary.thumb,
        sell_url=primary.sell_url,
        match_count=len(candidates),
        matches=tuple(published),
    )


async def filtered_stats(
    market: MarketplaceClient,
    matches: Sequence[MatchDetail],
    us_only: bool,
    vg_plus: bool,
    currency_rates: Mapping[str, float] | None = None,
    max_pages: int = MAX_SCRAPE_PAGES,
) -> FilteredStats:
    """Re-scrape each match under the given filters and pool the results."""
    stats: list[EntityStats] = []
    for m in matches:
        if not m.sell_url:
            continue
        stats.append(await scrape_entity(
            market,
            add_query_param(m.sell_url, "sort", PRICE_ASC),
            us_only,
            vg_plus,
            currency_rates,
            max_pages,
        ))
    return combine_entity_stats(stats)


class PreviewService:
    """Query-level entry point with a per-query result cache."""

    def __init__(
        self,
        client: DiscogsClient,
        market: MarketplaceClient,
        discovery: SearchDiscovery,
        cache: SearchCache | None = None,
        currency_rates: Mapping[str, float] | None = None,
        max_scrape_pages: int = MAX_SCRAPE_PAGES,
        discovery_cap: int = DISCOVERY_CAP,
    ) -> None:
        self.client = client
        self.market = market
        self.discovery = discovery
        self.cache = cache if cache is not None else SearchCache()
        self.currency_rates = dict(currency_rates or {})
        self.max_scrape_pages = max_scrape_pages
        self.discovery_cap = discovery_cap

    async def search(self, query: str, refresh: bool = False) -> SearchResult:
        """Full search for a cleaned query.

        A failed refresh falls back to the previously cached result, except
        for token problems which always surface.
        """
        session = self.cache.get(query)
        if session is not None and not refresh:
            log.info("cache hit for %r", query)
            return session.result

        stale = self.cache.peek(query)
        try:
            candidates = await find_matching_releases(
                self.client, self.discovery, query, self.discovery_cap
            )
            if not candidates:
                raise NoResultsError(query)
            result = await build_result(
                self.client, self.market, candidates, query,
                self.currency_rates, self.max_scrape_pages,
            )
        except (MissingTokenError, DiscogsAuthError):
            raise
        except (DiscogsError, NoResultsError, httpx.HTTPError):
            if stale is None:
                raise
            log.exception("refresh of %r failed, keeping cached result", query)
            return stale.result

        self.cache.set(query, QuerySession(result=result))
        return result

    async def filtered(
        self,
        query: str,
        us_only: bool,
        vg_plus: bool,
        selected: int | None = None,
    ) -> FilteredView:
        """Filter-aware stats for a query, optionally for one match only."""
        session = self.cache.get(query)
        if session is None:
            await self.search(query)
            session = self.cache.peek(query)

        matches = session.result.matches
        if selected is not None and not 0 <= selected < len(matches):
            raise IndexError(f"no match #{selected} for {query!r}")

        key = FilterKey(us_only=us_only, vg_plus=vg_plus, selected=selected)
        stats = session.filtered.get(key)
        if stats is None:
            scope = matches if selected is None else [matches[selected]]
            stats = await filtered_stats(
                self.market, scope, us_only, vg_plus,
                self.currency_rates, self.max_scrape_pages,
            )
            session.filtered[key] = stats
        else:
            log.info("filtered cache hit for %r %s", query, key)

        if selected is None:
            baseline = session.result.stats
            target = matches[0] if matches else None
        else:
            baseline = matches[selected].stats
            target = matches[selected]

        link = build_filtered_url(
            target.sell_url if target else session.result.sell_url,
            us_only,
            target.release_id if target else session.result.release_id,
        )
        return FilteredView(
            key=key,
            stats=stats,
            display=select_display_stats(baseline, stats, us_only, vg_plus),
            link=link,
        )
