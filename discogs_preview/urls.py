"""Discogs URL parsing/building and small release-metadata helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping
from urllib.parse import quote, unquote

from bs4 import BeautifulSoup

DISCOGS_WWW = "https://www.discogs.com"
PRICE_ASC = "price%2Casc"

_MASTER_URL = re.compile(r"discogs\.com/(?:[^/]+/)?master/(\d+)")
_RELEASE_URL = re.compile(r"discogs\.com/(?:[^/]+/)?release/(\d+)")
_ARTIST_SUFFIX = re.compile(r"\s*\(\d+\)$")

# Search-engine result pages link out in three shapes.
_REDIRECT_LINK = re.compile(r"/url\?q=(https?://www\.discogs\.com/[^&]+)")
_DIRECT_LINK = re.compile(r"https?://www\.discogs\.com/")
_TEXT_LINK = re.compile(r"https?://www\.discogs\.com/(?:release|master)/\d+")


@dataclass(frozen=True)
class EntityRef:
    kind: str  # "master" or "release"
    id: int
    url: str


def parse_discogs_url(
    url: str, results: list[EntityRef], seen: set[tuple[str, int]]
) -> None:
    """Append master/release refs found in ``url``, skipping ones in ``seen``."""
    for kind, pattern in (("master", _MASTER_URL), ("release", _RELEASE_URL)):
        m = pattern.search(url)
        if m is None:
            continue
        key = (kind, int(m.group(1)))
        if key in seen:
            continue
        seen.add(key)
        results.append(EntityRef(kind=kind, id=key[1], url=url))


def extract_discogs_refs(html: str) -> list[EntityRef]:
    """Collect deduplicated Discogs refs from a search-engine results page.

    Redirect anchors come first, then direct anchors, then bare URLs in the
    visible text.
    """
    results: list[EntityRef] = []
    seen: set[tuple[str, int]] = set()
    soup = BeautifulSoup(html or "", "html.parser")
    hrefs = [a["href"] for a in soup.find_all("a", href=True)]
    for href in hrefs:
        m = _REDIRECT_LINK.search(href)
        if m:
            parse_discogs_url(unquote(m.group(1)), results, seen)
    for href in hrefs:
        if _DIRECT_LINK.match(href):
            parse_discogs_url(href, results, seen)
    for m in _TEXT_LINK.finditer(soup.get_text(" ")):
        parse_discogs_url(m.group(0), results, seen)
    return results


def add_query_param(url: str, key: str, value: str | int) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{key}={value}"


def release_sell_url(release_id: int) -> str:
    return f"{DISCOGS_WWW}/sell/release/{release_id}?ev=rb"


def master_sell_url(master_id: int) -> str:
    return f"{DISCOGS_WWW}/sell/list?master_id={master_id}&ev=mb&format=Vinyl"


def make_sell_url(
    release_id: int | None, master_id: int | None, query: str
) -> str:
    """Listings URL for a match.

    Release pages carry accurate per-pressing counts; master pages aggregate
    every version, so they are only used when no release is known.
    """
    if release_id:
        return release_sell_url(release_id)
    if master_id:
        return master_sell_url(master_id)
    return f"{DISCOGS_WWW}/search/?q={quote(query, safe='')}&format=Vinyl"


def build_filtered_url(
    url: str, us_only: bool, release_id: int | None = None
) -> str:
    """Outbound link for the active filters.

    The marketplace's condition URL param is broken server-side (it returns
    zero results), so condition filters never appear here.
    """
    if not url:
        return url
    if release_id:
        url = add_query_param(release_sell_url(release_id), "sort", PRICE_ASC)
    if us_only:
        url = add_query_param(url, "ships_from", "United+States")
    return url


def extract_artist_names(artists: Iterable[Mapping] | None) -> str:
    if not artists:
        return ""
    return ", ".join(
        _ARTIST_SUFFIX.sub("", a.get("name") or "") for a in artists
    )


def is_vinyl_format(formats: Iterable[Mapping] | None) -> bool:
    if not formats:
        return False
    return any("vinyl" in (f.get("name") or "").lower() for f in formats)
