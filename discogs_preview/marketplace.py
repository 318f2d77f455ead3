"""HTML fetchers: Discogs sell pages and search-engine discovery."""

from __future__ import annotations

import logging

import httpx

from discogs_preview.rate_limiter import RateLimiter
from discogs_preview.urls import EntityRef, extract_discogs_refs

log = logging.getLogger(__name__)

_HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": "DiscogsPreview/1.0",
}


class MarketplaceClient:
    """Fetches Discogs sell/listing pages as raw HTML."""

    def __init__(self, rate_limiter: RateLimiter) -> None:
        self.rate_limiter = rate_limiter
        self._client = httpx.AsyncClient(
            headers=_HTML_HEADERS,
            timeout=httpx.Timeout(30.0),
            follow_redirects=True,
        )

    async def __aenter__(self) -> MarketplaceClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self._client.aclose()

    async def fetch_page(self, url: str) -> str | None:
        """Return page HTML, or None on a non-2xx response."""
        await self.rate_limiter.wait()
        resp = await self._client.get(url)
        if not resp.is_success:
            log.info("sell page %s -> HTTP %d", url, resp.status_code)
            return None
        return resp.text


class SearchDiscovery:
    """Finds candidate Discogs masters/releases through a web search."""

    SEARCH_URL = "https://www.google.com/search"

    def __init__(self) -> None:
        self._client = httpx.AsyncClient(
            headers=_HTML_HEADERS,
            timeout=httpx.Timeout(30.0),
            follow_redirects=True,
        )

    async def __aenter__(self) -> SearchDiscovery:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self._client.aclose()

    async def find_refs(self, query: str) -> list[EntityRef]:
        search_query = f"{query} discogs vinyl"
        resp = await self._client.get(
            self.SEARCH_URL, params={"q": search_query, "num": 10}
        )
        if not resp.is_success:
            log.info("search %r -> HTTP %d", search_query, resp.status_code)
            return []
        refs = extract_discogs_refs(resp.text)
        log.info("search %r found %d Discogs URLs", search_query, len(refs))
        return refs
