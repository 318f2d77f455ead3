from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from discogs_preview.rate_limiter import RateLimiter

log = logging.getLogger(__name__)

USER_AGENT = "DiscogsPreview/1.0"
MAX_RETRIES = 3
DEFAULT_RETRY_AFTER = 5.0


class DiscogsError(Exception):
    """Base class for Discogs failures."""


class MissingTokenError(DiscogsError):
    """Raised when an API call is attempted without a configured token."""

    def __init__(self) -> None:
        super().__init__("No Discogs token configured")


class DiscogsAPIError(DiscogsError):
    """Raised on unexpected Discogs API responses."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Discogs API {status_code}: {body}")


class DiscogsAuthError(DiscogsAPIError):
    """401: the token was rejected."""


class RateLimitExceededError(DiscogsAPIError):
    """429 persisted after every retry."""


def _retry_after(resp: httpx.Response) -> float:
    value = resp.headers.get("Retry-After")
    if value:
        try:
            return float(value)
        except ValueError:
            pass
    return DEFAULT_RETRY_AFTER


class DiscogsClient:
    """Async client for the Discogs API."""

    def __init__(
        self,
        token: str,
        rate_limiter: RateLimiter,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.max_retries = max_retries
        self._token = token
        self._sleep = sleep
        headers = {"User-Agent": USER_AGENT}
        if token:
            headers["Authorization"] = f"Discogs token={token}"
        self._client = httpx.AsyncClient(
            base_url="https://api.discogs.com",
            headers=headers,
            timeout=httpx.Timeout(30.0),
        )

    async def __aenter__(self) -> DiscogsClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict | None = None) -> dict | None:
        """GET a JSON resource. 403/404 mean "absent" and return None."""
        if not self._token:
            raise MissingTokenError()
        attempt = 0
        while True:
            await self.rate_limiter.wait()
            log.debug(
                "GET %s (%d calls left in window)", path, self.rate_limiter.remaining
            )
            resp = await self._client.get(path, params=params)
            if resp.status_code != 429:
                break
            attempt += 1
            if attempt > self.max_retries:
                raise RateLimitExceededError(
                    429, f"rate limit exceeded after {self.max_retries} retries"
                )
            delay = _retry_after(resp)
            log.warning(
                "429 on %s, retry %d/%d in %.0fs",
                path, attempt, self.max_retries, delay,
            )
            await self._sleep(delay)

        if resp.status_code == 401:
            raise DiscogsAuthError(resp.status_code, resp.text)
        if resp.status_code in (403, 404):
            return None
        if resp.status_code != 200:
            raise DiscogsAPIError(resp.status_code, resp.text)
        return resp.json()

    async def get_master(self, master_id: int) -> dict | None:
        return await self._get(f"/masters/{master_id}")

    async def get_release(self, release_id: int) -> dict | None:
        return await self._get(f"/releases/{release_id}")

    async def get_master_versions(
        self, master_id: int, per_page: int = 100
    ) -> list[dict]:
        """Vinyl versions of a master, newest first."""
        data = await self._get(
            f"/masters/{master_id}/versions",
            params={
                "per_page": per_page,
                "sort": "released",
                "sort_order": "desc",
                "format": "Vinyl",
            },
        )
        if not data:
            return []
        return data.get("versions", [])

    async def get_price_suggestions(self, release_id: int) -> dict[str, float] | None:
        """Suggested price per grade label, e.g. {"Very Good Plus (VG+)": 6.29}."""
        data = await self._get(f"/marketplace/price_suggestions/{release_id}")
        if not data:
            return None
        suggestions = {
            label: entry["value"]
            for label, entry in data.items()
            if isinstance(entry, dict) and entry.get("value") is not None
        }
        return suggestions or None
