import httpx
import pytest

from discogs_preview.discogs import (
    DiscogsAPIError,
    DiscogsAuthError,
    DiscogsClient,
    RateLimitExceededError,
)
from discogs_preview.rate_limiter import RateLimiter


def _patched_client(handler, sleeps: list[float]) -> DiscogsClient:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    client = DiscogsClient(token="tok", rate_limiter=RateLimiter(600), sleep=fake_sleep)
    client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.discogs.com"
    )
    return client


def _sequence(*responses):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        status, kwargs = responses[min(len(calls), len(responses)) - 1]
        return httpx.Response(status, **kwargs)

    return handler, calls


@pytest.mark.asyncio
async def test_429_retried_after_retry_after_header():
    handler, calls = _sequence(
        (429, {"headers": {"Retry-After": "2"}}),
        (200, {"json": {"id": 7, "title": "Ok"}}),
    )
    sleeps: list[float] = []
    async with _patched_client(handler, sleeps) as c:
        release = await c.get_release(7)
    assert release["title"] == "Ok"
    assert sleeps == [2.0]
    assert calls == ["/releases/7", "/releases/7"]


@pytest.mark.asyncio
async def test_429_default_delay():
    handler, _ = _sequence(
        (429, {}),
        (200, {"json": {"id": 1}}),
    )
    sleeps: list[float] = []
    async with _patched_client(handler, sleeps) as c:
        await c.get_master(1)
    assert sleeps == [5.0]


@pytest.mark.asyncio
async def test_429_gives_up_after_max_retries():
    handler, calls = _sequence((429, {"headers": {"Retry-After": "1"}}))
    sleeps: list[float] = []
    async with _patched_client(handler, sleeps) as c:
        with pytest.raises(RateLimitExceededError) as exc_info:
            await c.get_release(1)
    assert exc_info.value.status_code == 429
    assert len(calls) == 4
    assert sleeps == [1.0, 1.0, 1.0]


@pytest.mark.asyncio
async def test_401_raises_auth_error():
    handler, _ = _sequence((401, {"text": "Invalid consumer token"}))
    async with _patched_client(handler, []) as c:
        with pytest.raises(DiscogsAuthError):
            await c.get_release(1)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 404])
async def test_absent_resources_return_none(status):
    handler, _ = _sequence((status, {"text": "nope"}))
    async with _patched_client(handler, []) as c:
        assert await c.get_master(1) is None
        assert await c.get_master_versions(1) == []


@pytest.mark.asyncio
async def test_server_error_raises():
    handler, _ = _sequence((502, {"text": "Bad Gateway"}))
    async with _patched_client(handler, []) as c:
        with pytest.raises(DiscogsAPIError, match="502"):
            await c.get_release(1)


@pytest.mark.asyncio
async def test_master_versions_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json={"versions": [{"id": 3}]})

    async with _patched_client(handler, []) as c:
        versions = await c.get_master_versions(99)
    assert versions == [{"id": 3}]
    assert seen == {
        "per_page": "100", "sort": "released", "sort_order": "desc", "format": "Vinyl",
    }
