"""Test the listings table's client for the proxy API."""
import httpx
import pytest
from httpx import ASGITransport

from buildout_proxy.clients.proxy_client import ProxyClient
from buildout_proxy.services.session_cache import LEASE_SPACES_CACHE_KEY, LISTINGS_CACHE_KEY, SessionCache
from tests.conftest import SAMPLE_BROKERS, SAMPLE_LEASE_SPACES, SAMPLE_LISTINGS, RecordingSleep


@pytest.fixture
async def loaded_app(app):
    await app.state.refresh_service.refresh()
    return app


@pytest.fixture
def proxy_client(settings, loaded_app):
    return ProxyClient(settings, transport=ASGITransport(app=loaded_app), sleep=RecordingSleep())


@pytest.mark.asyncio
async def test_fetch_all_listings_pages_through_proxy(proxy_client):
    listings = await proxy_client.fetch_all_listings()
    assert [l["id"] for l in listings] == [l["id"] for l in SAMPLE_LISTINGS]
    assert proxy_client.session_cache.get_list(LISTINGS_CACHE_KEY) == listings


@pytest.mark.asyncio
async def test_fetch_brokers_and_lease_spaces(proxy_client):
    assert await proxy_client.fetch_brokers() == SAMPLE_BROKERS
    spaces = await proxy_client.fetch_lease_spaces()
    assert spaces == SAMPLE_LEASE_SPACES
    assert proxy_client.session_cache.get_list(LEASE_SPACES_CACHE_KEY) == spaces


@pytest.mark.asyncio
async def test_failed_page_keeps_partial_result(settings):
    def handler(request):
        if request.url.params["offset"] == "0":
            return httpx.Response(200, json={"properties": [{"id": 1}, {"id": 2}], "count": 5})
        return httpx.Response(500, text="boom")

    client = ProxyClient(settings, transport=httpx.MockTransport(handler), sleep=RecordingSleep())
    assert await client.fetch_all_listings() == [{"id": 1}, {"id": 2}]


@pytest.mark.asyncio
async def test_network_error_on_later_page_keeps_partial_result(settings):
    def handler(request):
        if request.url.params["offset"] == "0":
            return httpx.Response(200, json={"properties": [{"id": 1}, {"id": 2}], "count": 4})
        raise httpx.ReadTimeout("timed out", request=request)

    client = ProxyClient(settings, transport=httpx.MockTransport(handler), sleep=RecordingSleep())
    assert await client.fetch_all_listings() == [{"id": 1}, {"id": 2}]


@pytest.mark.asyncio
async def test_network_error_on_first_page_gives_empty_list(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = ProxyClient(settings, transport=httpx.MockTransport(handler), sleep=RecordingSleep())
    assert await client.fetch_all_listings() == []


@pytest.mark.asyncio
async def test_session_cache_hit_skips_network(settings):
    cache = SessionCache()
    cache.set_json(LISTINGS_CACHE_KEY, [{"id": "cached"}])
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(500)

    client = ProxyClient(settings, transport=httpx.MockTransport(handler), session_cache=cache)
    assert await client.fetch_all_listings() == [{"id": "cached"}]
    assert requests == []


@pytest.mark.asyncio
async def test_bypass_cache_refetches(settings, loaded_app):
    cache = SessionCache()
    cache.set_json(LISTINGS_CACHE_KEY, [{"id": "stale"}])

    client = ProxyClient(
        settings,
        transport=ASGITransport(app=loaded_app),
        session_cache=cache,
        bypass_cache=True,
        sleep=RecordingSleep(),
    )
    listings = await client.fetch_all_listings()
    assert len(listings) == len(SAMPLE_LISTINGS)
    assert cache.get_list(LISTINGS_CACHE_KEY) == listings
