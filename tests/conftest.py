"""
Test fixtures for the Buildout listings proxy.

A fake Buildout API (httpx.MockTransport) stands in for the upstream, every
disk write goes to a temporary DATA_DIR, and backoff / page delays are
recorded instead of slept.
"""
import asyncio
from typing import List

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from buildout_proxy.clients.buildout_client import BuildoutClient
from buildout_proxy.config import Settings
from buildout_proxy.main import create_app


# ── Seed data ──────────────────────────────────────────────────────────

TEST_REFRESH_TOKEN = "test-token"
TEST_API_KEY = "test-key"
BUILDOUT_BASE_URL = "https://buildout.test/api/v1"

SAMPLE_BROKERS = [
    {"id": 1, "first_name": "Jane", "last_name": "Doe", "email": "jane@example.com"},
    {"id": 2, "first_name": "Ana", "last_name": "O'Brien", "email": "ana@example.com"},
]

SAMPLE_LISTINGS = [
    # Industrial, lease only; one space with size only under square_feet
    {
        "id": 101, "property_type_id": 3, "property_subtype_id": 302,
        "lease": True, "sale": False, "deal_status_id": 1,
        "address": "100 Congress Ave", "city": "Austin", "state": "TX", "zip": "78701",
        "building_size_sf": 50000, "broker_id": 1,
        "lease_listing_web_title": "Warehouse near downtown",
        "ceiling_height_f": 32, "dock_high_doors": 4,
    },
    # Land, sale only, no spaces -> acres
    {
        "id": 102, "property_type_id": 5, "lease": False, "sale": True, "deal_status_id": 1,
        "address": "5 Ranch Rd", "city": "Round Rock", "state": "TX", "zip": "78664",
        "building_size_sf": 10000, "broker_id": 2,
    },
    # Office, lease + sale; two active spaces and one inactive
    {
        "id": 103, "property_type_id": 1, "lease": True, "sale": True, "deal_status_id": 1,
        "address": "200 Main St", "city": "Dallas", "state": "TX", "zip": "75201",
        "building_size_sf": 12000, "broker_id": 1, "second_broker_id": 2,
    },
    # Inactive listing
    {
        "id": 104, "property_type_id": 3, "lease": True, "sale": False, "deal_status_id": 3,
        "address": "9 Closed Ln", "city": "Austin", "state": "TX", "zip": "78702",
    },
    # Retail, lease only, nothing known about size
    {
        "id": 105, "property_type_id": 2, "lease": True, "sale": False, "deal_status_id": 1,
        "address": "77 Lamar Blvd", "city": "Austin", "state": "TX", "zip": "78703",
    },
]

SAMPLE_LEASE_SPACES = [
    {"id": 1, "property_id": 103, "size_sf": "1,200 SF", "deal_status_id": 1},
    {"id": 2, "property": {"id": 103}, "available_sf": 800, "status": "Active"},
    {"id": 3, "property_id": 103, "size_sf": 5000, "status": "Inactive"},
    {"id": 4, "property_id": 101, "size_sf": 0, "square_feet": "2,500"},
    {"id": 5, "size_sf": 900},
]


class FakeBuildout:
    """Minimal Buildout API: paginated properties, brokers and lease_spaces."""

    def __init__(self, properties=None, brokers=None, lease_spaces=None):
        self.collections = {
            "properties": list(SAMPLE_LISTINGS if properties is None else properties),
            "brokers": list(SAMPLE_BROKERS if brokers is None else brokers),
            "lease_spaces": list(SAMPLE_LEASE_SPACES if lease_spaces is None else lease_spaces),
        }
        self.requests: List[httpx.Request] = []
        # Statuses returned (in order) before answering normally
        self.fail_with: List[int] = []
        self.reported_counts = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with.pop(0), json={"error": "upstream"})

        name = request.url.path.rsplit("/", 1)[-1].replace(".json", "")
        if name not in self.collections:
            return httpx.Response(404, json={"error": "not found"})

        items = self.collections[name]
        limit = int(request.url.params.get("limit", len(items) or 1))
        offset = int(request.url.params.get("offset", 0))
        count = self.reported_counts.get(name, len(items))
        return httpx.Response(200, json={name: items[offset:offset + limit], "count": count})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def offsets(self, name: str) -> List[int]:
        return [
            int(r.url.params.get("offset", 0))
            for r in self.requests
            if r.url.path.endswith(f"/{name}.json")
        ]


class FakeProxyClient:
    """Proxy client returning canned collections; a source set to an exception raises it."""

    def __init__(self, listings=SAMPLE_LISTINGS, brokers=SAMPLE_BROKERS, lease_spaces=SAMPLE_LEASE_SPACES):
        self.listings = listings
        self.brokers = brokers
        self.lease_spaces = lease_spaces

    @staticmethod
    async def _result(value):
        await asyncio.sleep(0)
        if isinstance(value, Exception):
            raise value
        return value

    async def fetch_all_listings(self):
        return await self._result(self.listings)

    async def fetch_brokers(self):
        return await self._result(self.brokers)

    async def fetch_lease_spaces(self):
        return await self._result(self.lease_spaces)


class RecordingSleep:
    """Drop-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


# ── Fixtures ───────────────────────────────────────────────────────────

@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        buildout_base_url=BUILDOUT_BASE_URL,
        buildout_api_key=TEST_API_KEY,
        properties_page_size=2,
        lease_spaces_page_size=2,
        brokers_page_size=2,
        refresh_token=TEST_REFRESH_TOKEN,
        refresh_on_startup=False,
        data_dir=str(tmp_path / "data"),
        proxy_api_base="http://proxy.test/api",
        client_page_size=2,
    )


@pytest.fixture
def fake_buildout():
    return FakeBuildout()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def buildout_client(settings, fake_buildout, sleeper):
    return BuildoutClient(settings, transport=fake_buildout.transport, sleep=sleeper)


@pytest.fixture
def app(settings, buildout_client):
    return create_app(settings, buildout_client=buildout_client)


@pytest.fixture
async def client(app):
    """Async test client for the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
