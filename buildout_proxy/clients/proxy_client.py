"""
Proxy API client used by the listings table.
Reads /api/listings, /api/brokers and /api/lease_spaces from the proxy server,
reusing the session cache for the two large collections.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

from buildout_proxy.clients.pagination import collect_pages
from buildout_proxy.config import Settings, get_settings
from buildout_proxy.services.session_cache import (
    LEASE_SPACES_CACHE_KEY,
    LISTINGS_CACHE_KEY,
    SessionCache,
)

logger = logging.getLogger(__name__)


class ProxyClient:
    """Async client for the listings proxy JSON endpoints."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        session_cache: Optional[SessionCache] = None,
        bypass_cache: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.api_base = self.settings.proxy_api_base.rstrip("/")
        self.session_cache = session_cache or SessionCache()
        self.bypass_cache = bypass_cache
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.client_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )

    def _cached(self, key: str) -> Optional[List[dict]]:
        if self.bypass_cache:
            return None
        cached = self.session_cache.get_list(key)
        if cached:
            logger.debug(f"[CLIENT] Session cache hit for {key} ({len(cached)} records)")
        return cached

    async def fetch_all_listings(self) -> List[dict]:
        """
        All listings, paging by limit/offset until the reported count is reached.
        A failed page stops paging and keeps what was already collected.
        """
        cached = self._cached(LISTINGS_CACHE_KEY)
        if cached:
            return cached

        page_size = self.settings.client_page_size
        url = f"{self.api_base}/listings"

        async with self._client() as client:
            async def fetch_page(offset: int) -> Optional[dict]:
                try:
                    resp = await client.get(url, params={"limit": page_size, "offset": offset})
                except httpx.HTTPError as e:
                    logger.error(f"[CLIENT] Request failed at offset {offset}: {e!r}")
                    return None
                if resp.is_error:
                    logger.error(f"[CLIENT] API error: {resp.status_code} {resp.text[:200]}")
                    return None
                return resp.json()

            listings, _ = await collect_pages(
                fetch_page,
                page_size,
                "properties",
                delay_seconds=self.settings.client_page_delay_seconds,
                sleep=self._sleep,
            )

        if listings:
            self.session_cache.set_json(LISTINGS_CACHE_KEY, listings)
        return listings

    async def fetch_brokers(self) -> List[dict]:
        async with self._client() as client:
            resp = await client.get(f"{self.api_base}/brokers")
            resp.raise_for_status()
            data = resp.json()
        if isinstance(data, list):
            return data
        return data.get("brokers") or []

    async def fetch_lease_spaces(self) -> List[dict]:
        cached = self._cached(LEASE_SPACES_CACHE_KEY)
        if cached:
            return cached

        async with self._client() as client:
            resp = await client.get(f"{self.api_base}/lease_spaces")
            resp.raise_for_status()
            spaces = resp.json().get("lease_spaces") or []

        if spaces:
            self.session_cache.set_json(LEASE_SPACES_CACHE_KEY, spaces)
        return spaces
