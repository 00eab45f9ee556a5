"""
Buildout API Client - READ-ONLY OPERATIONS ONLY
Fetches the properties, brokers and lease spaces collections with pagination,
a fixed inter-page delay and retry with exponential backoff.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional, Tuple

import httpx

from buildout_proxy.clients.pagination import collect_pages
from buildout_proxy.config import Settings, get_settings
from buildout_proxy.errors import ClientError, UpstreamError

logger = logging.getLogger(__name__)

# Stay under Buildout rate limits
PAGE_DELAY_SECONDS = 1.0

# Retry policy for 429 / 5xx / timeouts
MAX_ATTEMPTS = 6
BASE_DELAY_SECONDS = 0.8
BACKOFF_FACTOR = 1.6
MAX_JITTER_SECONDS = 0.25

USER_AGENT = "buildout-listings-proxy/1.0"


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status <= 599


class BuildoutClient:
    """
    REST client for the Buildout API.
    IMPORTANT: This client only implements READ operations (GET).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.buildout_api_root
        self.timeout = self.settings.request_timeout_seconds
        self.headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        self._transport = transport
        self._sleep = sleep
        self._random = rng or random.Random()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self._transport,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after the given (0-based) failed attempt."""
        return BASE_DELAY_SECONDS * (BACKOFF_FACTOR ** attempt) + self._random.uniform(0, MAX_JITTER_SECONDS)

    async def request_with_retry(self, client: httpx.AsyncClient, url: str, params: Optional[dict] = None) -> dict:
        """
        GET url and return the decoded JSON body.

        429, 5xx and timeouts are retried up to MAX_ATTEMPTS times. Any other
        4xx raises ClientError at once; other transport failures raise
        UpstreamError at once.
        """
        last_error: Optional[UpstreamError] = None

        for attempt in range(MAX_ATTEMPTS):
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if not is_retryable_status(status):
                    if 400 <= status < 500:
                        raise ClientError(f"Buildout returned {status} for {url}", status=status) from e
                    raise UpstreamError(f"Buildout returned {status} for {url}", status=status) from e
                last_error = UpstreamError(f"Buildout returned {status} for {url}", status=status)
                reason = str(status)
            except httpx.TimeoutException as e:
                last_error = UpstreamError(f"Timeout fetching {url}: {e!r}")
                reason = "timeout"
            except httpx.TransportError as e:
                raise UpstreamError(f"Network error fetching {url}: {e!r}") from e
            except ValueError as e:
                raise UpstreamError(f"Invalid JSON from {url}: {e}") from e

            if attempt + 1 < MAX_ATTEMPTS:
                delay = self.backoff_delay(attempt)
                logger.warning(
                    f"[BUILDOUT] {reason} on {url} - retrying in {round(delay * 1000)}ms "
                    f"({attempt + 1}/{MAX_ATTEMPTS})"
                )
                await self._sleep(delay)

        logger.error(f"[BUILDOUT] Giving up on {url} after {MAX_ATTEMPTS} attempts")
        raise last_error

    async def fetch_collection(
        self,
        endpoint: str,
        page_size: int,
        collection_key: Optional[str] = None,
        stop_at_count: bool = True,
    ) -> Tuple[List[dict], Optional[int]]:
        """
        GET every page of /{endpoint}.json. Returns (records, reported_count).
        """
        url = f"{self.base_url}/{endpoint}.json"
        collection_key = collection_key or endpoint

        async with self._client() as client:
            async def fetch_page(offset: int) -> dict:
                logger.info(f"[BUILDOUT] Fetching {endpoint} limit={page_size} offset={offset}")
                return await self.request_with_retry(client, url, {"limit": page_size, "offset": offset})

            return await collect_pages(
                fetch_page,
                page_size,
                collection_key,
                delay_seconds=PAGE_DELAY_SECONDS,
                stop_at_count=stop_at_count,
                sleep=self._sleep,
            )

    async def fetch_all_pages(self, endpoint: str, page_size: int, stop_at_count: bool = True) -> List[dict]:
        """All records of a paginated collection, in request order."""
        records, _ = await self.fetch_collection(endpoint, page_size, stop_at_count=stop_at_count)
        return records

    async def fetch_properties(self) -> List[dict]:
        """
        GET operation: every property listing.
        Properties report a reliable total count, so paging stops when it is reached.
        """
        return await self.fetch_all_pages("properties", self.settings.properties_page_size)

    async def fetch_brokers(self) -> List[dict]:
        """GET operation: every broker. Stops on a short page."""
        return await self.fetch_all_pages("brokers", self.settings.brokers_page_size, stop_at_count=False)

    async def fetch_lease_spaces(self) -> Tuple[List[dict], Optional[int]]:
        """
        GET operation: every lease space plus the count Buildout reports.
        The lease space count is not reliable for paging; stops on a short page.
        """
        return await self.fetch_collection(
            "lease_spaces",
            self.settings.lease_spaces_page_size,
            stop_at_count=False,
        )
