"""
Offset/limit pagination shared by the Buildout client and the proxy client.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from buildout_proxy.errors import UpstreamError

logger = logging.getLogger(__name__)

PageFetcher = Callable[[int], Awaitable[Optional[dict]]]


async def collect_pages(
    fetch_page: PageFetcher,
    page_size: int,
    collection_key: str,
    delay_seconds: float,
    stop_at_count: bool = True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Tuple[List[dict], Optional[int]]:
    """
    Request pages at offset 0, page_size, 2*page_size, ... and concatenate them.

    Stops on the first of:
    - a page shorter than page_size (or empty)
    - the reported total `count` being reached (only when stop_at_count)
    - fetch_page returning None (caller gave up on this page)

    Sleeps delay_seconds between pages. Returns (items, reported_count).
    A page that is not an object holding a list of records raises UpstreamError.
    """
    items: List[dict] = []
    total_count: Optional[int] = None
    offset = 0

    while True:
        data = await fetch_page(offset)
        if data is None:
            break

        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected {type(data).__name__} body for {collection_key} at offset {offset}")
        batch = data.get(collection_key) or []
        if not isinstance(batch, list) or not all(isinstance(item, dict) for item in batch):
            raise UpstreamError(f"Malformed {collection_key} page at offset {offset}")
        count = data.get("count")
        if total_count is None and isinstance(count, int) and not isinstance(count, bool):
            total_count = count

        items.extend(batch)

        if len(batch) < page_size:
            break
        if stop_at_count and total_count is not None and len(items) >= total_count:
            break

        offset += page_size
        await sleep(delay_seconds)

    return items, total_count
