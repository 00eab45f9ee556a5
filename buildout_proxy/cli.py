#!/usr/bin/env python3
"""
buildout-proxy command line.

Usage:
    buildout-proxy serve --port 3000        # Run the proxy server
    buildout-proxy preload                  # Fetch from Buildout into the disk snapshot
    buildout-proxy refresh --url http://localhost:3000
    buildout-proxy query "?ptype=industrial&lt=lease&q=austin&sort=-size"
"""
import argparse
import asyncio
import html
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

from buildout_proxy.clients.buildout_client import BuildoutClient
from buildout_proxy.clients.proxy_client import ProxyClient
from buildout_proxy.config import get_settings
from buildout_proxy.errors import UpstreamError
from buildout_proxy.logging_config import setup_logging
from buildout_proxy.models import EnrichedListing, Snapshot
from buildout_proxy.property_config import get_type_label
from buildout_proxy.services.listings_controller import ListingsController
from buildout_proxy.services.snapshot_store import SnapshotStore
from buildout_proxy.services.url_state import should_bypass_cache

logger = logging.getLogger(__name__)


def format_row(item: EnrichedListing) -> str:
    """One table row: location | property type | size | brokers | listing type."""
    brokers = html.unescape(", ".join(chip.name for chip in item.brokers)) or "-"
    ptype = get_type_label(item.property_type_id) or "-"
    return (
        f"{item.location[:48]:<48}  {ptype:<15}  {item.size_display:>14}  "
        f"{brokers[:32]:<32}  {item.type_label}"
    )


def cmd_serve(args) -> int:
    """Run the proxy server."""
    import uvicorn
    print(f"Proxy server on http://{args.host}:{args.port}")
    uvicorn.run(
        "buildout_proxy.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


async def preload_snapshot(client: BuildoutClient, store: SnapshotStore) -> Snapshot:
    properties = await client.fetch_properties()
    snapshot = Snapshot(properties=properties, last_updated=datetime.now(timezone.utc))
    store.save(snapshot)
    return snapshot


def cmd_preload(args) -> int:
    """Fetch every property from Buildout and write the disk snapshot."""
    settings = get_settings()
    store = SnapshotStore.from_settings(settings)
    try:
        snapshot = asyncio.run(preload_snapshot(BuildoutClient(settings), store))
    except UpstreamError as e:
        logger.error(f"[PRELOAD] Failed: {e}")
        return 1
    print(f"Wrote {snapshot.count} listings to {store.cache_path}")
    return 0


def cmd_refresh(args) -> int:
    """POST /api/refresh on a running proxy."""
    settings = get_settings()
    token = args.token or settings.refresh_token
    url = f"{args.url.rstrip('/')}/api/refresh"
    try:
        resp = httpx.post(url, headers={"x-refresh-token": token}, timeout=300)
    except httpx.HTTPError as e:
        logger.error(f"[REFRESH] Request failed: {e!r}")
        return 1
    print(f"{resp.status_code} {resp.text}")
    return 0 if resp.is_success else 1


async def run_query(controller: ListingsController, query: str) -> List[EnrichedListing]:
    controller.restore_from_url(query)
    return await controller.load_listings()


def cmd_query(args) -> int:
    """Load the working set from a proxy and print the table for a URL query."""
    settings = get_settings()
    query = args.query if args.query.startswith(("?", "#", "http")) else f"?{args.query}"
    bypass_cache = args.nocache or should_bypass_cache(urlsplit(query).query)
    client = ProxyClient(settings, bypass_cache=bypass_cache)
    controller = ListingsController(client, settings)

    rows = asyncio.run(run_query(controller, query))
    for item in rows:
        print(format_row(item))
    print(f"\n{len(rows)} of {len(controller.state.working_set)} listings  {controller.to_query()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildout-proxy",
        description="Buildout listings proxy and listings table tools",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="DEBUG logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the proxy server")
    serve_parser.add_argument("--host", type=str, default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=3000)
    serve_parser.add_argument("--reload", action="store_true")

    # preload
    subparsers.add_parser("preload", help="Fetch listings from Buildout into the disk snapshot")

    # refresh
    refresh_parser = subparsers.add_parser("refresh", help="Trigger /api/refresh on a running proxy")
    refresh_parser.add_argument("--url", type=str, default="http://localhost:3000")
    refresh_parser.add_argument("--token", type=str, default=None, help="Defaults to REFRESH_TOKEN")

    # query
    query_parser = subparsers.add_parser("query", help="Print the filtered/sorted listings table")
    query_parser.add_argument("query", nargs="?", default="", help='e.g. "?ptype=industrial&lt=lease&q=austin"')
    query_parser.add_argument("--nocache", action="store_true", help="Skip the session cache")

    return parser


COMMANDS = {
    "serve": cmd_serve,
    "preload": cmd_preload,
    "refresh": cmd_refresh,
    "query": cmd_query,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level_name="DEBUG" if args.verbose else None)

    if args.command not in COMMANDS:
        parser.print_help()
        return 2
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
