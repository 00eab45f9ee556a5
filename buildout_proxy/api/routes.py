"""
API Routes - Buildout listings proxy.
Flat JSON endpoints consumed by the listings table.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from buildout_proxy.clients.buildout_client import BuildoutClient
from buildout_proxy.errors import Cooldown, Unauthorized, UpstreamError
from buildout_proxy.models import (
    BrokersResponse,
    HealthResponse,
    LeaseSpacesResponse,
    ListingsResponse,
    RefreshResponse,
)
from buildout_proxy.services.refresh_service import RefreshService
from buildout_proxy.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_snapshot_store(request: Request) -> SnapshotStore:
    return request.app.state.snapshot_store


def get_buildout_client(request: Request) -> BuildoutClient:
    return request.app.state.buildout_client


def get_refresh_service(request: Request) -> RefreshService:
    return request.app.state.refresh_service


@router.get("/api/listings", response_model=ListingsResponse)
async def get_listings(
    limit: Optional[int] = Query(None, ge=1, description="Page size (omit for all)"),
    offset: int = Query(0, ge=0),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    """
    GET: Cached Buildout properties.
    Served from the in-memory snapshot; count is always the snapshot total.
    """
    snapshot = store.current()
    properties = snapshot.properties
    if limit is not None:
        properties = properties[offset:offset + limit]
    elif offset:
        properties = properties[offset:]
    return ListingsResponse(
        properties=properties,
        last_updated=snapshot.last_updated,
        count=snapshot.count,
    )


@router.get("/api/brokers", response_model=BrokersResponse)
async def get_brokers(client: BuildoutClient = Depends(get_buildout_client)):
    """GET: All brokers, fetched live from Buildout."""
    try:
        brokers = await client.fetch_brokers()
    except UpstreamError as e:
        logger.error(f"[API] Failed to fetch brokers: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch brokers"})
    return BrokersResponse(brokers=brokers)


@router.get("/api/lease_spaces", response_model=LeaseSpacesResponse)
async def get_lease_spaces(client: BuildoutClient = Depends(get_buildout_client)):
    """GET: All lease spaces (every page), fetched live from Buildout."""
    try:
        spaces, reported_count = await client.fetch_lease_spaces()
    except UpstreamError as e:
        logger.error(f"[API] Failed to fetch lease spaces: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch lease spaces"})
    count = reported_count if reported_count is not None else len(spaces)
    return LeaseSpacesResponse(message="OK", count=count, lease_spaces=spaces)


@router.post("/api/refresh", response_model=RefreshResponse)
async def refresh_listings(
    token: Optional[str] = Query(None),
    x_refresh_token: Optional[str] = Header(None),
    service: RefreshService = Depends(get_refresh_service),
):
    """
    POST: Rebuild the listings snapshot now.
    Requires the refresh token (x-refresh-token header or ?token=).
    """
    try:
        result = await service.trigger_refresh(x_refresh_token or token)
    except Unauthorized:
        return JSONResponse(status_code=401, content={"ok": False, "error": "unauthorized"})
    except Cooldown as e:
        return JSONResponse(
            status_code=429,
            content={"ok": False, "reason": "cooldown", "next_allowed_in_ms": e.remaining_ms},
        )
    return RefreshResponse(**result)


@router.get("/refresh")
async def refresh_wrong_method():
    return PlainTextResponse("Use POST /api/refresh", status_code=404)


@router.get("/health", response_model=HealthResponse)
async def health_check(store: SnapshotStore = Depends(get_snapshot_store)):
    """Health check endpoint."""
    snapshot = store.current()
    return HealthResponse(ok=True, count=snapshot.count, last_updated=snapshot.last_updated)
