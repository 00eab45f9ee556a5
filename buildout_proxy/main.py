"""
Buildout Listings Proxy
=======================
Caches the Buildout properties collection and proxies brokers and lease
spaces for the listings table.

Boot order:
- The disk snapshot is loaded before the app is returned, so the first
  request already sees the last good listings.
- A background refresh from Buildout then starts (REFRESH_ON_STARTUP).
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from buildout_proxy import __version__
from buildout_proxy.api.routes import router
from buildout_proxy.clients.buildout_client import BuildoutClient
from buildout_proxy.config import Settings, get_settings
from buildout_proxy.logging_config import setup_logging
from buildout_proxy.services.refresh_service import RefreshService
from buildout_proxy.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip()
    if ip:
        return ip
    return request.client.host if request.client else ""


def create_app(
    settings: Optional[Settings] = None,
    buildout_client: Optional[BuildoutClient] = None,
) -> FastAPI:
    """Build the FastAPI app with its snapshot store, Buildout client and refresh service."""
    settings = settings or get_settings()
    setup_logging(settings)

    store = SnapshotStore.from_settings(settings)
    disk = store.load()
    if not disk.is_empty:
        logger.info(f"Boot: loaded {disk.count} from disk.")

    client = buildout_client or BuildoutClient(settings)
    refresh_service = RefreshService(client, store, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if settings.refresh_on_startup:
            task = asyncio.create_task(refresh_service.refresh())
        app.state.startup_refresh = task
        logger.info("Proxy server running")
        yield
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"[REFRESH] Startup refresh failed: {e!r}")

    app = FastAPI(
        title="Buildout Listings Proxy",
        description="Cached Buildout listings, brokers and lease spaces for the listings table.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.snapshot_store = store
    app.state.buildout_client = client
    app.state.refresh_service = refresh_service

    allow_origins = ["*"]
    if settings.frontend_url:
        allow_origins = [settings.frontend_url]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_refresh_requests(request: Request, call_next):
        path = request.url.path
        if path == "/refresh" or path.startswith("/api/refresh"):
            ua = request.headers.get("user-agent", "")
            logger.info(
                f"[refresh] {datetime.now(timezone.utc).isoformat()} {request.method} "
                f"{request.url.path} ip={_client_ip(request)} ua={ua}"
            )
        return await call_next(request)

    app.include_router(router, tags=["Listings"])

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Buildout Listings Proxy",
            "version": __version__,
            "docs": "/docs",
            "endpoints": ["/api/listings", "/api/brokers", "/api/lease_spaces", "/api/refresh", "/health"],
        }

    return app


app = create_app()
