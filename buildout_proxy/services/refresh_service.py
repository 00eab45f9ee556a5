"""
Refresh Service - rebuilds the listings snapshot from Buildout.

Refreshes never overlap (in-process flag, single instance) and never make
things worse: on failure the last good snapshot keeps being served.
Manual triggers need the shared REFRESH_TOKEN and respect a cooldown.
"""
import asyncio
import hmac
import logging
import math
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from buildout_proxy.clients.buildout_client import BuildoutClient
from buildout_proxy.config import Settings, get_settings
from buildout_proxy.errors import Cooldown, Unauthorized, UpstreamError
from buildout_proxy.models import Snapshot
from buildout_proxy.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshService:
    """Serializes refreshes and guards the manual trigger."""

    def __init__(
        self,
        client: BuildoutClient,
        store: SnapshotStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.store = store
        self.settings = settings or get_settings()
        self.min_interval_seconds = self.settings.min_refresh_interval_seconds
        self._clock = clock
        self._now = now
        self.is_refreshing = False
        self.last_trigger_at: Optional[float] = None

    async def refresh(self) -> Snapshot:
        """
        Fetch all properties and replace the snapshot. A call made while
        another refresh is in flight does nothing and returns the current
        snapshot.
        """
        if self.is_refreshing:
            logger.info("[REFRESH] Refresh already in progress; skipping.")
            return self.store.current()

        self.is_refreshing = True
        try:
            # Serve something immediately if we have never loaded
            if self.store.current().is_empty:
                await asyncio.to_thread(self.store.load)

            logger.info("[REFRESH] Loading listings from Buildout...")
            properties = await self.client.fetch_properties()
            snapshot = Snapshot(properties=properties, last_updated=self._now())
            # Disk write (or its logged failure) completes before memory is swapped
            await asyncio.to_thread(self.store.save, snapshot)
            logger.info(f"[REFRESH] Listings cache loaded: {snapshot.count} listings.")
        except UpstreamError as e:
            logger.error(f"[REFRESH] Error loading listings: {e.status or e}")
            # Do not clear on failure; keep serving last good
            if self.store.current().is_empty:
                await asyncio.to_thread(self.store.load)
                logger.info(f"[REFRESH] Serving {self.store.current().count} listings from disk cache.")
            else:
                logger.info(f"[REFRESH] Keeping previous in-memory cache: {self.store.current().count} listings.")
        finally:
            self.is_refreshing = False

        return self.store.current()

    def check_credential(self, credential: Optional[str]) -> None:
        expected = self.settings.refresh_token
        if not expected or not credential:
            raise Unauthorized("refresh token missing")
        if not hmac.compare_digest(credential.encode("utf-8"), expected.encode("utf-8")):
            raise Unauthorized("refresh token mismatch")

    def check_cooldown(self) -> None:
        if self.last_trigger_at is None:
            return
        elapsed = self._clock() - self.last_trigger_at
        if elapsed < self.min_interval_seconds:
            remaining_ms = max(1, math.ceil((self.min_interval_seconds - elapsed) * 1000))
            raise Cooldown(remaining_ms)

    async def trigger_refresh(self, credential: Optional[str]) -> dict:
        """
        Manual refresh. Raises Unauthorized or Cooldown; otherwise runs the
        refresh to completion and returns {"ok", "count", "last_updated"}.
        """
        self.check_credential(credential)
        self.check_cooldown()
        self.last_trigger_at = self._clock()

        snapshot = await self.refresh()
        return {"ok": True, "count": snapshot.count, "last_updated": snapshot.last_updated}
