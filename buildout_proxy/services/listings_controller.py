"""
Listings table controller.

Owns the table's AppState (working set, filter state, loading flag) and is the
single place that changes it: loading the three proxy collections, applying
filter/sort/search changes and handing the resulting rows to a render callback.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from buildout_proxy.clients.proxy_client import ProxyClient
from buildout_proxy.config import Settings, get_settings
from buildout_proxy.models import EnrichedListing, FilterState
from buildout_proxy.services import query_service
from buildout_proxy.services.aggregation_service import build_working_set
from buildout_proxy.services.debounce import SEARCH_DEBOUNCE_SECONDS, Debouncer
from buildout_proxy.services.url_state import state_from_url, state_to_query

logger = logging.getLogger(__name__)

RenderCallback = Callable[[List[EnrichedListing], "AppState"], None]


@dataclass
class AppState:
    working_set: List[EnrichedListing] = field(default_factory=list)
    filter_state: FilterState = field(default_factory=FilterState)
    loading: bool = False


class ListingsController:
    """Top-level controller for the listings table."""

    def __init__(
        self,
        client: ProxyClient,
        settings: Optional[Settings] = None,
        state: Optional[AppState] = None,
        on_render: Optional[RenderCallback] = None,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.state = state or AppState()
        self.on_render = on_render
        self._debounced_search = Debouncer(self._apply_search, debounce_seconds)

    async def load_listings(self) -> List[EnrichedListing]:
        """
        Fetch listings, brokers and lease spaces concurrently and rebuild the
        working set. The old working set stays in place until all three have
        resolved; a failed source contributes an empty list.
        """
        self.state.loading = True
        self._render(self.view())
        try:
            results = await asyncio.gather(
                self.client.fetch_all_listings(),
                self.client.fetch_brokers(),
                self.client.fetch_lease_spaces(),
                return_exceptions=True,
            )
            listings, brokers, lease_spaces = (
                self._source_or_empty(name, result)
                for name, result in zip(("listings", "brokers", "lease_spaces"), results)
            )
            working_set = build_working_set(
                listings, brokers, lease_spaces, debug=self.settings.debug_sizes
            )
            self.state.working_set = working_set
        finally:
            self.state.loading = False
        return self.refresh_view()

    @staticmethod
    def _source_or_empty(name: str, result) -> list:
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.error(f"[CLIENT] Failed to load {name}: {result!r}")
            return []
        return result or []

    def view(self) -> List[EnrichedListing]:
        return query_service.apply(self.state.working_set, self.state.filter_state)

    def refresh_view(self) -> List[EnrichedListing]:
        rows = self.view()
        self._render(rows)
        return rows

    def _render(self, rows: List[EnrichedListing]) -> None:
        if self.on_render:
            self.on_render(rows, self.state)

    def _set_filter_state(self, filter_state: FilterState) -> List[EnrichedListing]:
        self.state.filter_state = filter_state
        return self.refresh_view()

    def set_property_type(self, type_id) -> List[EnrichedListing]:
        return self._set_filter_state(self.state.filter_state.with_property_type(type_id))

    def set_listing_type(self, listing_type) -> List[EnrichedListing]:
        return self._set_filter_state(self.state.filter_state.with_listing_type(listing_type))

    def sort_by(self, key) -> List[EnrichedListing]:
        return self._set_filter_state(self.state.filter_state.toggle_sort(key))

    def search(self, text: str) -> asyncio.Task:
        """Debounced: only the last text typed within the window is applied."""
        return self._debounced_search(text)

    def _apply_search(self, text: str) -> List[EnrichedListing]:
        return self._set_filter_state(self.state.filter_state.with_search(text))

    def restore_from_url(self, url: str) -> FilterState:
        self.state.filter_state = state_from_url(url)
        return self.state.filter_state

    def to_query(self) -> str:
        return state_to_query(self.state.filter_state)
