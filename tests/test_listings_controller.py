"""Test the listings table controller: loading, degradation and debounced search."""
import pytest

from buildout_proxy.models import ListingType, SortKey
from buildout_proxy.services.listings_controller import ListingsController
from tests.conftest import FakeProxyClient


class RenderLog:
    def __init__(self):
        self.calls = []

    def __call__(self, rows, state):
        self.calls.append((len(rows), state.loading))


def make_controller(settings, client=None, **kwargs):
    return ListingsController(client or FakeProxyClient(), settings, **kwargs)


@pytest.mark.asyncio
async def test_load_builds_working_set(settings):
    render = RenderLog()
    controller = make_controller(settings, on_render=render)

    rows = await controller.load_listings()

    assert [row.id for row in rows] == ["101", "102", "103", "105"]
    assert controller.state.loading is False
    # Loading view first, then the loaded rows
    assert render.calls == [(0, True), (4, False)]


@pytest.mark.asyncio
async def test_failed_source_degrades_to_empty(settings):
    client = FakeProxyClient(brokers=RuntimeError("brokers down"))
    controller = make_controller(settings, client)

    rows = await controller.load_listings()

    assert len(rows) == 4
    assert all(row.brokers == [] for row in rows)


@pytest.mark.asyncio
async def test_all_sources_failing_gives_empty_table(settings):
    error = RuntimeError("proxy down")
    controller = make_controller(settings, FakeProxyClient(error, error, error))

    rows = await controller.load_listings()

    assert rows == []
    assert controller.state.working_set == []
    assert controller.state.loading is False


@pytest.mark.asyncio
async def test_filter_and_sort_transitions(settings):
    controller = make_controller(settings)
    await controller.load_listings()

    assert [r.id for r in controller.set_listing_type(ListingType.LEASE)] == ["101", "105"]
    assert [r.id for r in controller.sort_by(SortKey.SIZE)] == ["105", "101"]
    assert [r.id for r in controller.sort_by(SortKey.SIZE)] == ["101", "105"]
    assert [r.id for r in controller.set_property_type("2")] == ["105"]
    assert controller.to_query() == "?ptype=retail&lt=lease&sort=-size"


@pytest.mark.asyncio
async def test_search_is_debounced(settings):
    render = RenderLog()
    controller = make_controller(settings, on_render=render, debounce_seconds=0.01)
    await controller.load_listings()
    render.calls.clear()

    first = controller.search("a")
    second = controller.search("aus")
    third = controller.search("austin")
    rows = await third

    assert first.cancelled() or first.done()
    assert second.cancelled() or second.done()
    assert [r.id for r in rows] == ["101", "105"]
    assert controller.state.filter_state.search_text == "austin"
    # Only the last keystroke rendered
    assert render.calls == [(2, False)]


@pytest.mark.asyncio
async def test_restore_from_url(settings):
    controller = make_controller(settings)
    controller.restore_from_url("?ptype=industrial&lt=lease&q=austin")
    rows = await controller.load_listings()

    assert [r.id for r in rows] == ["101"]
    assert controller.to_query() == "?ptype=industrial&lt=lease&q=austin"
