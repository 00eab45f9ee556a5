"""Test the buildout-proxy command line helpers."""
import pytest

from buildout_proxy import cli
from buildout_proxy.models import EnrichedListing
from buildout_proxy.services.listings_controller import ListingsController
from buildout_proxy.services.snapshot_store import SnapshotStore
from tests.conftest import SAMPLE_LISTINGS, FakeProxyClient


def test_parser_subcommands():
    parser = cli.build_parser()

    args = parser.parse_args(["serve", "--port", "8080"])
    assert (args.command, args.port, args.host) == ("serve", 8080, "0.0.0.0")

    args = parser.parse_args(["refresh", "--token", "abc"])
    assert (args.command, args.token, args.url) == ("refresh", "abc", "http://localhost:3000")

    args = parser.parse_args(["query", "?ptype=land", "--nocache"])
    assert (args.query, args.nocache) == ("?ptype=land", True)


def test_main_without_command_prints_help(monkeypatch, capsys):
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    assert cli.main([]) == 2
    assert "usage" in capsys.readouterr().out


def test_format_row():
    item = EnrichedListing(
        location="1 Main St, Austin, TX 78701",
        property_type_id="1",
        size_display="2,000 SF",
        type_label="For Lease",
    )
    row = cli.format_row(item)
    assert row.startswith("1 Main St, Austin, TX 78701")
    assert "2,000 SF" in row
    assert "Office" in row
    assert row.endswith("For Lease")


@pytest.mark.asyncio
async def test_preload_snapshot_writes_disk(settings, buildout_client):
    store = SnapshotStore.from_settings(settings)
    snapshot = await cli.preload_snapshot(buildout_client, store)

    assert snapshot.count == len(SAMPLE_LISTINGS)
    assert SnapshotStore.from_settings(settings).load().count == len(SAMPLE_LISTINGS)


@pytest.mark.asyncio
async def test_run_query(settings):
    controller = ListingsController(FakeProxyClient(), settings)
    rows = await cli.run_query(controller, "?lt=sale")
    assert [r.id for r in rows] == ["102"]
