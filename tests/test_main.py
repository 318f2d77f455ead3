"""Tests for the command-line entry point."""

import httpx
import pytest

from discogs_preview import __main__ as cli
from discogs_preview.urls import EntityRef


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr("discogs_preview.config.load_dotenv", lambda: None)
    for key in ("DISCOGS_TOKEN", "CURRENCY_RATES", "DISCOVERY_CAP"):
        monkeypatch.delenv(key, raising=False)


def _discovered(monkeypatch, refs):
    async def fake_find_refs(self, query):
        return refs

    monkeypatch.setattr(
        "discogs_preview.marketplace.SearchDiscovery.find_refs", fake_find_refs
    )


def test_parser_flags():
    args = cli.build_parser().parse_args(
        ["Artist - Track", "--us-only", "--vg-plus", "--select", "2"]
    )
    assert args.title == "Artist - Track"
    assert args.us_only and args.vg_plus
    assert args.select == 2


def test_empty_title_exits_one(capsys):
    assert cli.main(["(Official Video)"]) == 1
    assert "Nothing to search for" in capsys.readouterr().err


def test_missing_token_exits_two(monkeypatch, capsys):
    _discovered(monkeypatch, [EntityRef("release", 1, "https://www.discogs.com/release/1")])
    assert cli.main(["Blueless - Ok (Official Video)"]) == 2
    assert "DISCOGS_TOKEN" in capsys.readouterr().err


def test_no_results_exits_one(monkeypatch, capsys):
    _discovered(monkeypatch, [])
    assert cli.main(["Nobody - Nothing"]) == 1
    assert "No Discogs results" in capsys.readouterr().err


def test_network_failure_exits_one(monkeypatch, capsys):
    async def offline(self, query):
        raise httpx.ConnectError("offline")

    monkeypatch.setattr("discogs_preview.marketplace.SearchDiscovery.find_refs", offline)
    assert cli.main(["Artist - Track"]) == 1
    assert "try again later" in capsys.readouterr().err
