"""Tests for the command-line runner."""

import json

import pytest

from rentfinder import run_scraper
from rentfinder.core.exceptions import BrowserLaunchError
from rentfinder.scrapers.base import NormalizedListing
from rentfinder.scrapers.pipeline import ScrapeResult, ScrapeStats


def sample_result():
    listing = NormalizedListing(
        id="yad2_t1", source="yad2", source_id="t1", title="3 חדרים - יפו, ירושלים",
        address="יפו, ירושלים", price=5000, rooms=3.0,
        source_url="https://www.yad2.co.il/realestate/item/t1",
    )
    return ScrapeResult(listings=[listing], stats=ScrapeStats(pages_requested=1, pages_fetched=1, total=1))


class TestParseArgs:
    def test_flags(self):
        args = run_scraper.parse_args(["--pages", "4", "--no-geocode", "--strategy", "http", "--dry-run", "--out", "x.jsonl"])
        assert args.pages == 4
        assert args.no_geocode is True
        assert args.strategy == "http"
        assert args.dry_run is True
        assert args.out == "x.jsonl"

    def test_pages_must_be_positive(self):
        with pytest.raises(SystemExit):
            run_scraper.parse_args(["--pages", "0"])

    def test_strategy_choices(self):
        with pytest.raises(SystemExit):
            run_scraper.parse_args(["--strategy", "ftp"])


class TestMain:
    async def test_dry_run_writes_jsonl(self, monkeypatch, tmp_path, capsys):
        calls = {}

        async def fake_run_scrape(config, pages, geocode, geocoder, strategy):
            calls.update(pages=pages, geocode=geocode, geocoder=geocoder, strategy=strategy)
            return sample_result()

        async def fail_store(listings):
            raise AssertionError("dry run must not store")

        monkeypatch.setattr(run_scraper, "run_scrape", fake_run_scrape)
        monkeypatch.setattr(run_scraper, "store", fail_store)
        out = tmp_path / "listings.jsonl"

        code = await run_scraper.main(pages=2, geocode=False, strategy="http", dry_run=True, out=str(out))

        assert code == 0
        assert calls == {"pages": 2, "geocode": False, "geocoder": None, "strategy": "http"}
        lines = out.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[0])["id"] == "yad2_t1"
        assert "skipped (dry run)" in capsys.readouterr().out

    async def test_stores_unless_dry_run(self, monkeypatch):
        stored = []

        async def fake_run_scrape(config, pages, geocode, geocoder, strategy):
            return sample_result()

        async def fake_store(listings):
            stored.extend(listings)
            return len(listings)

        monkeypatch.setattr(run_scraper, "run_scrape", fake_run_scrape)
        monkeypatch.setattr(run_scraper, "store", fake_store)

        code = await run_scraper.main(pages=1, geocode=False, strategy=None, dry_run=False, out=None)

        assert code == 0
        assert [listing.id for listing in stored] == ["yad2_t1"]

    async def test_fatal_error_exit_code(self, monkeypatch):
        async def fake_run_scrape(config, pages, geocode, geocoder, strategy):
            raise BrowserLaunchError("Executable doesn't exist")

        monkeypatch.setattr(run_scraper, "run_scrape", fake_run_scrape)

        assert await run_scraper.main(pages=1, geocode=False, strategy=None, dry_run=True, out=None) == 2
