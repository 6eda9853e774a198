"""Tests for the browser session fetch strategy (with a fake browser)."""

import json

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from rentfinder.core.exceptions import (
    BrowserLaunchError,
    CaptchaTimeoutError,
    ExtractionFailure,
    NetworkError,
)
from rentfinder.scrapers.adapters.browser_session import BrowserSessionAdapter
from rentfinder.scrapers.captcha import CaptchaGate, CaptchaState
from rentfinder.scrapers.pipeline import PipelineOrchestrator
from rentfinder.scrapers.utils import browser_manager
from rentfinder.scrapers.utils.browser_manager import STEALTH_JS, BrowserManager

CHALLENGE = "<html><body>please verify you are a human</body></html>"
CLEAN = "<html><body>ok</body></html>"


class FakePage:
    def __init__(self, hydration=None, contents=None, goto_error=None, wait_error=None,
                 url_after_goto=None, content_error=None):
        self.hydration = hydration
        self.contents = list(contents or [CLEAN])
        self.goto_error = goto_error
        self.wait_error = wait_error
        self.url_after_goto = url_after_goto
        self.content_error = content_error
        self.url = "about:blank"
        self.visited = []

    async def goto(self, url, wait_until=None, timeout=None):
        if self.goto_error:
            raise self.goto_error
        self.visited.append(url)
        self.url = self.url_after_goto.pop(0) if self.url_after_goto else url

    async def content(self):
        if self.content_error:
            raise self.content_error
        if len(self.contents) > 1:
            return self.contents.pop(0)
        return self.contents[0]

    async def query_selector(self, selector):
        return None

    async def wait_for_selector(self, selector, state=None, timeout=None):
        if self.wait_error:
            raise self.wait_error

    async def evaluate(self, script, arg=None):
        return self.hydration


class FakeContext:
    def __init__(self, page):
        self.page = page

    async def new_page(self):
        return self.page


class FakeBrowserManager:
    def __init__(self, page):
        self.context = FakeContext(page)
        self.started = 0
        self.stopped = 0

    async def start(self):
        self.started += 1
        return self.context

    async def stop(self):
        self.stopped += 1


def make_adapter(config, page, gate=None):
    browser = FakeBrowserManager(page)
    gate = gate or CaptchaGate(timeout=0.05, poll_interval=0.01, settle=0.0)
    return BrowserSessionAdapter(config, browser=browser, gate=gate), browser


class TestBrowserSessionAdapter:
    """Tests for BrowserSessionAdapter."""

    async def test_reads_live_hydration(self, pipeline_config, feed_factory, next_data_factory, item_factory):
        hydration = json.dumps(next_data_factory(feed_factory(agency=[item_factory("b1")])))
        page = FakePage(hydration=hydration)
        adapter, browser = make_adapter(pipeline_config, page)

        async with adapter:
            payload = await adapter.fetch_page(2)

        assert [i["token"] for i in payload.bucket("agency")] == ["b1"]
        assert page.visited == [adapter.page_url(2)]
        assert browser.started == 1
        assert browser.stopped == 1

    async def test_navigation_failure_is_network_error(self, pipeline_config):
        page = FakePage(goto_error=PlaywrightTimeout("Timeout 30000ms exceeded"))
        adapter, _ = make_adapter(pipeline_config, page)

        async with adapter:
            with pytest.raises(NetworkError):
                await adapter.fetch_page(1)

    async def test_missing_hydration_is_extraction_failure(self, pipeline_config):
        page = FakePage(wait_error=PlaywrightTimeout("waiting for selector"))
        adapter, _ = make_adapter(pipeline_config, page)

        async with adapter:
            with pytest.raises(ExtractionFailure):
                await adapter.fetch_page(1)

    async def test_page_error_while_reading_is_network_error(self, pipeline_config):
        page = FakePage(wait_error=PlaywrightError("Target page, context or browser has been closed"))
        adapter, _ = make_adapter(pipeline_config, page)

        async with adapter:
            with pytest.raises(NetworkError):
                await adapter.fetch_page(1)

    async def test_destroyed_context_during_challenge_check_is_network_error(self, pipeline_config):
        page = FakePage(content_error=PlaywrightError("Execution context was destroyed"))
        adapter, _ = make_adapter(pipeline_config, page)

        async with adapter:
            with pytest.raises(NetworkError):
                await adapter.fetch_page(1)

    async def test_challenge_check_errors_do_not_abort_run(self, pipeline_config):
        page = FakePage(content_error=PlaywrightError("Execution context was destroyed"))
        adapter, browser = make_adapter(pipeline_config, page)

        result = await PipelineOrchestrator(adapter, pipeline_config).run(2, geocode=False)

        assert result.stats.pages_failed == 2
        assert result.listings == []
        assert browser.stopped == 1

    async def test_no_feed_query_is_extraction_failure(self, pipeline_config, next_data_factory):
        page = FakePage(hydration=json.dumps(next_data_factory(None)))
        adapter, _ = make_adapter(pipeline_config, page)

        async with adapter:
            with pytest.raises(ExtractionFailure):
                await adapter.fetch_page(1)

    async def test_renavigates_after_solved_challenge(self, pipeline_config, feed_factory, next_data_factory):
        hydration = json.dumps(next_data_factory(feed_factory(private=[{"token": "p", "price": 1}])))
        page = FakePage(
            hydration=hydration,
            contents=[CHALLENGE, CLEAN],
            url_after_goto=["https://validate.perfdrive.com/challenge"],
        )
        gate = CaptchaGate(timeout=1.0, poll_interval=0.01, settle=0.0)
        adapter, _ = make_adapter(pipeline_config, page, gate)

        async with adapter:
            payload = await adapter.fetch_page(1)

        assert payload.item_count == 1
        assert gate.state == CaptchaState.SOLVED
        assert page.visited == [adapter.page_url(1), adapter.page_url(1)]

    async def test_captcha_timeout_propagates(self, pipeline_config):
        page = FakePage(hydration="{}", contents=[CHALLENGE])
        adapter, browser = make_adapter(pipeline_config, page)

        with pytest.raises(CaptchaTimeoutError):
            async with adapter:
                await adapter.fetch_page(1)
        assert browser.stopped == 1

    async def test_gate_reset_each_page(self, pipeline_config, feed_factory, next_data_factory):
        hydration = json.dumps(next_data_factory(feed_factory(private=[])))
        page = FakePage(hydration=hydration, contents=[CHALLENGE, CLEAN])
        gate = CaptchaGate(timeout=1.0, poll_interval=0.01, settle=0.0)
        adapter, _ = make_adapter(pipeline_config, page, gate)

        async with adapter:
            await adapter.fetch_page(1)
            await adapter.fetch_page(2)

        assert gate.state == CaptchaState.NONE


class TestBrowserManager:
    """Tests for BrowserManager startup with a stubbed Playwright driver."""

    def _patch_playwright(self, monkeypatch, chromium):
        class Driver:
            def __init__(self):
                self.chromium = chromium
                self.stopped = False

            async def stop(self):
                self.stopped = True

        driver = Driver()

        class Starter:
            async def start(self):
                return driver

        monkeypatch.setattr(browser_manager, "async_playwright", lambda: Starter())
        return driver

    async def test_persistent_profile_and_hooks(self, monkeypatch, tmp_path):
        context = FakeBrowserContext()
        calls = {}

        class Chromium:
            async def launch_persistent_context(self, user_data_dir, **kwargs):
                calls["profile"] = user_data_dir
                calls["kwargs"] = kwargs
                return context

        self._patch_playwright(monkeypatch, Chromium())
        hooked = []

        async def hook(ctx):
            hooked.append(ctx)

        manager = BrowserManager(profile_dir=str(tmp_path), hooks=[hook])
        assert await manager.start() is context
        assert await manager.start() is context

        assert calls["profile"] == str(tmp_path)
        assert calls["kwargs"]["locale"] == "he-IL"
        assert calls["kwargs"]["timezone_id"] == "Asia/Jerusalem"
        assert hooked == [context]

        await manager.stop()
        assert context.closed

    async def test_default_hook_injects_stealth_script(self, monkeypatch):
        context = FakeBrowserContext()

        class Browser:
            async def new_context(self, **kwargs):
                return context

            async def close(self):
                pass

        class Chromium:
            async def launch(self, **kwargs):
                return Browser()

        self._patch_playwright(monkeypatch, Chromium())

        manager = BrowserManager(headless=True)
        await manager.start()

        assert context.init_scripts == [STEALTH_JS]
        await manager.stop()

    async def test_launch_failure_is_fatal(self, monkeypatch):
        class Chromium:
            async def launch(self, **kwargs):
                raise PlaywrightError("Executable doesn't exist at /opt/chrome")

        driver = self._patch_playwright(monkeypatch, Chromium())

        with pytest.raises(BrowserLaunchError):
            await BrowserManager(executable_path="/opt/chrome").start()
        assert driver.stopped


class FakeBrowserContext:
    def __init__(self):
        self.init_scripts = []
        self.closed = False

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def close(self):
        self.closed = True
