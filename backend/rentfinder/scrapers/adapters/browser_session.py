"""Browser automation fetch strategy.

Drives one long-lived Playwright page through the listing pages. The live
document's hydration text is read after the page has rendered, and an
anti-bot challenge pauses the run until a human solves it.
"""

from typing import Optional
from urllib.parse import parse_qsl, urlparse

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from rentfinder.config import PipelineConfig
from rentfinder.core.exceptions import ExtractionFailure, NetworkError
from rentfinder.scrapers.base import BaseFetchStrategy, FeedPayload
from rentfinder.scrapers.captcha import CaptchaGate, CaptchaState
from rentfinder.scrapers.page_state import HYDRATION_ELEMENT_ID, PageStateExtractor
from rentfinder.scrapers.utils.browser_manager import BrowserManager

_HYDRATION_SELECTOR = f"script#{HYDRATION_ELEMENT_ID}"
_READ_HYDRATION_JS = (
    "(id) => { const el = document.getElementById(id); return el ? el.textContent : null; }"
)


class BrowserSessionAdapter(BaseFetchStrategy):
    """Fetches pages with a real browser and waits out challenges."""

    strategy_name = "browser"

    def __init__(
        self,
        config: PipelineConfig,
        browser: Optional[BrowserManager] = None,
        gate: Optional[CaptchaGate] = None,
        extractor: Optional[PageStateExtractor] = None,
    ):
        super().__init__(config)
        self.browser = browser or BrowserManager(
            headless=config.browser_headless,
            executable_path=config.browser_executable_path,
            profile_dir=config.browser_profile_dir,
        )
        self.gate = gate or CaptchaGate(
            timeout=config.captcha_timeout,
            poll_interval=config.captcha_poll_interval,
            settle=config.captcha_settle,
        )
        self.extractor = extractor or PageStateExtractor(config.feed_query_marker)
        self._page = None

    async def open(self) -> None:
        context = await self.browser.start()
        self._page = await context.new_page()
        self.logger.info("browser_session_opened")

    async def close(self) -> None:
        self._page = None
        await self.browser.stop()

    async def fetch_page(self, page_number: int) -> FeedPayload:
        if self._page is None:
            await self.open()
        page = self._page
        url = self.page_url(page_number)
        self.gate.reset()

        await self._navigate(page, url, page_number)

        try:
            state = await self.gate.guard(page)
        except PlaywrightError as e:
            # Redirects can destroy the execution context mid-check
            raise NetworkError(page_number, f"challenge check failed: {e}") from e
        if state == CaptchaState.SOLVED and not _same_document(page.url, url):
            self.logger.info("renavigating_after_captcha", page=page_number, current=page.url)
            await self._navigate(page, url, page_number)

        try:
            await page.wait_for_selector(
                _HYDRATION_SELECTOR,
                state="attached",
                timeout=self.config.hydration_timeout_ms,
            )
            text = await page.evaluate(_READ_HYDRATION_JS, HYDRATION_ELEMENT_ID)
        except PlaywrightTimeout as e:
            raise ExtractionFailure(page_number, "hydration data did not appear") from e
        except PlaywrightError as e:
            raise NetworkError(page_number, f"reading page failed: {e}") from e

        payload = self.extractor.from_script_text(text)
        if payload is None:
            raise ExtractionFailure(page_number, "listing feed not found in hydration data")

        self.logger.info("page_fetched", page=page_number, items=payload.item_count)
        return payload

    async def _navigate(self, page, url: str, page_number: int) -> None:
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.navigation_timeout_ms,
            )
        except PlaywrightError as e:
            raise NetworkError(page_number, f"navigation failed: {e}") from e


def _same_document(current: str, target: str) -> bool:
    a, b = urlparse(current or ""), urlparse(target)
    return (a.netloc, a.path.rstrip("/"), sorted(parse_qsl(a.query))) == (
        b.netloc,
        b.path.rstrip("/"),
        sorted(parse_qsl(b.query)),
    )
