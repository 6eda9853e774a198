"""Playwright browser lifecycle manager with anti-detection hooks.

Owns the single long-lived browser context of a scrape run. With a profile
directory the context is persistent, so cookies (including solved
challenge clearances) survive between runs.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Playwright,
    async_playwright,
)

from rentfinder.core.exceptions import BrowserLaunchError
from rentfinder.scrapers.utils.user_agents import get_random_user_agent

logger = structlog.get_logger()

# A hook receives the fresh context before the first navigation.
PreNavigationHook = Callable[[BrowserContext], Awaitable[None]]


# Minimal stealth JS to mask automation signals
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['he-IL', 'he', 'en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
"""


async def apply_stealth(context: BrowserContext) -> None:
    """Default pre-navigation hook: inject the stealth init script.

    Target-site detection changes over time, so this is best-effort only.
    """
    await context.add_init_script(STEALTH_JS)


DEFAULT_HOOKS: List[PreNavigationHook] = [apply_stealth]


class BrowserManager:
    """Manages the Playwright browser lifecycle for one scrape run.

    Creates a single context with:
    - A realistic desktop user agent, Hebrew locale and Jerusalem timezone
    - Optional persistent profile directory
    - Pluggable pre-navigation hooks (stealth script by default)
    """

    def __init__(
        self,
        headless: bool = False,
        executable_path: Optional[str] = None,
        profile_dir: Optional[str] = None,
        hooks: Optional[Sequence[PreNavigationHook]] = None,
    ):
        self._headless = headless
        self._executable_path = executable_path
        self._profile_dir = profile_dir
        self._hooks = list(DEFAULT_HOOKS if hooks is None else hooks)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._lock = asyncio.Lock()

    def _context_options(self) -> dict:
        return dict(
            user_agent=get_random_user_agent(),
            viewport={"width": 1920, "height": 1080},
            locale="he-IL",
            timezone_id="Asia/Jerusalem",
            java_script_enabled=True,
        )

    async def start(self) -> BrowserContext:
        """Launch the browser and return its context.

        Raises:
            BrowserLaunchError: If Playwright or the browser cannot start
        """
        async with self._lock:
            if self._context:
                return self._context

            launch_args = [
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
            ]
            try:
                self._playwright = await async_playwright().start()
                chromium = self._playwright.chromium
                if self._profile_dir:
                    self._context = await chromium.launch_persistent_context(
                        self._profile_dir,
                        headless=self._headless,
                        executable_path=self._executable_path,
                        args=launch_args,
                        **self._context_options(),
                    )
                else:
                    self._browser = await chromium.launch(
                        headless=self._headless,
                        executable_path=self._executable_path,
                        args=launch_args,
                    )
                    self._context = await self._browser.new_context(**self._context_options())

                for hook in self._hooks:
                    await hook(self._context)
            except PlaywrightError as e:
                await self._shutdown()
                raise BrowserLaunchError(str(e)) from e

            logger.info(
                "browser_started",
                headless=self._headless,
                persistent=bool(self._profile_dir),
                hooks=len(self._hooks),
            )
            return self._context

    async def stop(self) -> None:
        """Close the context, the browser and Playwright."""
        async with self._lock:
            await self._shutdown()
            logger.info("browser_stopped")

    async def _shutdown(self) -> None:
        if self._context:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.warning("browser_context_close_failed", error=str(e))
            self._context = None
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.warning("browser_close_failed", error=str(e))
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
