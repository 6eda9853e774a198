"""Anti-bot challenge detection and the wait-for-human state machine.

When a challenge page is shown the browser stays open and the operator
solves it by hand. The gate polls the page until the challenge signals are
gone, or gives up after the timeout and aborts the run.
"""

import asyncio
import inspect
import time
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple

import structlog
from playwright.async_api import Error as PlaywrightError

from rentfinder.core.exceptions import CaptchaTimeoutError, InvalidCaptchaTransition

logger = structlog.get_logger(__name__)

CHALLENGE_PHRASES = (
    "are you for real",
    "shieldsquare",
    "validate.perfdrive.com",
    "please verify you are a human",
)

CHALLENGE_SELECTORS = (
    "iframe[src*='captcha']",
    "iframe[src*='perfdrive']",
    "#px-captcha",
    "iframe[title*='hCaptcha']",
)


class CaptchaState(str, Enum):
    NONE = "none"
    DETECTED = "detected"
    WAITING_FOR_SOLVE = "waiting_for_solve"
    SOLVED = "solved"
    TIMED_OUT = "timed_out"


ALLOWED_TRANSITIONS = {
    CaptchaState.NONE: {CaptchaState.DETECTED},
    CaptchaState.DETECTED: {CaptchaState.WAITING_FOR_SOLVE},
    CaptchaState.WAITING_FOR_SOLVE: {CaptchaState.SOLVED, CaptchaState.TIMED_OUT},
    CaptchaState.SOLVED: set(),
    CaptchaState.TIMED_OUT: set(),
}

ChallengeCallback = Callable[[str], Any]


class CaptchaGate:
    """Challenge state machine for one browser session.

    Args:
        timeout: Seconds to wait for a human to solve the challenge
        poll_interval: Seconds between checks while waiting
        settle: Seconds to wait after the challenge disappears
        on_challenge: Optional callback (sync or async) receiving the page URL
        sleep: Awaitable sleep, replaceable in tests
        clock: Monotonic clock, replaceable in tests
    """

    def __init__(
        self,
        timeout: float = 120.0,
        poll_interval: float = 2.0,
        settle: float = 3.0,
        on_challenge: Optional[ChallengeCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.settle = settle
        self.on_challenge = on_challenge
        self._sleep = sleep
        self._clock = clock
        self.state = CaptchaState.NONE
        self.history: List[Tuple[CaptchaState, CaptchaState]] = []

    def reset(self) -> None:
        """Return to NONE before the next page."""
        self.state = CaptchaState.NONE

    def _transition(self, target: CaptchaState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidCaptchaTransition(self.state.value, target.value)
        self.history.append((self.state, target))
        self.state = target

    async def detect(self, page) -> bool:
        """True if the page shows a known challenge phrase or element."""
        content = (await page.content() or "").lower()
        if any(phrase in content for phrase in CHALLENGE_PHRASES):
            return True
        for selector in CHALLENGE_SELECTORS:
            if await page.query_selector(selector) is not None:
                return True
        return False

    async def _still_challenged(self, page) -> bool:
        try:
            return await self.detect(page)
        except PlaywrightError as e:
            # Page is mid-navigation while the operator works on it
            logger.debug("captcha_poll_failed", error=str(e))
            return True

    async def guard(self, page) -> CaptchaState:
        """Block while a challenge is open on the page.

        Returns:
            NONE if no challenge was shown, SOLVED once it was cleared

        Raises:
            CaptchaTimeoutError: If the challenge outlives the timeout
        """
        if not await self.detect(page):
            return self.state

        url = page.url
        self._transition(CaptchaState.DETECTED)
        logger.warning(
            "captcha_detected",
            url=url,
            timeout=self.timeout,
            hint="solve the challenge in the open browser window",
        )
        self._transition(CaptchaState.WAITING_FOR_SOLVE)
        await self._notify(url)

        deadline = self._clock() + self.timeout
        while self._clock() < deadline:
            await self._sleep(self.poll_interval)
            if not await self._still_challenged(page):
                self._transition(CaptchaState.SOLVED)
                logger.info("captcha_solved", url=url, settle=self.settle)
                await self._sleep(self.settle)
                return self.state

        self._transition(CaptchaState.TIMED_OUT)
        logger.error("captcha_timed_out", url=url, timeout=self.timeout)
        raise CaptchaTimeoutError(self.timeout, url)

    async def _notify(self, url: str) -> None:
        if self.on_challenge is None:
            return
        result = self.on_challenge(url)
        if inspect.isawaitable(result):
            await result
