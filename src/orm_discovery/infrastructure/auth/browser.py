"""
Headless Chromium driver (Playwright) used for interactive login.

One driver owns one browser process. Launch is retried with backoff;
``close()`` is idempotent and bounded by timeouts so that shutdown never
hangs on a stuck browser.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from orm_discovery.shared.async_utils import async_retry
from orm_discovery.shared.exceptions import AuthenticationError

from .cookies import Cookie

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

CHROMIUM_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--no-default-browser-check",
]


def _is_launch_failure(error: Exception) -> bool:
    return isinstance(error, (PlaywrightError, OSError))


class BrowserDriver:
    """
    Lifecycle wrapper around a Playwright Chromium instance.

    Usage:
        driver = BrowserDriver(headless=True)
        page = await driver.start()
        ...
        cookies = await driver.cookies()
        await driver.close()
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        headless: bool = True,
        launch_attempts: int = 3,
        launch_backoff: float = 1.0,
        close_timeout: float = 10.0,
    ) -> None:
        self._user_agent = user_agent
        self._headless = headless
        self._launch_attempts = launch_attempts
        self._launch_backoff = launch_backoff
        self._close_timeout = close_timeout
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def start(self) -> Page:
        """
        Launch Chromium (if not running) and return its page.

        Raises:
            AuthenticationError: If the browser cannot be launched after retries.
        """
        if self._page is not None:
            return self._page

        launch = async_retry(
            max_attempts=self._launch_attempts,
            base_delay=self._launch_backoff,
            retryable_check=_is_launch_failure,
        )(self._launch)
        try:
            return await launch()
        except (PlaywrightError, OSError) as e:
            await self.close()
            msg = f"Browser launch failed after {self._launch_attempts} attempts: {e}"
            raise AuthenticationError(msg) from e

    async def _launch(self) -> Page:
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=CHROMIUM_ARGS,
            )
            self._context = await self._browser.new_context(
                user_agent=self._user_agent,
                locale="en-US",
                viewport={"width": 1280, "height": 900},
            )
            self._page = await self._context.new_page()
        except (PlaywrightError, OSError):
            await self._close_browser()
            raise
        logger.info(f"Chromium launched (headless={self._headless})")
        return self._page

    async def cookies(self) -> list[Cookie]:
        """All cookies of the browser context."""
        if self._context is None:
            return []
        raw: list[Any] = await self._context.cookies()
        return [Cookie.from_playwright(dict(c)) for c in raw]

    async def _close_browser(self) -> None:
        context, browser = self._context, self._browser
        self._page = None
        self._context = None
        self._browser = None
        if context is not None:
            try:
                await asyncio.wait_for(context.close(), timeout=self._close_timeout)
            except (PlaywrightError, TimeoutError) as e:
                logger.warning(f"Error closing browser context: {e}")
        if browser is not None:
            try:
                await asyncio.wait_for(browser.close(), timeout=self._close_timeout)
            except (PlaywrightError, TimeoutError) as e:
                logger.warning(f"Error closing browser: {e}")

    async def close(self) -> None:
        """Release the browser process. Safe to call repeatedly."""
        if self._playwright is None and self._browser is None:
            return
        await self._close_browser()
        playwright = self._playwright
        self._playwright = None
        if playwright is not None:
            try:
                await asyncio.wait_for(playwright.stop(), timeout=self._close_timeout)
            except (PlaywrightError, TimeoutError) as e:
                logger.warning(f"Error stopping Playwright: {e}")
        logger.info("Browser closed")
