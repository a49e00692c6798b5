"""
Shared Browser Session

One headless Chromium instance and one browser context, launched lazily on
first use and reused by every extraction run. Launch is guarded by a lock so
concurrent first callers never start two browsers.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

CONTEXT_OPTIONS = {
    "locale": "en-US",
    "viewport": {"width": 1280, "height": 720},
    "user_agent": USER_AGENT,
    "extra_http_headers": {
        "Accept-Language": "en-US,en;q=0.9",
    },
}


class BrowserSession:
    """
    Owner of the shared Playwright browser context.

    Callers get pages through ``new_page()``; the raw browser is never handed
    out, so only this class decides when it is launched and closed.
    """

    def __init__(self, headless: bool = True, launcher=None):
        """
        Args:
            headless: Launch Chromium without a window
            launcher: Factory returning a started Playwright driver (tests)
        """
        self.headless = headless
        self._launcher = launcher or (lambda: async_playwright().start())
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.launch_count = 0

    @property
    def is_open(self) -> bool:
        return self._context is not None

    async def acquire(self) -> BrowserContext:
        """Return the shared context, launching the browser if needed"""
        if self._context is not None:
            return self._context

        async with self._lock:
            if self._context is None:
                logger.info("[BrowserSession] Launching headless Chromium")
                playwright = await self._launcher()
                try:
                    browser = await playwright.chromium.launch(headless=self.headless)
                    context = await browser.new_context(**CONTEXT_OPTIONS)
                except Exception:
                    await playwright.stop()
                    raise
                self._playwright = playwright
                self._browser = browser
                self._context = context
                self.launch_count += 1
        return self._context

    @asynccontextmanager
    async def new_page(self) -> AsyncIterator[Page]:
        """Open a page in the shared context; closed on exit"""
        context = await self.acquire()
        page = await context.new_page()
        try:
            yield page
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug(f"[BrowserSession] Page close failed: {e}")

    async def close(self) -> None:
        """Close context, browser and driver"""
        async with self._lock:
            context, browser, playwright = self._context, self._browser, self._playwright
            self._context = self._browser = self._playwright = None

            for name, closer in (
                ("context", context.close if context else None),
                ("browser", browser.close if browser else None),
                ("playwright", playwright.stop if playwright else None),
            ):
                if closer is None:
                    continue
                try:
                    await closer()
                except Exception as e:
                    logger.warning(f"[BrowserSession] Failed to close {name}: {e}")

            if browser is not None:
                logger.info("[BrowserSession] Browser instance closed")
