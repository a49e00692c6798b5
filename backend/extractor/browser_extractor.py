"""
Browser Gallery Extractor

One extraction run for one gallery, driven through the shared Playwright
context. Images are written to the gallery cache as soon as they are seen,
so listings fill up while the page is still loading.

Run steps:
1. Navigate (domcontentloaded, bounded timeout). Failure ends the run.
2. Every inbound response classified as a preview image is stored at once.
3. Wait for network idle (bounded), settle, scroll bottom/top for lazy images.
4. Sweep the page with the ranked strategies to catch anything missed.
5. Wait for pending writes (on every exit path), then flag the gallery done.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Sequence, Set

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

import config
from .classifier import PreviewClassifier, classifier_for
from .strategies import DEFAULT_STRATEGIES, ExtractionStrategy, run_strategies

logger = logging.getLogger(__name__)

SCROLL_BOTTOM_SCRIPT = "() => window.scrollTo(0, document.body.scrollHeight)"
SCROLL_TOP_SCRIPT = "() => window.scrollTo(0, 0)"


class BrowserGalleryExtractor:
    """Progressive extraction through a real browser page"""

    def __init__(
        self,
        session,
        cache,
        classifier: PreviewClassifier,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
        page_load_timeout_ms: int = config.PAGE_LOAD_TIMEOUT_MS,
        network_idle_timeout_ms: int = config.NETWORK_IDLE_TIMEOUT_MS,
        settle_delay: float = config.SETTLE_DELAY_SECONDS,
        scroll_settle: float = config.SCROLL_SETTLE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session = session
        self.cache = cache
        self.classifier = classifier
        self.strategies = strategies
        self.page_load_timeout_ms = page_load_timeout_ms
        self.network_idle_timeout_ms = network_idle_timeout_ms
        self.settle_delay = settle_delay
        self.scroll_settle = scroll_settle
        self._sleep = sleep

    async def run(self, identifier: str) -> int:
        """
        Extract one gallery into the cache.

        Returns:
            Number of new URLs stored. Raises on navigation failure, in which
            case the gallery is left without its done flag.
        """
        started = time.monotonic()
        classifier = classifier_for(identifier, self.classifier)
        pending: Set[asyncio.Task] = set()
        added = 0
        intercepted = 0

        async def record(url: str) -> None:
            nonlocal added
            if await self.cache.add_member(identifier, url):
                added += 1

        def on_response(response) -> None:
            nonlocal intercepted
            if response.status >= 400:
                return
            url = classifier.accept(response.url, identifier)
            # non-preferred images wait for the sweep, which can still fall back to them
            if url is None or not classifier.is_preferred(url):
                return
            intercepted += 1
            task = asyncio.ensure_future(record(url))
            pending.add(task)
            task.add_done_callback(pending.discard)

        logger.info(f"[BrowserExtractor] Start: {identifier[:80]} ({classifier!r})")

        async with self.session.new_page() as page:
            page.on("response", on_response)
            try:
                await page.goto(
                    identifier,
                    wait_until="domcontentloaded",
                    timeout=self.page_load_timeout_ms,
                )
                await self._settle(page)

                swept = await run_strategies(page, classifier, identifier, self.strategies)
                # intercepted images are all preferred, so the sweep must not fall back
                if intercepted:
                    swept = [url for url in swept if classifier.is_preferred(url)]
                for url in swept:
                    await record(url)
            finally:
                page.remove_listener("response", on_response)
                if pending:
                    await asyncio.gather(*list(pending), return_exceptions=True)

        await self.cache.mark_done(identifier)

        elapsed = time.monotonic() - started
        logger.info(
            f"[BrowserExtractor] Done: {identifier[:80]} "
            f"({added} new images, {elapsed:.1f}s)"
        )
        return added

    async def _settle(self, page) -> None:
        """Let the page go quiet, then scroll to trigger lazy loading"""
        try:
            await page.wait_for_load_state("networkidle", timeout=self.network_idle_timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug(f"[BrowserExtractor] Network not idle after {self.network_idle_timeout_ms}ms")

        await self._sleep(self.settle_delay)
        await page.evaluate(SCROLL_BOTTOM_SCRIPT)
        await self._sleep(self.scroll_settle)
        await page.evaluate(SCROLL_TOP_SCRIPT)
        await self._sleep(self.scroll_settle)
