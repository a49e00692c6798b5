"""
HTTP Gallery Extractor

Lightweight variant without a browser: fetch the gallery HTML with
browser-like headers and scan the markup. Suitable for sources that embed
image URLs in the served HTML.
"""

import logging
from typing import Optional

import httpx

import config
from .classifier import PreviewClassifier, classifier_for
from .strategies import classify_candidates, scan_markup
from .browser_session import USER_AGENT

logger = logging.getLogger(__name__)

PAGE_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class HttpGalleryExtractor:
    """Extraction run using a plain HTTP fetch and a markup scan"""

    def __init__(
        self,
        cache,
        classifier: PreviewClassifier,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = config.PAGE_LOAD_TIMEOUT_MS / 1000,
    ):
        self.cache = cache
        self.classifier = classifier
        self.http_client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=PAGE_HEADERS,
        )

    async def close(self) -> None:
        await self.http_client.aclose()

    async def run(self, identifier: str) -> int:
        """
        Fetch and scan one gallery page.

        The gallery is only flagged done when at least one image was found:
        an empty scan usually means the origin served a block page.
        """
        classifier = classifier_for(identifier, self.classifier)
        logger.info(f"[HttpExtractor] Fetching: {identifier[:80]}")

        response = await self.http_client.get(identifier, headers=PAGE_HEADERS)
        response.raise_for_status()

        urls = classifier.prefer(
            classify_candidates(scan_markup(response.text), classifier, str(response.url))
        )
        added = 0
        for url in urls:
            if await self.cache.add_member(identifier, url):
                added += 1

        if urls:
            await self.cache.mark_done(identifier)
            logger.info(f"[HttpExtractor] Done: {identifier[:80]} ({len(urls)} images)")
        else:
            logger.warning(f"[HttpExtractor] No images found: {identifier[:80]}")
        return added
