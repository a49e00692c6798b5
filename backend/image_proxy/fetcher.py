"""
Image Proxy Fetcher

Fetches a single image on behalf of a client with browser-like headers,
cycling through referer candidates until one yields real image bytes.

The origin answers a wrong referer with a 200 "restricted access" HTML page,
so the body is sniffed: a response is only a success when it is not HTML.

Result status:
- ok:      image bytes returned
- blocked: every candidate returned an HTML page
- error:   transport failures or non-success HTTP statuses
"""

import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

import config

logger = logging.getLogger(__name__)

# Leading bytes inspected for an HTML document
SNIFF_BYTES = 140

HTML_SIGNATURES = (b"<!doctype", b"<html", b"<head", b"<body")

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "image",
    "Sec-Fetch-Mode": "no-cors",
    "Sec-Fetch-Site": "cross-site",
}

STATUS_OK = "ok"
STATUS_BLOCKED = "blocked"
STATUS_ERROR = "error"


@dataclass
class ProxyResult:
    """Outcome of a proxied image fetch."""
    ok: bool
    status: str
    content_type: Optional[str] = None
    content: bytes = b""
    error: Optional[str] = None
    referer: Optional[str] = None
    attempts: int = 0

    @property
    def blocked(self) -> bool:
        return self.status == STATUS_BLOCKED


def origin_referer(url: str) -> Optional[str]:
    """scheme://host/ of ``url``, or None when it has no host"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}/"


def build_referer_candidates(
    url: str,
    referer_hint: Optional[str] = None,
    fallback_referer: Optional[str] = config.PROXY_FALLBACK_REFERER,
) -> List[str]:
    """Explicit hint (or the image's own origin), then the generic fallback"""
    candidates: List[str] = []
    first = referer_hint or origin_referer(url)
    for candidate in (first, fallback_referer):
        if candidate and candidate not in candidates:
            candidates.append(candidate)
    return candidates


def looks_like_html(content_type: str, content: bytes) -> bool:
    """Detect the origin's soft-block page"""
    if "text/html" in (content_type or "").lower():
        return True
    head = content[:SNIFF_BYTES].lstrip().lower()
    return any(signature in head for signature in HTML_SIGNATURES)


class ImageProxyFetcher:
    """
    Referer-fallback image fetcher.

    Usage:
        fetcher = ImageProxyFetcher()
        result = await fetcher.fetch_image(url, referer_hint)
    """

    def __init__(
        self,
        attempts: int = config.PROXY_ATTEMPTS,
        timeout: float = config.PROXY_TIMEOUT_SECONDS,
        fallback_referer: Optional[str] = config.PROXY_FALLBACK_REFERER,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.attempts = max(1, attempts)
        self.timeout = timeout
        self.fallback_referer = fallback_referer
        self.http_client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=BROWSER_HEADERS,
        )

    async def close(self):
        """Close HTTP client."""
        await self.http_client.aclose()

    async def fetch_image(self, url: str, referer_hint: Optional[str] = None) -> ProxyResult:
        """
        Fetch ``url``, trying each referer candidate in order, up to
        ``attempts`` rounds. Returns on the first non-HTML success.
        """
        candidates = build_referer_candidates(url, referer_hint, self.fallback_referer)
        last_status = STATUS_ERROR
        last_error = "no referer candidates"
        tries = 0

        for round_index in range(self.attempts):
            for referer in candidates:
                tries += 1
                headers = {"Referer": referer}
                try:
                    response = await self.http_client.get(url, headers=headers, timeout=self.timeout)
                except httpx.TimeoutException:
                    last_status, last_error = STATUS_ERROR, "Image fetch timeout"
                    logger.warning(f"[ImageProxy] Timeout ({referer}): {url[:60]}...")
                    continue
                except httpx.HTTPError as e:
                    last_status, last_error = STATUS_ERROR, f"Fetch error: {e}"
                    logger.warning(f"[ImageProxy] Fetch error ({referer}): {url[:60]}... - {e}")
                    continue

                if not response.is_success:
                    last_status, last_error = STATUS_ERROR, f"HTTP {response.status_code}"
                    logger.warning(
                        f"[ImageProxy] HTTP {response.status_code} ({referer}): {url[:60]}..."
                    )
                    continue

                content_type = response.headers.get("content-type", "")
                content = response.content
                if looks_like_html(content_type, content):
                    last_status, last_error = STATUS_BLOCKED, "Blocked by upstream (HTML response)"
                    logger.warning(f"[ImageProxy] Blocked ({referer}): {url[:60]}...")
                    continue

                logger.info(
                    f"[ImageProxy] Fetched: {url[:60]}... ({len(content)} bytes, referer={referer})"
                )
                return ProxyResult(
                    ok=True,
                    status=STATUS_OK,
                    content_type=normalize_content_type(content_type, url),
                    content=content,
                    referer=referer,
                    attempts=tries,
                )

        logger.error(f"[ImageProxy] Giving up after {tries} tries: {url[:60]}... ({last_error})")
        return ProxyResult(ok=False, status=last_status, error=last_error, attempts=tries)


EXT_TO_MIME = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def normalize_content_type(content_type: str, url: str) -> str:
    """
    Keep the upstream image type; guess from the URL extension when the
    server sends a generic or missing content-type.
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime.startswith("image/"):
        return mime
    path = url.lower().split("?", 1)[0]
    for ext, guess in EXT_TO_MIME.items():
        if path.endswith(ext):
            return guess
    return "image/jpeg"
