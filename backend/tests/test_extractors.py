"""
Extraction run tests: browser variant (fake page) and HTTP variant
(httpx MockTransport).

Run:
    pytest tests/test_extractors.py -v
"""

import asyncio

import httpx
import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from extractor.browser_extractor import (
    BrowserGalleryExtractor,
    SCROLL_BOTTOM_SCRIPT,
    SCROLL_TOP_SCRIPT,
)
from extractor.classifier import PreviewClassifier
from extractor.http_extractor import HttpGalleryExtractor
from conftest import GALLERY_URL, FakePage, FakeResponse, FakeSession, mock_client, no_sleep


QC_GALLERY = "https://www.uufinds.com/goods/7"
QC_PHOTO = "https://cdn.uufinds.com/qc/7/1.jpg"
QC_SWEPT = "https://cdn.uufinds.com/inspection/7/2.webp"
PRODUCT_SHOT = "https://cdn.uufinds.com/product/7/main.jpg"
BANNER = "https://cdn.uufinds.com/banner/sale.png"


def make_extractor(session, cache, **kwargs):
    kwargs.setdefault("sleep", no_sleep)
    return BrowserGalleryExtractor(session, cache, PreviewClassifier(), **kwargs)


# ============================================
# Browser variant
# ============================================

class TestBrowserGalleryExtractor:

    @pytest.mark.asyncio
    async def test_intercepted_and_swept_images_are_stored(self, gallery_cache):
        page = FakePage(
            responses=[
                "https://photo.yupoo.com/shop/a/small.jpeg?v=1",
                "https://photo.yupoo.com/shop/a/big.jpeg",
                "https://shop.x.yupoo.com/static/app.js",
                FakeResponse("https://photo.yupoo.com/shop/missing/small.jpeg", status=404),
            ],
            dom_urls=["//photo.yupoo.com/shop/b/small.jpeg"],
            resource_urls=["https://photo.yupoo.com/shop/a/small.jpeg"],
        )
        extractor = make_extractor(FakeSession(page), gallery_cache)

        added = await extractor.run(GALLERY_URL)

        record = await gallery_cache.get(GALLERY_URL)
        assert record.done is True
        assert record.sorted_members() == [
            "https://photo.yupoo.com/shop/a/small.jpeg",
            "https://photo.yupoo.com/shop/b/small.jpeg",
        ]
        assert added == 2
        assert page.visited == [GALLERY_URL]
        assert page.closed
        assert page.handlers["response"] == []

    @pytest.mark.asyncio
    async def test_scrolls_and_settles_before_sweep(self, gallery_cache):
        delays = []

        async def record_sleep(seconds):
            delays.append(seconds)

        page = FakePage()
        extractor = make_extractor(
            FakeSession(page),
            gallery_cache,
            sleep=record_sleep,
            settle_delay=1.2,
            scroll_settle=0.9,
        )

        await extractor.run(GALLERY_URL)

        assert delays == [1.2, 0.9, 0.9]
        assert page.scripts.index(SCROLL_BOTTOM_SCRIPT) < page.scripts.index(SCROLL_TOP_SCRIPT)

    @pytest.mark.asyncio
    async def test_entries_visible_before_run_finishes(self, gallery_cache):
        seen_mid_run = {}

        async def inspect_cache():
            for _ in range(5):
                await asyncio.sleep(0)
            record = await gallery_cache.get(GALLERY_URL)
            seen_mid_run["members"] = record.sorted_members() if record else []
            seen_mid_run["done"] = record.done if record else None

        page = FakePage(
            responses=["https://photo.yupoo.com/shop/a/small.jpeg"],
            on_settle=inspect_cache,
        )
        await make_extractor(FakeSession(page), gallery_cache).run(GALLERY_URL)

        assert seen_mid_run == {
            "members": ["https://photo.yupoo.com/shop/a/small.jpeg"],
            "done": False,
        }

    @pytest.mark.asyncio
    async def test_network_idle_timeout_is_tolerated(self, gallery_cache):
        page = FakePage(
            dom_urls=["https://photo.yupoo.com/shop/a/small.jpeg"],
            idle_error=PlaywrightTimeoutError("networkidle not reached"),
        )
        await make_extractor(FakeSession(page), gallery_cache).run(GALLERY_URL)

        assert await gallery_cache.is_done(GALLERY_URL)

    @pytest.mark.asyncio
    async def test_load_failure_leaves_partial_entry_not_done(self, gallery_cache):
        page = FakePage(
            responses=["https://photo.yupoo.com/shop/a/small.jpeg"],
            goto_error=PlaywrightTimeoutError("Timeout 60000ms exceeded"),
        )
        extractor = make_extractor(FakeSession(page), gallery_cache)

        with pytest.raises(PlaywrightTimeoutError):
            await extractor.run(GALLERY_URL)

        # intercepted writes have landed by the time run() raises
        record = await gallery_cache.get(GALLERY_URL)
        assert record.done is False
        assert record.count == 1
        assert page.closed

    @pytest.mark.asyncio
    async def test_qc_source_drops_junk(self, gallery_cache):
        page = FakePage(dom_urls=["https://img.findqc.com/qc/1.jpg", "https://img.findqc.com/logo.png"])
        url = "https://findqc.com/detail/77"

        await make_extractor(FakeSession(page), gallery_cache).run(url)

        assert (await gallery_cache.get(url)).sorted_members() == ["https://img.findqc.com/qc/1.jpg"]

    @pytest.mark.asyncio
    async def test_qc_source_prefers_inspection_photos(self, gallery_cache):
        page = FakePage(
            responses=[QC_PHOTO, PRODUCT_SHOT],
            dom_urls=[BANNER, QC_SWEPT],
        )

        await make_extractor(FakeSession(page), gallery_cache).run(QC_GALLERY)

        record = await gallery_cache.get(QC_GALLERY)
        assert record.done is True
        assert record.sorted_members() == sorted([QC_PHOTO, QC_SWEPT])

    @pytest.mark.asyncio
    async def test_qc_source_without_inspection_photos_keeps_all(self, gallery_cache):
        page = FakePage(responses=[PRODUCT_SHOT], dom_urls=[BANNER], resource_urls=[PRODUCT_SHOT])

        await make_extractor(FakeSession(page), gallery_cache).run(QC_GALLERY)

        assert (await gallery_cache.get(QC_GALLERY)).sorted_members() == [BANNER, PRODUCT_SHOT]


# ============================================
# HTTP variant
# ============================================

GALLERY_HTML = """
<html><body>
<img data-src="https://photo.yupoo.com/shop/a/small.jpeg?x=1">
<img src="https://photo.yupoo.com/shop/a/medium.jpeg">
<a href="https://photo.yupoo.com/shop/b/small.jpeg">b</a>
</body></html>
"""


class TestHttpGalleryExtractor:

    @pytest.mark.asyncio
    async def test_scans_markup_and_marks_done(self, gallery_cache):
        def handler(request):
            assert "Mozilla" in request.headers.get("user-agent", "")
            return httpx.Response(200, text=GALLERY_HTML, headers={"content-type": "text/html"})

        extractor = HttpGalleryExtractor(gallery_cache, PreviewClassifier(), client=mock_client(handler))

        added = await extractor.run(GALLERY_URL)
        await extractor.close()

        record = await gallery_cache.get(GALLERY_URL)
        assert added == 2
        assert record.done is True
        assert record.sorted_members() == [
            "https://photo.yupoo.com/shop/a/small.jpeg",
            "https://photo.yupoo.com/shop/b/small.jpeg",
        ]

    @pytest.mark.asyncio
    async def test_qc_page_keeps_inspection_photos_only(self, gallery_cache):
        html = f'<img src="{PRODUCT_SHOT}"><img src="{QC_PHOTO}"><img src="{BANNER}">'
        client = mock_client(lambda request: httpx.Response(200, text=html))
        extractor = HttpGalleryExtractor(gallery_cache, PreviewClassifier(), client=client)

        assert await extractor.run(QC_GALLERY) == 1
        assert (await gallery_cache.get(QC_GALLERY)).sorted_members() == [QC_PHOTO]

    @pytest.mark.asyncio
    async def test_empty_page_is_not_marked_done(self, gallery_cache):
        client = mock_client(lambda request: httpx.Response(200, text="<html>Restricted Access</html>"))
        extractor = HttpGalleryExtractor(gallery_cache, PreviewClassifier(), client=client)

        assert await extractor.run(GALLERY_URL) == 0
        assert await gallery_cache.is_done(GALLERY_URL) is False

    @pytest.mark.asyncio
    async def test_http_error_raises(self, gallery_cache):
        client = mock_client(lambda request: httpx.Response(503))
        extractor = HttpGalleryExtractor(gallery_cache, PreviewClassifier(), client=client)

        with pytest.raises(httpx.HTTPStatusError):
            await extractor.run(GALLERY_URL)
        assert await gallery_cache.get(GALLERY_URL) is None
