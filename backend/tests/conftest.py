"""
Test configuration and shared fixtures.

Fakes used across the suite:
- FakeClock: manually advanced time source for TTL tests
- FakePage / FakeSession: stand-ins for a Playwright page and BrowserSession
- FakeFetcher: canned ImageProxyFetcher results for route tests
- api_client(): httpx AsyncClient bound to the FastAPI app (no network)
"""

import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

# Make the backend modules importable
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from cache.gallery_cache import GalleryCache
from cache.memory_store import MemoryGalleryStore
from extractor.strategies import DOM_QUERY_SCRIPT, RESOURCE_SWEEP_SCRIPT
from image_proxy.fetcher import ProxyResult


GALLERY_URL = "https://shop.x.yupoo.com/albums/123?uid=1"


# ============================================
# Time
# ============================================

class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gallery_cache(clock):
    """Enabled in-memory gallery cache on a fake clock"""
    return GalleryCache(MemoryGalleryStore(max_entries=50, default_ttl=3600, clock=clock))


# ============================================
# Browser fakes
# ============================================

class FakeResponse:
    def __init__(self, url: str, status: int = 200):
        self.url = url
        self.status = status


class FakePage:
    """
    Minimal async page: emits ``responses`` during goto and answers the
    strategy scripts with canned URL lists.
    """

    def __init__(
        self,
        responses=(),
        dom_urls=(),
        resource_urls=(),
        html: str = "",
        goto_error: Optional[Exception] = None,
        idle_error: Optional[Exception] = None,
        on_settle=None,
    ):
        self.responses = [r if isinstance(r, FakeResponse) else FakeResponse(r) for r in responses]
        self.dom_urls = list(dom_urls)
        self.resource_urls = list(resource_urls)
        self.html = html
        self.goto_error = goto_error
        self.idle_error = idle_error
        self.on_settle = on_settle

        self.handlers: Dict[str, List] = {}
        self.visited: List[str] = []
        self.scripts: List[str] = []
        self.closed = False

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.handlers.get(event, []).remove(handler)

    def emit(self, event, payload):
        for handler in list(self.handlers.get(event, [])):
            handler(payload)

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        for response in self.responses:
            self.emit("response", response)
        if self.goto_error is not None:
            raise self.goto_error

    async def wait_for_load_state(self, state=None, timeout=None):
        if self.on_settle is not None:
            await self.on_settle()
        if self.idle_error is not None:
            raise self.idle_error

    async def evaluate(self, script):
        self.scripts.append(script)
        if script == DOM_QUERY_SCRIPT:
            return self.dom_urls
        if script == RESOURCE_SWEEP_SCRIPT:
            return self.resource_urls
        return None

    async def content(self):
        return self.html

    async def close(self):
        self.closed = True


class FakeSession:
    """BrowserSession stand-in handing out prepared pages"""

    def __init__(self, *pages: FakePage):
        self._pages = list(pages)
        self.opened: List[FakePage] = []

    @asynccontextmanager
    async def new_page(self):
        page = self._pages.pop(0) if self._pages else FakePage()
        self.opened.append(page)
        try:
            yield page
        finally:
            await page.close()


async def no_sleep(seconds: float) -> None:
    return None


# ============================================
# Proxy fakes
# ============================================

class FakeFetcher:
    def __init__(self, result: ProxyResult):
        self.result = result
        self.calls: List[tuple] = []

    async def fetch_image(self, url, referer_hint=None):
        self.calls.append((url, referer_hint))
        return self.result

    async def close(self):
        return None


def mock_client(handler) -> httpx.AsyncClient:
    """httpx client whose requests are answered by ``handler``"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)


# ============================================
# App
# ============================================

def api_client() -> httpx.AsyncClient:
    from main import app
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
