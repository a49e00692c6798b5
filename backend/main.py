"""
Gallery Preview Proxy - FastAPI application

Routes:
- GET  /health          liveness probe
- GET  /list            progressive gallery listing
- GET  /image           image proxy
- GET  /prefetch        warm the image cache for a gallery
- /api/cache/*          gallery cache administration
- /api/image-proxy/*    image cache administration
- /api/extractor/*      extraction status, browser cleanup

Run:
    cd backend
    uvicorn main:app --host 0.0.0.0 --port 3000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

import config
from cache import cache_router, gallery_cache
from extractor import browser_session, extraction_coordinator, extractor_router, gallery_extractor
from image_proxy import router as image_proxy_router
from image_proxy import routes_fastapi as image_proxy_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"[App] Starting (extractor={config.EXTRACTOR_BACKEND}, "
        f"cache={gallery_cache.backend}, strictness={config.PREVIEW_STRICTNESS})"
    )
    extraction_coordinator.start()
    yield
    await extraction_coordinator.stop()
    await browser_session.close()
    if hasattr(gallery_extractor, "close"):
        await gallery_extractor.close()
    await image_proxy_routes.proxy_fetcher.close()
    await gallery_cache.close()
    logger.info("[App] Shutdown complete")


app = FastAPI(title="Gallery Preview Proxy", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_headers=["*"],
    allow_methods=["GET", "HEAD", "OPTIONS"],
)


@app.api_route("/health", methods=["GET", "HEAD"], response_class=PlainTextResponse)
async def health():
    """Liveness probe; touches neither the cache nor the browser."""
    return "ok"


app.include_router(extractor_router)
app.include_router(image_proxy_router)
app.include_router(cache_router)
