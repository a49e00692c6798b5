"""
Gallery Listing Routes

Endpoints:
- GET /list?url=<gallery>&limit=<n> - cached images so far, triggers extraction
- GET /api/extractor/status         - coordinator statistics
- POST /api/extractor/cleanup       - close the shared browser
"""

import logging
from typing import Optional, Tuple
from urllib.parse import quote, urlsplit

from fastapi import APIRouter, HTTPException, Query, Request

import config
from cache.gallery_cache import gallery_cache
from cache.memory_store import GalleryRecord
from . import extraction_coordinator, browser_session
from .classifier import detect_source
from .models import ListResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["gallery"])


def validate_gallery_url(url: Optional[str]) -> str:
    """Raise 400 for a missing, non-http(s) or unsupported gallery URL"""
    if not url:
        raise HTTPException(status_code=400, detail="Missing url")
    try:
        parts = urlsplit(url)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid url")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise HTTPException(status_code=400, detail="url must be an absolute http(s) URL")
    if not config.ALLOW_UNKNOWN_SOURCES and detect_source(url) == "unknown":
        raise HTTPException(
            status_code=400,
            detail="Unsupported domain. Use yupoo (.x.yupoo.com), uufinds.com, or findqc.com",
        )
    return url


async def snapshot_gallery(url: str) -> Tuple[Optional[GalleryRecord], bool]:
    """
    Read the cached record and start an extraction if it is not done.

    Never waits for the run. Returns (record or None, run in flight).
    """
    record = await gallery_cache.get(url)
    if record is None or not record.done:
        extraction_coordinator.start_extraction(url)
    return record, extraction_coordinator.is_running(url)


def public_base(request: Request) -> str:
    return config.PUBLIC_BASE_URL or str(request.base_url).rstrip("/")


def proxy_url(base: str, src: str, referer: str) -> str:
    return f"{base}/image?src={quote(src, safe='')}&referer={quote(referer, safe='')}"


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/"


@router.get("/list", response_model=ListResponse, response_model_exclude_none=True)
async def list_gallery(
    request: Request,
    url: Optional[str] = Query(None, description="Gallery URL"),
    limit: Optional[int] = Query(None, ge=1, description="Max entries returned"),
):
    """
    List the preview images discovered so far for a gallery.

    Returns immediately with partial data while an extraction is running;
    poll until ``done`` is true. ``limit`` caps the response, never storage.
    """
    url = validate_gallery_url(url)
    record, running = await snapshot_gallery(url)

    members = record.sorted_members() if record else []
    total = len(members)
    if limit is not None:
        members = members[:limit]

    response = ListResponse(
        done=bool(record and record.done),
        running=running,
        count=len(members),
        total=total,
    )
    if config.LIST_INCLUDE_ORIGINAL:
        response.imagesOriginal = members
    if config.LIST_INCLUDE_PROXY:
        base = public_base(request)
        referer = origin_of(url)
        response.imagesProxy = [proxy_url(base, src, referer) for src in members]

    logger.debug(
        f"[Gallery] list {url[:60]}: {len(members)}/{total} done={response.done} running={running}"
    )
    return response


@router.get("/api/extractor/status")
async def extractor_status():
    """Coordinator statistics and galleries in flight"""
    return {
        "success": True,
        "coordinator": extraction_coordinator.get_stats(),
        "running": sorted(extraction_coordinator.running),
        "browser_open": browser_session.is_open,
    }


@router.post("/api/extractor/cleanup")
async def cleanup_browser():
    """
    Close the shared browser instance. It is relaunched on the next run.
    """
    try:
        await browser_session.close()
        return {"success": True, "message": "Browser instance closed"}
    except Exception as e:
        logger.error(f"[Gallery] Cleanup failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
