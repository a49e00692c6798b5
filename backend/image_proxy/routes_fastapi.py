"""
Image Proxy API Routes

Provides endpoints for:
- Proxying gallery images with the headers the origin requires
- Prefetching a gallery's images into the cache
- Cache statistics
- Cache management (cleanup)
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query
from fastapi.responses import JSONResponse, Response

import config
from extractor.models import PrefetchResponse
from extractor.routes import origin_of, snapshot_gallery, validate_gallery_url
from .cache_manager import ImageCacheManager
from .fetcher import ImageProxyFetcher, STATUS_BLOCKED

logger = logging.getLogger(__name__)

# ============================================
# Configuration
# ============================================

cache_manager: Optional[ImageCacheManager] = (
    ImageCacheManager(
        max_entries=config.IMAGE_CACHE_MAX_ENTRIES,
        cache_ttl_seconds=config.IMAGE_CACHE_TTL_HOURS * 3600,
        max_image_size_mb=config.IMAGE_MAX_SIZE_MB,
    )
    if config.IMAGE_CACHE_ENABLED
    else None
)

proxy_fetcher = ImageProxyFetcher()

IMAGE_CACHE_CONTROL = "public, max-age=86400, immutable"

# ============================================
# Router
# ============================================

router = APIRouter(tags=["Image Proxy"])


def _validate_src(src: Optional[str]) -> str:
    if not src:
        raise HTTPException(status_code=400, detail="Missing src")
    parsed = urlparse(src)
    if parsed.scheme not in ("http", "https"):
        raise HTTPException(status_code=400, detail="Invalid URL: scheme must be http or https")
    if not parsed.netloc:
        raise HTTPException(status_code=400, detail="Invalid URL: missing host")
    return src


# ============================================
# Endpoints
# ============================================

@router.get("/image")
async def proxy_image(
    background_tasks: BackgroundTasks,
    src: Optional[str] = Query(None, description="URL of the image to proxy"),
    referer: Optional[str] = Query(None, description="Referer to present upstream"),
):
    """
    Proxy a gallery image.

    1. Serve from the image cache when warm
    2. Otherwise fetch upstream, falling back across referer candidates
    3. 403 when upstream only ever answered with its block page, 502 on errors

    Example:
        GET /image?src=https://photo.example.com/abc/small.jpeg
    """
    src = _validate_src(src)

    if cache_manager is not None:
        cached = await cache_manager.get(src)
        if cached:
            data, content_type = cached
            logger.debug(f"[ImageProxy] Cache hit: {src[:60]}...")
            return Response(
                content=data,
                media_type=content_type,
                headers={"X-Cache": "HIT", "Cache-Control": IMAGE_CACHE_CONTROL},
            )

    result = await proxy_fetcher.fetch_image(src, referer)

    if not result.ok:
        if result.status == STATUS_BLOCKED:
            raise HTTPException(status_code=403, detail="Blocked by upstream (Restricted Access).")
        raise HTTPException(status_code=502, detail=f"Failed to fetch image: {result.error}")

    if cache_manager is not None:
        background_tasks.add_task(cache_manager.put, src, result.content, result.content_type)

    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={"X-Cache": "MISS", "Cache-Control": IMAGE_CACHE_CONTROL},
    )


@router.get("/prefetch", response_model=PrefetchResponse)
async def prefetch_gallery(
    url: Optional[str] = Query(None, description="Gallery URL"),
    limit: int = Query(config.PREFETCH_DEFAULT_LIMIT, ge=1, description="Images to warm"),
):
    """
    Warm the image cache with the first ``limit`` images of a gallery.

    Uses whatever the gallery cache holds right now; starts an extraction
    when the gallery is not done, without waiting for it.
    """
    url = validate_gallery_url(url)
    if cache_manager is None:
        raise HTTPException(status_code=400, detail="Image cache disabled")

    record, _ = await snapshot_gallery(url)
    to_fetch = record.sorted_members()[: min(limit, config.PREFETCH_MAX_LIMIT)] if record else []
    referer = origin_of(url)
    semaphore = asyncio.Semaphore(config.PREFETCH_CONCURRENCY)

    async def warm(src: str) -> bool:
        if await cache_manager.contains(src):
            return True
        async with semaphore:
            result = await proxy_fetcher.fetch_image(src, referer)
        if not result.ok:
            return False
        return await cache_manager.put(src, result.content, result.content_type)

    results = await asyncio.gather(*(warm(src) for src in to_fetch))
    prefetched = sum(1 for ok in results if ok)
    logger.info(f"[ImageProxy] Prefetched {prefetched}/{len(to_fetch)} for {url[:60]}")

    return PrefetchResponse(
        done=bool(record and record.done),
        prefetched=prefetched,
        total=len(to_fetch),
    )


@router.get("/api/image-proxy/stats")
async def get_cache_stats():
    """
    Get image cache statistics.
    """
    if cache_manager is None:
        return JSONResponse(content={"success": True, "enabled": False})
    return JSONResponse(content={
        "success": True,
        "enabled": True,
        "stats": cache_manager.get_stats(),
    })


@router.post("/api/image-proxy/cleanup")
async def cleanup_cache():
    """
    Clean up expired cache entries.

    Expired entries are also dropped lazily on lookup.
    """
    if cache_manager is None:
        return JSONResponse(content={"success": True, "removed_entries": 0})
    removed = await cache_manager.cleanup_expired()
    return JSONResponse(content={
        "success": True,
        "removed_entries": removed,
        "current_stats": cache_manager.get_stats(),
    })


@router.delete("/api/image-proxy/clear")
async def clear_cache():
    """
    Clear all cached images.
    """
    removed = await cache_manager.clear_all() if cache_manager is not None else 0
    return JSONResponse(content={
        "success": True,
        "removed_entries": removed,
        "message": "Cache cleared successfully",
    })
