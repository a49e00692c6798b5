"""
Gallery Cache API Routes
图集缓存 API 路由

Provides HTTP endpoints for cache administration:
- GET    /api/cache/stats         - Get cache statistics
- GET    /api/cache/entry?url=    - Get one gallery entry
- DELETE /api/cache/entry?url=    - Drop one gallery entry (forces re-extraction)
- POST   /api/cache/clear         - Drop every entry
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from .gallery_cache import gallery_cache

router = APIRouter(prefix="/api/cache", tags=["cache"])


# ============================================
# Response Models
# ============================================

class CacheEntryResponse(BaseModel):
    """Response model for get endpoint"""
    success: bool
    url: str
    done: bool
    count: int
    members: List[str]
    created_at: str
    updated_at: str


class CacheStatsResponse(BaseModel):
    """Response model for stats endpoint"""
    backend: str
    enabled: bool
    available: Optional[bool] = None
    total_entries: Optional[int] = None
    max_entries: Optional[int] = None
    completed_entries: Optional[int] = None
    total_members: Optional[int] = None
    default_ttl_hours: Optional[float] = None
    error: Optional[str] = None


# ============================================
# API Endpoints
# ============================================

@router.get("/stats", response_model=CacheStatsResponse, response_model_exclude_none=True)
async def get_cache_stats():
    """
    Get cache statistics
    获取缓存统计信息
    """
    return CacheStatsResponse(**await gallery_cache.stats())


@router.get("/entry", response_model=CacheEntryResponse)
async def get_cache_entry(url: str = Query(..., description="Gallery URL")):
    """
    Get a single gallery entry
    获取单个图集条目
    """
    record = await gallery_cache.get(url)
    if record is None:
        raise HTTPException(status_code=404, detail="Gallery not cached or expired")
    summary: Dict[str, Any] = record.to_summary()
    return CacheEntryResponse(
        success=True,
        url=record.identifier,
        done=record.done,
        count=record.count,
        members=record.sorted_members(),
        created_at=summary["created_at"],
        updated_at=summary["updated_at"],
    )


@router.delete("/entry")
async def delete_cache_entry(url: str = Query(..., description="Gallery URL")):
    """
    Delete a gallery entry
    删除图集条目
    """
    if await gallery_cache.delete(url):
        return {"success": True, "message": f"Deleted cache entry: {url}"}
    raise HTTPException(status_code=404, detail="Gallery not cached")


@router.post("/clear")
async def clear_cache():
    """
    Clear all gallery entries
    清空所有图集缓存

    Use with caution - every gallery is re-extracted on its next request.
    """
    count = await gallery_cache.clear()
    return {
        "success": True,
        "message": f"Cleared {count} cache entries",
        "deleted_count": count,
    }
