"""
Gallery Cache Module
图集缓存模块

Stores the image URLs discovered for each gallery, keyed by the gallery URL,
with a completion flag and a retention TTL. Backed by memory or redis.
"""

from .memory_store import GalleryRecord, MemoryGalleryStore
from .redis_store import RedisGalleryStore
from .gallery_cache import GalleryCache, build_store, gallery_cache
from .routes import router as cache_router

__all__ = [
    "GalleryRecord",
    "MemoryGalleryStore",
    "RedisGalleryStore",
    "GalleryCache",
    "build_store",
    "gallery_cache",
    "cache_router",
]
