"""
Gallery Cache
图集缓存

Fault-tolerant facade in front of a gallery store. The extraction pipeline and
the HTTP routes only talk to this class.

- store=None means caching is disabled: reads miss, writes are dropped, so
  every request re-extracts and nothing is persisted.
- Any store error is logged and swallowed; the caller gets the degraded
  value and carries on.
"""

import logging
from typing import Any, Dict, Optional

import config
from .memory_store import GalleryRecord, MemoryGalleryStore
from .redis_store import RedisGalleryStore

logger = logging.getLogger(__name__)


class GalleryCache:
    """
    Keyed store of discovered image URLs per gallery
    按图集存储已发现的图片 URL
    """

    def __init__(self, store=None, ttl: Optional[float] = None):
        """
        Args:
            store: MemoryGalleryStore, RedisGalleryStore, or None to disable
            ttl: Retention applied on every write (store default if None)
        """
        self._store = store
        self._ttl = ttl

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def backend(self) -> str:
        return getattr(self._store, "backend", "none")

    async def get(self, identifier: str) -> Optional[GalleryRecord]:
        if self._store is None:
            return None
        try:
            return await self._store.get(identifier)
        except Exception as e:
            logger.warning(f"[GalleryCache] get failed for {identifier[:60]}: {e}")
            return None

    async def add_member(self, identifier: str, url: str) -> bool:
        """Idempotent add; returns True only when the URL was new"""
        if self._store is None:
            return False
        try:
            added = await self._store.add_member(identifier, url, ttl=self._ttl)
            if added:
                logger.debug(f"[GalleryCache] + {url[:80]}")
            return added
        except Exception as e:
            logger.warning(f"[GalleryCache] add_member failed for {identifier[:60]}: {e}")
            return False

    async def mark_done(self, identifier: str) -> None:
        if self._store is None:
            return
        try:
            await self._store.mark_done(identifier, ttl=self._ttl)
        except Exception as e:
            logger.warning(f"[GalleryCache] mark_done failed for {identifier[:60]}: {e}")

    async def is_done(self, identifier: str) -> bool:
        record = await self.get(identifier)
        return bool(record and record.done)

    async def delete(self, identifier: str) -> bool:
        if self._store is None:
            return False
        try:
            return await self._store.delete(identifier)
        except Exception as e:
            logger.warning(f"[GalleryCache] delete failed for {identifier[:60]}: {e}")
            return False

    async def clear(self) -> int:
        if self._store is None:
            return 0
        try:
            return await self._store.clear()
        except Exception as e:
            logger.warning(f"[GalleryCache] clear failed: {e}")
            return 0

    async def stats(self) -> Dict[str, Any]:
        if self._store is None:
            return {"backend": "none", "enabled": False}
        try:
            stats = await self._store.stats()
        except Exception as e:
            logger.warning(f"[GalleryCache] stats failed: {e}")
            return {"backend": self.backend, "enabled": True, "available": False, "error": str(e)}
        return {**stats, "enabled": True, "available": True}

    async def close(self) -> None:
        if self._store is None:
            return
        try:
            await self._store.close()
        except Exception as e:
            logger.warning(f"[GalleryCache] close failed: {e}")


def build_store(backend: str = config.CACHE_BACKEND):
    """Create the store selected by CACHE_BACKEND"""
    if backend == "none":
        logger.info("[GalleryCache] Caching disabled")
        return None
    if backend == "redis":
        return RedisGalleryStore.from_url(
            config.REDIS_URL,
            default_ttl=config.GALLERY_CACHE_TTL_SECONDS,
        )
    return MemoryGalleryStore(
        max_entries=config.GALLERY_CACHE_MAX_ENTRIES,
        default_ttl=config.GALLERY_CACHE_TTL_SECONDS,
    )


# Global singleton instance
# 全局单例实例
gallery_cache = GalleryCache(build_store(), ttl=config.GALLERY_CACHE_TTL_SECONDS)
