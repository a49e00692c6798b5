"""
Image Cache Manager

In-memory cache for proxied image bytes with:
- LRU (Least Recently Used) eviction by entry count
- Configurable TTL (Time To Live)
- Per-image size limit
- Manual cleanup and clear
"""

import time
import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class ProxyCacheEntry:
    """A cached image body."""
    source_url: str
    content: bytes
    content_type: str
    fetched_at: float
    last_accessed: float

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class ImageCacheManager:
    """
    Manages the in-memory image cache with LRU eviction.

    Entries are kept in access order; the oldest is evicted first when
    ``max_entries`` is reached.
    """

    def __init__(
        self,
        max_entries: int = 800,
        cache_ttl_seconds: float = 6 * 60 * 60,  # 6 hours
        max_image_size_mb: int = 10,
        clock: Callable[[], float] = time.time,
    ):
        self.max_entries = max_entries
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_image_size_bytes = max_image_size_mb * 1024 * 1024
        self._clock = clock

        self._entries: "OrderedDict[str, ProxyCacheEntry]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, url: str) -> Optional[Tuple[bytes, str]]:
        """
        Get cached image by URL.

        Returns:
            Tuple of (image_data, content_type) if cached and valid, None otherwise.
        """
        async with self._lock:
            entry = self._entries.get(url)

            if entry is None:
                self._misses += 1
                return None

            now = self._clock()
            if now - entry.fetched_at > self.cache_ttl_seconds:
                logger.debug(f"[ImageCache] Cache expired for: {url[:50]}...")
                del self._entries[url]
                self._misses += 1
                return None

            # Refresh LRU position
            entry.last_accessed = now
            self._entries.move_to_end(url)
            self._hits += 1
            return entry.content, entry.content_type

    async def put(self, url: str, data: bytes, content_type: str) -> bool:
        """
        Cache an image.

        Returns:
            True if cached successfully, False if the image is too large.
        """
        if len(data) > self.max_image_size_bytes:
            logger.warning(f"[ImageCache] Image too large ({len(data)} bytes): {url[:50]}...")
            return False

        async with self._lock:
            now = self._clock()
            self._entries.pop(url, None)
            while self._entries and len(self._entries) >= self.max_entries:
                evicted_url, _ = self._entries.popitem(last=False)
                logger.debug(f"[ImageCache] LRU evicted: {evicted_url[:50]}...")

            self._entries[url] = ProxyCacheEntry(
                source_url=url,
                content=data,
                content_type=content_type,
                fetched_at=now,
                last_accessed=now,
            )
            logger.debug(f"[ImageCache] Cached: {url[:50]}... ({len(data)} bytes)")
            return True

    async def contains(self, url: str) -> bool:
        """True if a fresh entry exists; does not touch LRU order or counters"""
        async with self._lock:
            entry = self._entries.get(url)
            return entry is not None and self._clock() - entry.fetched_at <= self.cache_ttl_seconds

    async def cleanup_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired = [
                url for url, entry in self._entries.items()
                if now - entry.fetched_at > self.cache_ttl_seconds
            ]
            for url in expired:
                del self._entries[url]

            if expired:
                logger.info(f"[ImageCache] Cleaned up {len(expired)} expired entries")
            return len(expired)

    async def clear_all(self) -> int:
        """
        Clear all cached images.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            logger.info(f"[ImageCache] Cleared all {count} entries")
            return count

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total_size = sum(entry.size_bytes for entry in self._entries.values())
        lookups = self._hits + self._misses
        return {
            "total_entries": len(self._entries),
            "max_entries": self.max_entries,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_percent": round(self._hits / lookups * 100, 1) if lookups else 0,
            "cache_ttl_hours": round(self.cache_ttl_seconds / 3600, 2),
        }
