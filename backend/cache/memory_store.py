"""
Memory Gallery Store
内存图集存储

In-process storage for gallery listings, used when no networked store is
configured.

Features:
- asyncio Lock around every operation
- TTL-based expiration (refreshed on every write)
- LRU eviction when max entries exceeded
- Injectable clock so expiry can be tested without sleeping
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set


@dataclass
class GalleryRecord:
    """
    Discovered preview images for one gallery
    单个图集的已发现图片
    """
    identifier: str                              # Gallery URL, used verbatim as key
    members: Set[str] = field(default_factory=set)
    done: bool = False                           # Set once, by the extraction run
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def count(self) -> int:
        return len(self.members)

    def sorted_members(self) -> List[str]:
        """Members in lexicographic order, for stable pagination"""
        return sorted(self.members)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted layout: identifier -> {members, done}"""
        return {
            "members": self.sorted_members(),
            "done": self.done,
        }

    def to_summary(self) -> Dict[str, Any]:
        return {
            "url": self.identifier,
            "count": self.count,
            "done": self.done,
            "created_at": datetime.fromtimestamp(self.created_at).isoformat(),
            "updated_at": datetime.fromtimestamp(self.updated_at).isoformat(),
        }


@dataclass
class _StoredRecord:
    record: GalleryRecord
    expires_at: float


class MemoryGalleryStore:
    """
    Bounded in-memory gallery store
    有界内存图集存储

    Capacity, TTL and clock are constructor parameters so the eviction
    policy can be unit-tested on its own.
    """

    backend = "memory"

    def __init__(
        self,
        max_entries: int = 500,
        default_ttl: float = 1800.0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            max_entries: Maximum number of galleries to keep
            default_ttl: Retention in seconds, counted from the last write
            clock: Time source returning seconds
        """
        self._store: "OrderedDict[str, _StoredRecord]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._max_entries = max_entries
        self._default_ttl = default_ttl
        self._clock = clock

    async def get(self, identifier: str) -> Optional[GalleryRecord]:
        """
        Get a snapshot of the gallery record
        获取图集记录快照

        Returns:
            A copy of the record, or None if absent or expired
        """
        async with self._lock:
            stored = self._live(identifier)
            if stored is None:
                return None
            self._store.move_to_end(identifier)
            record = stored.record
            return GalleryRecord(
                identifier=record.identifier,
                members=set(record.members),
                done=record.done,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )

    async def add_member(self, identifier: str, url: str, ttl: Optional[float] = None) -> bool:
        """
        Add a URL to the gallery set and refresh its TTL
        添加图片 URL 并刷新过期时间

        Returns:
            True if the URL was new, False if it was already present
        """
        async with self._lock:
            stored = self._touch(identifier, ttl)
            if url in stored.record.members:
                return False
            stored.record.members.add(url)
            return True

    async def mark_done(self, identifier: str, ttl: Optional[float] = None) -> None:
        """Flag the gallery as completely extracted"""
        async with self._lock:
            stored = self._touch(identifier, ttl)
            stored.record.done = True

    async def delete(self, identifier: str) -> bool:
        async with self._lock:
            return self._store.pop(identifier, None) is not None

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._store)
            self._store.clear()
            return count

    async def cleanup_expired(self) -> int:
        """Remove every expired entry, returns the number removed"""
        async with self._lock:
            return self._cleanup_expired()

    async def stats(self) -> Dict[str, Any]:
        async with self._lock:
            self._cleanup_expired()
            records = [s.record for s in self._store.values()]
            return {
                "backend": self.backend,
                "total_entries": len(records),
                "max_entries": self._max_entries,
                "completed_entries": sum(1 for r in records if r.done),
                "total_members": sum(r.count for r in records),
                "default_ttl_hours": round(self._default_ttl / 3600, 2),
            }

    async def close(self) -> None:
        return None

    def _live(self, identifier: str) -> Optional[_StoredRecord]:
        """Return the stored entry unless expired (internal, assumes lock held)"""
        stored = self._store.get(identifier)
        if stored is None:
            return None
        if self._clock() >= stored.expires_at:
            del self._store[identifier]
            return None
        return stored

    def _touch(self, identifier: str, ttl: Optional[float]) -> _StoredRecord:
        """Get or create the entry, refresh expiry and LRU position (lock held)"""
        now = self._clock()
        expires_at = now + (ttl if ttl is not None else self._default_ttl)
        stored = self._live(identifier)
        if stored is None:
            self._cleanup_expired()
            # Evict least recently used if at capacity
            while self._store and len(self._store) >= self._max_entries:
                self._store.popitem(last=False)
            stored = _StoredRecord(
                record=GalleryRecord(identifier=identifier, created_at=now, updated_at=now),
                expires_at=expires_at,
            )
            self._store[identifier] = stored
        else:
            stored.expires_at = expires_at
            stored.record.updated_at = now
            self._store.move_to_end(identifier)
        return stored

    def _cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, v in self._store.items() if now >= v.expires_at]
        for k in expired:
            del self._store[k]
        return len(expired)
