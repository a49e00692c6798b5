"""
Redis Gallery Store
Redis 图集存储

Networked store shared between processes. Layout per gallery:

    gallery:<identifier>:members  SET of image URLs
    gallery:<identifier>:done     "1" once extraction completed
    gallery:<identifier>:created  unix timestamp of the first write

Every write refreshes the expiry of all three keys. Errors are raised to the
caller; GalleryCache is responsible for degrading gracefully.
"""

import time
import logging
from typing import Any, Dict, Optional

import redis.asyncio as aioredis

from .memory_store import GalleryRecord

logger = logging.getLogger(__name__)

KEY_PREFIX = "gallery:"


def _keys(identifier: str):
    base = f"{KEY_PREFIX}{identifier}"
    return f"{base}:members", f"{base}:done", f"{base}:created"


class RedisGalleryStore:
    """Gallery store backed by redis sets and flags"""

    backend = "redis"

    def __init__(self, client: "aioredis.Redis", default_ttl: float = 7 * 24 * 3600.0):
        self._client = client
        self._default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, default_ttl: float = 7 * 24 * 3600.0) -> "RedisGalleryStore":
        client = aioredis.from_url(url, socket_connect_timeout=2, decode_responses=True)
        logger.info(f"[GalleryCache] Using redis store at {url}")
        return cls(client, default_ttl=default_ttl)

    async def get(self, identifier: str) -> Optional[GalleryRecord]:
        members_key, done_key, created_key = _keys(identifier)
        async with self._client.pipeline(transaction=False) as pipe:
            pipe.smembers(members_key)
            pipe.get(done_key)
            pipe.get(created_key)
            members, done, created = await pipe.execute()

        if not members and done is None:
            return None

        created_at = float(created) if created else time.time()
        return GalleryRecord(
            identifier=identifier,
            members=set(members or ()),
            done=done == "1",
            created_at=created_at,
            updated_at=created_at,
        )

    async def add_member(self, identifier: str, url: str, ttl: Optional[float] = None) -> bool:
        members_key, done_key, created_key = _keys(identifier)
        seconds = self._ttl_seconds(ttl)
        async with self._client.pipeline(transaction=False) as pipe:
            pipe.sadd(members_key, url)
            pipe.set(created_key, str(time.time()), nx=True, ex=seconds)
            pipe.expire(members_key, seconds)
            pipe.expire(created_key, seconds)
            pipe.expire(done_key, seconds)
            added, *_ = await pipe.execute()
        return bool(added)

    async def mark_done(self, identifier: str, ttl: Optional[float] = None) -> None:
        members_key, done_key, created_key = _keys(identifier)
        seconds = self._ttl_seconds(ttl)
        async with self._client.pipeline(transaction=False) as pipe:
            pipe.set(done_key, "1", ex=seconds)
            pipe.set(created_key, str(time.time()), nx=True, ex=seconds)
            pipe.expire(members_key, seconds)
            await pipe.execute()

    async def delete(self, identifier: str) -> bool:
        removed = await self._client.delete(*_keys(identifier))
        return removed > 0

    async def clear(self) -> int:
        count = 0
        async for key in self._client.scan_iter(match=f"{KEY_PREFIX}*:created"):
            identifier = key[len(KEY_PREFIX):-len(":created")]
            if await self.delete(identifier):
                count += 1
        return count

    async def cleanup_expired(self) -> int:
        # redis expires keys on its own
        return 0

    async def stats(self) -> Dict[str, Any]:
        total = 0
        async for _ in self._client.scan_iter(match=f"{KEY_PREFIX}*:created"):
            total += 1
        return {
            "backend": self.backend,
            "total_entries": total,
            "default_ttl_hours": round(self._default_ttl / 3600, 2),
        }

    async def close(self) -> None:
        await self._client.aclose()

    def _ttl_seconds(self, ttl: Optional[float]) -> int:
        return max(1, int(ttl if ttl is not None else self._default_ttl))
