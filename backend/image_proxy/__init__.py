"""
Image Proxy Module

Re-serves gallery images through the backend, supplying the browser-like
headers and referer the origin insists on.

Features:
- Referer fallback with HTML block-page detection
- In-memory image cache with TTL and LRU eviction
- Gallery prefetch to warm the cache
"""

from .routes_fastapi import router
from .cache_manager import ImageCacheManager, ProxyCacheEntry
from .fetcher import ImageProxyFetcher, ProxyResult

__all__ = ["router", "ImageCacheManager", "ProxyCacheEntry", "ImageProxyFetcher", "ProxyResult"]
