"""
Service Configuration

All settings are read from environment variables once, at import time.
Invalid values raise ValueError so a misconfigured deployment fails fast.
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_choice(name: str, default: str, choices: tuple) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


# ============================================
# General
# ============================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Base used to build proxy URLs in listings. Empty = derive from the request.
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")

# ============================================
# Extraction
# ============================================

EXTRACTOR_BACKEND = _env_choice("EXTRACTOR_BACKEND", "browser", ("browser", "http"))

PAGE_LOAD_TIMEOUT_MS = int(os.getenv("PAGE_LOAD_TIMEOUT_MS", "60000"))
NETWORK_IDLE_TIMEOUT_MS = int(os.getenv("NETWORK_IDLE_TIMEOUT_MS", "8000"))
SETTLE_DELAY_SECONDS = float(os.getenv("SETTLE_DELAY_SECONDS", "1.2"))
SCROLL_SETTLE_SECONDS = float(os.getenv("SCROLL_SETTLE_SECONDS", "0.9"))

EXTRACTION_WORKERS = int(os.getenv("EXTRACTION_WORKERS", "2"))
EXTRACTION_RUN_TIMEOUT_SECONDS = float(os.getenv("EXTRACTION_RUN_TIMEOUT_SECONDS", "180"))

PREVIEW_STRICTNESS = _env_choice("PREVIEW_STRICTNESS", "strict", ("strict", "loose", "any"))

# Galleries on hosts other than yupoo, uufinds and findqc are rejected with 400
ALLOW_UNKNOWN_SOURCES = _env_bool("ALLOW_UNKNOWN_SOURCES", False)

LIST_INCLUDE_ORIGINAL = _env_bool("LIST_INCLUDE_ORIGINAL", True)
LIST_INCLUDE_PROXY = _env_bool("LIST_INCLUDE_PROXY", True)

# ============================================
# Gallery cache
# ============================================

CACHE_BACKEND = _env_choice("CACHE_BACKEND", "memory", ("memory", "redis", "none"))
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Durable store keeps listings for a week, the in-memory one for half an hour
_DEFAULT_GALLERY_TTL = 7 * 24 * 3600 if CACHE_BACKEND == "redis" else 30 * 60
GALLERY_CACHE_TTL_SECONDS = int(os.getenv("GALLERY_CACHE_TTL_SECONDS", str(_DEFAULT_GALLERY_TTL)))
GALLERY_CACHE_MAX_ENTRIES = int(os.getenv("GALLERY_CACHE_MAX_ENTRIES", "500"))

# ============================================
# Image proxy
# ============================================

PROXY_ATTEMPTS = int(os.getenv("PROXY_ATTEMPTS", "2"))
PROXY_TIMEOUT_SECONDS = float(os.getenv("PROXY_TIMEOUT_SECONDS", "15"))
PROXY_FALLBACK_REFERER = os.getenv("PROXY_FALLBACK_REFERER", "https://www.google.com/")

IMAGE_CACHE_ENABLED = _env_bool("IMAGE_CACHE_ENABLED", True)
IMAGE_CACHE_TTL_HOURS = float(os.getenv("IMAGE_CACHE_TTL_HOURS", "6"))
IMAGE_CACHE_MAX_ENTRIES = int(os.getenv("IMAGE_CACHE_MAX_ENTRIES", "800"))
IMAGE_MAX_SIZE_MB = int(os.getenv("IMAGE_MAX_SIZE_MB", "10"))

PREFETCH_DEFAULT_LIMIT = int(os.getenv("PREFETCH_DEFAULT_LIMIT", "40"))
PREFETCH_MAX_LIMIT = int(os.getenv("PREFETCH_MAX_LIMIT", "120"))
PREFETCH_CONCURRENCY = int(os.getenv("PREFETCH_CONCURRENCY", "6"))
