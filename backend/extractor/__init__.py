"""
Gallery Extractor Module

Discovers a gallery's preview image URLs and stores them progressively:
- URL classification with configurable strictness
- Ranked extraction strategies (DOM, resource sweep, markup scan)
- Shared Playwright browser session, or a plain HTTP variant
- Deduplicating extraction coordinator with a fixed worker pool
"""

import config
from cache.gallery_cache import gallery_cache

from .classifier import PreviewClassifier, Strictness, normalize, detect_source
from .browser_session import BrowserSession
from .browser_extractor import BrowserGalleryExtractor
from .http_extractor import HttpGalleryExtractor
from .coordinator import ExtractionCoordinator

# Create singleton service instances
preview_classifier = PreviewClassifier(Strictness(config.PREVIEW_STRICTNESS))
browser_session = BrowserSession()

if config.EXTRACTOR_BACKEND == "http":
    gallery_extractor = HttpGalleryExtractor(gallery_cache, preview_classifier)
else:
    gallery_extractor = BrowserGalleryExtractor(browser_session, gallery_cache, preview_classifier)

extraction_coordinator = ExtractionCoordinator(
    gallery_extractor.run,
    workers=config.EXTRACTION_WORKERS,
    run_timeout=config.EXTRACTION_RUN_TIMEOUT_SECONDS,
)

from .routes import router as extractor_router

__all__ = [
    "PreviewClassifier",
    "Strictness",
    "normalize",
    "detect_source",
    "BrowserSession",
    "BrowserGalleryExtractor",
    "HttpGalleryExtractor",
    "ExtractionCoordinator",
    "preview_classifier",
    "browser_session",
    "gallery_extractor",
    "extraction_coordinator",
    "extractor_router",
]
