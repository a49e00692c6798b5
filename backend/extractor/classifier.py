"""
Preview Image Classifier

Decides whether a discovered URL is a gallery preview image and normalizes
candidate URLs to absolute, query-less form.

Strictness tiers:
- strict: path ends with "small.<ext>"   (e.g. .../abc/small.jpeg)
- loose:  "small." and ".<ext>" appear anywhere in the URL
- any:    any http(s) URL carrying an image extension
Junk assets (logos, avatars, placeholders...) are rejected in every tier.

QC sources accept every image but prefer inspection photos: when any URL
carries a QC keyword, the others are dropped.
"""

from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

IMAGE_EXTENSIONS: Tuple[str, ...] = ("jpeg", "jpg", "png", "webp")

PREVIEW_MARKER = "small"

JUNK_MARKERS: Tuple[str, ...] = (
    "logo",
    "avatar",
    "icon",
    "sprite",
    "favicon",
    "loading",
    "placeholder",
)

# QC galleries mix inspection photos with product shots; these mark the former
QC_KEYWORDS: Tuple[str, ...] = ("qc", "quality", "inspect", "inspection")


class Strictness(str, Enum):
    STRICT = "strict"
    LOOSE = "loose"
    ANY = "any"


def normalize(url: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve ``url`` against ``base_url`` and strip query and fragment.

    Returns None for anything that is not an http(s) URL with a host
    (javascript:, data:, mailto:, malformed input...).
    """
    if not url:
        return None
    candidate = url.strip()
    if not candidate:
        return None
    try:
        absolute = urljoin(base_url, candidate)
        parts = urlsplit(absolute)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def is_junk(url: str) -> bool:
    lowered = url.lower()
    return lowered.startswith("data:") or any(marker in lowered for marker in JUNK_MARKERS)


def looks_like_image(url: str, extensions: Iterable[str] = IMAGE_EXTENSIONS) -> bool:
    lowered = url.lower()
    return lowered.startswith("http") and any(f".{ext}" in lowered for ext in extensions)


class PreviewClassifier:
    """Configurable preview image heuristic"""

    def __init__(
        self,
        strictness: Strictness = Strictness.STRICT,
        marker: str = PREVIEW_MARKER,
        extensions: Iterable[str] = IMAGE_EXTENSIONS,
        preferred: Iterable[str] = (),
    ):
        """
        Args:
            strictness: Which URL shapes count as previews
            marker: Filename marker of preview variants
            extensions: Accepted image extensions
            preferred: Keywords ranking some accepted URLs above the rest;
                see ``prefer()``
        """
        self.strictness = Strictness(strictness)
        self.marker = marker.lower()
        self.extensions = tuple(ext.lower().lstrip(".") for ext in extensions)
        self.preferred = tuple(keyword.lower() for keyword in preferred)

    def is_preview_image(self, url: str) -> bool:
        if not url or is_junk(url):
            return False
        lowered = url.lower()

        if self.strictness is Strictness.STRICT:
            path = lowered.split("?", 1)[0].split("#", 1)[0]
            return any(path.endswith(f"{self.marker}.{ext}") for ext in self.extensions)

        if self.strictness is Strictness.LOOSE:
            return f"{self.marker}." in lowered and any(
                f".{ext}" in lowered for ext in self.extensions
            )

        return looks_like_image(lowered, self.extensions)

    def accept(self, url: Optional[str], base_url: str) -> Optional[str]:
        """Normalize then classify; returns the normalized URL if kept"""
        normalized = normalize(url, base_url)
        if normalized and self.is_preview_image(normalized):
            return normalized
        return None

    def is_preferred(self, url: str) -> bool:
        """True when no keywords are set or ``url`` carries one of them"""
        if not self.preferred:
            return True
        lowered = url.lower()
        return any(keyword in lowered for keyword in self.preferred)

    def prefer(self, urls: Sequence[str]) -> List[str]:
        """
        Keep only the preferred URLs, or all of them when none is preferred.
        """
        urls = list(urls)
        if not self.preferred:
            return urls
        matching = [url for url in urls if self.is_preferred(url)]
        return matching or urls

    def __repr__(self) -> str:
        if self.preferred:
            return f"PreviewClassifier(strictness={self.strictness.value!r}, preferred={self.preferred!r})"
        return f"PreviewClassifier(strictness={self.strictness.value!r})"


# ==================== Source detection ====================

QC_SOURCES = ("uufinds", "findqc")


def detect_source(url: str) -> str:
    """Identify the hosting site of a gallery URL"""
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return "unknown"
    if host.endswith(".x.yupoo.com"):
        return "yupoo"
    if "uufinds.com" in host:
        return "uufinds"
    if "findqc.com" in host:
        return "findqc"
    return "unknown"


def classifier_for(url: str, default: PreviewClassifier) -> PreviewClassifier:
    """
    QC listing sites do not use the "small" naming scheme, so every image on
    them counts, with inspection photos (QC_KEYWORDS) preferred over the rest.
    Other sources use the configured heuristic.
    """
    if detect_source(url) in QC_SOURCES:
        return PreviewClassifier(Strictness.ANY, extensions=default.extensions, preferred=QC_KEYWORDS)
    return default
