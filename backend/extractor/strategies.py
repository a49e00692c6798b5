"""
Extraction Strategies

Ranked list of ways to pull candidate image URLs out of a loaded gallery page:

1. DomQueryStrategy      - <img src/data-src/srcset> and <a href> attributes
2. ResourceSweepStrategy - every resource the page recorded as loaded
3. MarkupScanStrategy    - regex scan of the raw HTML plus embedded __NEXT_DATA__

Each strategy returns raw candidates; merging, normalization and
classification happen uniformly in ``run_strategies``.
"""

import json
import re
import logging
from typing import Any, Iterable, List, Optional, Sequence

from .classifier import PreviewClassifier, looks_like_image, is_junk

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s\"'<>\\]+", re.IGNORECASE)
NEXT_DATA_PATTERN = re.compile(
    r"<script[^>]*id=[\"']__NEXT_DATA__[\"'][^>]*>(.*?)</script>",
    re.IGNORECASE | re.DOTALL,
)

DOM_QUERY_SCRIPT = """() => {
    const out = new Set();
    document.querySelectorAll('img').forEach((img) => {
        for (const attr of ['src', 'data-src', 'data-origin-src', 'data-original']) {
            const v = img.getAttribute(attr);
            if (v) out.add(v);
        }
        const srcset = img.getAttribute('srcset');
        if (srcset) {
            srcset.split(',').forEach((part) => {
                const u = part.trim().split(/\\s+/)[0];
                if (u) out.add(u);
            });
        }
    });
    document.querySelectorAll('a').forEach((a) => {
        const href = a.getAttribute('href');
        if (href) out.add(href);
    });
    return Array.from(out);
}"""

RESOURCE_SWEEP_SCRIPT = """() => performance.getEntriesByType('resource').map((e) => e.name)"""


def collect_image_strings(obj: Any, out: List[str]) -> List[str]:
    """Walk decoded JSON collecting every string that looks like an image URL"""
    if isinstance(obj, str):
        if looks_like_image(obj) and not is_junk(obj):
            out.append(obj)
    elif isinstance(obj, dict):
        for value in obj.values():
            collect_image_strings(value, out)
    elif isinstance(obj, (list, tuple)):
        for value in obj:
            collect_image_strings(value, out)
    return out


def scan_markup(html: str) -> List[str]:
    """Pull absolute URLs out of raw HTML, including embedded Next.js data"""
    if not html:
        return []

    found: List[str] = []

    match = NEXT_DATA_PATTERN.search(html)
    if match:
        try:
            collect_image_strings(json.loads(match.group(1)), found)
        except ValueError as e:
            logger.debug(f"[Strategies] Unparseable __NEXT_DATA__: {e}")

    # JSON blobs in scripts escape slashes
    unescaped = html.replace("\\/", "/")
    found.extend(URL_PATTERN.findall(unescaped))
    return found


class ExtractionStrategy:
    """Base class: return raw candidate URLs found on ``page``"""

    name = "base"

    async def collect(self, page) -> List[str]:
        raise NotImplementedError


class DomQueryStrategy(ExtractionStrategy):
    name = "dom"

    async def collect(self, page) -> List[str]:
        return list(await page.evaluate(DOM_QUERY_SCRIPT) or [])


class ResourceSweepStrategy(ExtractionStrategy):
    name = "resources"

    async def collect(self, page) -> List[str]:
        return list(await page.evaluate(RESOURCE_SWEEP_SCRIPT) or [])


class MarkupScanStrategy(ExtractionStrategy):
    name = "markup"

    async def collect(self, page) -> List[str]:
        return scan_markup(await page.content())


DEFAULT_STRATEGIES: Sequence[ExtractionStrategy] = (
    DomQueryStrategy(),
    ResourceSweepStrategy(),
    MarkupScanStrategy(),
)


def classify_candidates(
    candidates: Iterable[Optional[str]],
    classifier: PreviewClassifier,
    base_url: str,
) -> List[str]:
    """Normalize + classify, dropping duplicates but keeping first-seen order"""
    seen = set()
    kept: List[str] = []
    for candidate in candidates:
        url = classifier.accept(candidate, base_url)
        if url and url not in seen:
            seen.add(url)
            kept.append(url)
    return kept


async def run_strategies(
    page,
    classifier: PreviewClassifier,
    base_url: str,
    strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
) -> List[str]:
    """
    Run every strategy in rank order and merge their results.

    A failing strategy is logged and skipped; the others still contribute.
    The merged list goes through the classifier's keyword preference.
    """
    merged: List[str] = []
    for strategy in strategies:
        try:
            candidates = await strategy.collect(page)
        except Exception as e:
            logger.warning(f"[Strategies] {strategy.name} failed on {base_url[:60]}: {e}")
            continue
        kept = classify_candidates(candidates, classifier, base_url)
        logger.debug(
            f"[Strategies] {strategy.name}: {len(candidates)} candidates, {len(kept)} kept"
        )
        merged.extend(kept)
    return classifier.prefer(classify_candidates(merged, classifier, base_url))
