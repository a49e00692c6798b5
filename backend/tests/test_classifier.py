"""
URL classifier tests

Run:
    pytest tests/test_classifier.py -v
"""

import pytest

from extractor.classifier import (
    PreviewClassifier,
    Strictness,
    classifier_for,
    detect_source,
    is_junk,
    normalize,
)


# ============================================
# normalize
# ============================================

class TestNormalize:

    def test_resolves_relative_and_strips_query(self):
        assert normalize("/a/b/pic_small.jpeg?x=1", "https://h/c") == "https://h/a/b/pic_small.jpeg"

    def test_strips_fragment(self):
        assert normalize("https://h/p/small.jpeg#top", "https://h/") == "https://h/p/small.jpeg"

    def test_protocol_relative(self):
        assert normalize("//photo.example.com/x/small.jpg", "https://h/c") == "https://photo.example.com/x/small.jpg"

    @pytest.mark.parametrize("value", [
        "javascript:void(0)",
        "data:image/png;base64,AAAA",
        "mailto:someone@example.com",
        "",
        "   ",
        None,
        "http://[::1",
    ])
    def test_rejects_non_http_and_malformed(self, value):
        assert normalize(value, "https://h/c") is None


# ============================================
# Strictness tiers
# ============================================

class TestPreviewClassifier:

    def test_strict_requires_small_suffix(self):
        classifier = PreviewClassifier(Strictness.STRICT)
        assert classifier.is_preview_image("https://h/a/b/pic_small.jpeg")
        assert classifier.is_preview_image("https://photo.yupoo.com/s/abc/SMALL.JPG")
        assert not classifier.is_preview_image("https://photo.yupoo.com/s/abc/big.jpeg")
        assert not classifier.is_preview_image("https://h/small.jpeg/other.png")

    def test_loose_accepts_marker_anywhere(self):
        strict = PreviewClassifier(Strictness.STRICT)
        loose = PreviewClassifier(Strictness.LOOSE)
        url = "https://h/img/small.v2.jpeg/resize"
        assert loose.is_preview_image(url)
        assert not strict.is_preview_image(url)

    def test_any_accepts_every_image(self):
        classifier = PreviewClassifier(Strictness.ANY)
        assert classifier.is_preview_image("https://cdn.example.com/qc/photo_1.webp")
        assert not classifier.is_preview_image("https://cdn.example.com/page.html")

    def test_junk_rejected_in_every_tier(self):
        for strictness in Strictness:
            classifier = PreviewClassifier(strictness)
            assert not classifier.is_preview_image("https://h/static/logo/small.jpeg")
            assert not classifier.is_preview_image("https://h/avatar/small.png")

    def test_strictness_from_string(self):
        assert PreviewClassifier("loose").strictness is Strictness.LOOSE

    def test_accept_normalizes_then_classifies(self):
        classifier = PreviewClassifier()
        assert classifier.accept("/a/b/pic_small.jpeg?x=1", "https://h/c") == "https://h/a/b/pic_small.jpeg"
        assert classifier.accept("javascript:void(0)", "https://h/c") is None
        assert classifier.accept("/a/b/large.jpeg", "https://h/c") is None


def test_is_junk():
    assert is_junk("data:image/gif;base64,R0lGOD")
    assert is_junk("https://h/img/loading.gif")
    assert not is_junk("https://photo.yupoo.com/s/abc/small.jpeg")


# ============================================
# Source detection
# ============================================

@pytest.mark.parametrize("url, source", [
    ("https://brand.x.yupoo.com/albums/1", "yupoo"),
    ("https://www.uufinds.com/goods/1", "uufinds"),
    ("https://findqc.com/detail/1", "findqc"),
    ("https://example.com/gallery", "unknown"),
    ("not a url", "unknown"),
])
def test_detect_source(url, source):
    assert detect_source(url) == source


def test_classifier_for_qc_sources_uses_any_tier():
    default = PreviewClassifier(Strictness.STRICT)
    assert classifier_for("https://findqc.com/detail/1", default).strictness is Strictness.ANY
    assert classifier_for("https://brand.x.yupoo.com/albums/1", default) is default


class TestQcPreference:

    def test_prefer_keeps_keyword_matches(self):
        classifier = classifier_for("https://www.uufinds.com/goods/1", PreviewClassifier())
        urls = [
            "https://cdn.uufinds.com/product/main.jpg",
            "https://cdn.uufinds.com/qc/1.jpg",
            "https://cdn.uufinds.com/Quality-Check/2.png",
        ]
        assert classifier.prefer(urls) == urls[1:]

    def test_prefer_falls_back_to_everything(self):
        classifier = classifier_for("https://findqc.com/detail/1", PreviewClassifier())
        urls = ["https://cdn.example.com/product/main.jpg", "https://cdn.example.com/banner.png"]
        assert classifier.prefer(urls) == urls

    def test_no_keywords_means_no_preference(self):
        classifier = PreviewClassifier()
        assert classifier.is_preferred("https://h/a/small.jpeg")
        assert classifier.prefer(["https://h/a/small.jpeg"]) == ["https://h/a/small.jpeg"]
