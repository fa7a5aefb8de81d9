"""Tests for review text normalization."""

import pytest

from reviewcheck.core.normalizer import normalize


class TestNormalize:
    """Comparison keys for duplicate detection."""

    def test_lowercases_and_strips_punctuation(self):
        assert normalize("Great Product!!!") == "great product"

    def test_collapses_whitespace(self):
        assert normalize("  Works   well\n\tfor me  ") == "works well for me"

    def test_none_and_empty(self):
        assert normalize(None) == ""
        assert normalize("") == ""
        assert normalize("   ") == ""

    def test_punctuation_only_is_empty(self):
        assert normalize("!!! ... ???") == ""

    @pytest.mark.parametrize("text", [
        "Hello, World!",
        "a - b - c",
        "  Mixed   CASE, and... punctuation ;) ",
        "émoji 👍 and ünïcode",
        "tab\tseparated\nlines",
    ])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once

    def test_does_not_mutate_input(self):
        text = "Keep ME as-is!"
        normalize(text)
        assert text == "Keep ME as-is!"

    def test_punctuation_variants_share_key(self):
        assert normalize("Love it, works great.") == normalize("love it works great")
