"""Tests for deduplication and reconciliation against the reported total."""

from reviewcheck.core.dedup import dedupe, reconcile, reconcile_against_total
from reviewcheck.core.models import Review
from reviewcheck.core.normalizer import normalize


def _review(i, text, rating=5):
    return Review(id=f"r{i}", text=text, rating=rating)


class TestDedupe:
    """Duplicate removal by normalized text."""

    def test_first_occurrence_wins(self):
        reviews = [_review(1, "Great phone"), _review(2, "great phone!"), _review(3, "Other")]
        kept = dedupe(reviews)
        assert [r.id for r in kept] == ["r1", "r3"]

    def test_empty_text_always_kept(self):
        reviews = [_review(1, ""), _review(2, ""), _review(3, "   "), _review(4, "?!")]
        assert len(dedupe(reviews)) == 4

    def test_no_text_input_unchanged(self):
        reviews = [_review(i, "") for i in range(5)]
        assert dedupe(reviews) == reviews

    def test_no_two_kept_reviews_share_a_key(self):
        texts = ["a b", "A  B", "a, b", "c", "C!", "", "", "d"]
        kept = dedupe([_review(i, t) for i, t in enumerate(texts)])
        keys = [normalize(r.text) for r in kept if normalize(r.text)]
        assert len(keys) == len(set(keys))
        assert len(kept) <= len(texts)

    def test_original_text_preserved(self):
        kept = dedupe([_review(1, "  Mixed CASE!  ")])
        assert kept[0].text == "  Mixed CASE!  "


class TestReconcile:
    """Reconciliation against the platform's reported total."""

    def test_duplicate_removed_without_truncation(self):
        reviews = [_review(i, f"unique review text {i}") for i in range(1, 13)]
        reviews[6] = _review(7, "Unique review text 3!!")  # same key as item 3
        report = reconcile(reviews, 11)
        assert report.duplicates_removed == 1
        assert report.truncated == 0
        assert len(report.reviews) == 11
        assert "r7" not in [r.id for r in report.reviews]

    def test_truncation_keeps_first_in_order(self):
        reviews = [_review(i, f"distinct text {i}") for i in range(1, 10)]
        report = reconcile(reviews, 5)
        assert [r.id for r in report.reviews] == ["r1", "r2", "r3", "r4", "r5"]
        assert report.truncated == 4

    def test_zero_total_means_unknown(self):
        reviews = [_review(i, f"text {i}") for i in range(20)]
        assert len(reconcile_against_total(reviews, 0)) == 20

    def test_never_exceeds_reported_total(self):
        reviews = [_review(i, f"text {i % 7}") for i in range(30)]
        for total in (1, 3, 7, 10):
            assert len(reconcile(reviews, total).reviews) <= total

    def test_deterministic(self):
        reviews = [_review(i, f"text {i % 4}") for i in range(12)]
        first = reconcile(reviews, 3)
        second = reconcile(reviews, 3)
        assert [r.id for r in first.reviews] == [r.id for r in second.reviews]
