"""Tests for fake percentage, adjusted rating and grade reconciliation."""

from reviewcheck.core.metrics import MetricsReconciler
from reviewcheck.core.models import AnalysisArtifact, Review, ReviewScore, ScoreLabel


def _reviews(ratings):
    return [Review(id=f"r{i}", text=f"text {i}", rating=r) for i, r in enumerate(ratings, 1)]


def _scores(values):
    return {
        f"r{i}": ReviewScore(review_id=f"r{i}", score=v, label=ScoreLabel.GENUINE, confidence=0.9)
        for i, v in enumerate(values, 1)
    }


class TestMetricsReconciler:
    """Aggregate metrics over a review set and its scores."""

    def setup_method(self):
        self.reconciler = MetricsReconciler(fake_threshold=85)

    def test_all_genuine_scores_grade_a(self):
        reviews = _reviews([5, 4, 5, 3, 4, 5, 4, 5, 4, 5])
        metrics = self.reconciler.reconcile(reviews, _scores([10, 20, 30, 84, 0, 5, 50, 60, 70, 80]))
        assert metrics.fake_percentage == 0.0
        assert metrics.grade == "A"
        assert metrics.total_reviews == 10
        assert metrics.adjusted_rating == metrics.amazon_rating

    def test_threshold_is_inclusive(self):
        reviews = _reviews([5, 1])
        metrics = self.reconciler.reconcile(reviews, _scores([85, 10]))
        assert metrics.fake_count == 1
        assert metrics.fake_percentage == 50.0
        assert metrics.grade == "C"

    def test_adjusted_rating_excludes_fakes(self):
        reviews = _reviews([5, 5, 1, 2])
        metrics = self.reconciler.reconcile(reviews, _scores([95, 90, 10, 20]))
        assert metrics.amazon_rating == 3.25
        assert metrics.adjusted_rating == 1.5

    def test_all_fake_falls_back_to_unadjusted(self):
        reviews = _reviews([5, 4])
        metrics = self.reconciler.reconcile(reviews, _scores([99, 100]))
        assert metrics.fake_percentage == 100.0
        assert metrics.grade == "F"
        assert metrics.adjusted_rating == metrics.amazon_rating == 4.5

    def test_empty_review_set(self):
        metrics = self.reconciler.reconcile([], {})
        assert metrics.fake_percentage == 0
        assert metrics.amazon_rating == 0.0
        assert metrics.adjusted_rating == 0.0

    def test_scores_outside_review_list_ignored(self):
        reviews = _reviews([5, 5])
        scores = _scores([10, 10, 99, 99])  # r3 and r4 were truncated away
        metrics = self.reconciler.reconcile(reviews, scores)
        assert metrics.fake_count == 0

    def test_unscored_reviews_count_as_not_fake(self):
        reviews = _reviews([5, 5, 5, 5])
        metrics = self.reconciler.reconcile(reviews, _scores([90]))
        assert metrics.fake_count == 1
        assert metrics.fake_percentage == 25.0

    def test_rounding(self):
        reviews = _reviews([5, 5, 5])
        metrics = self.reconciler.reconcile(reviews, _scores([90, 10, 10]))
        assert metrics.fake_percentage == 33.3

    def test_legacy_scores_count(self):
        reviews = _reviews([5, 4])
        scores = {"r1": ReviewScore.legacy("r1", 92), "r2": ReviewScore.legacy("r2", 5)}
        metrics = self.reconciler.reconcile(reviews, scores)
        assert metrics.fake_count == 1

    def test_idempotent(self):
        reviews = _reviews([5, 4, 3, 2, 1])
        scores = _scores([90, 10, 86, 40, 20])
        artifact = AnalysisArtifact(key_patterns=["generic praise"])
        first = self.reconciler.reconcile(reviews, scores, artifact)
        second = self.reconciler.reconcile(reviews, scores, artifact)
        assert first == second
        assert "generic praise" in first.explanation

    def test_shared_ids_counted_per_review(self):
        reviews = [Review(id="r1", text="first", rating=5), Review(id="r1", text="second", rating=5),
                   Review(id="r2", text="third", rating=2)]
        metrics = self.reconciler.reconcile(reviews, _scores([95, 10]))
        assert metrics.fake_count == 2
        assert metrics.fake_percentage == 66.7
        assert metrics.adjusted_rating == 2.0

    def test_custom_threshold(self):
        reviews = _reviews([5, 5])
        metrics = MetricsReconciler(fake_threshold=50).reconcile(reviews, _scores([60, 10]))
        assert metrics.fake_count == 1
