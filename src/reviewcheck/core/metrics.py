"""Fake percentage, adjusted rating and grade from a review set and its scores."""

import logging
from typing import Dict, List, Optional

from .constants import ScoringConstants
from .grading import grade_from_percentage
from .models import AnalysisArtifact, ReconciledMetrics, Review, ReviewScore

logger = logging.getLogger(__name__)

_ASSESSMENTS = (
    (
        15,
        "This product demonstrates excellent review authenticity with strong genuine customer engagement.",
        "The reviews show clear authentic signals: detailed personal experiences, specific product "
        "knowledge and balanced perspectives. These patterns are consistent with genuine customer feedback.",
    ),
    (
        30,
        "This product shows good review authenticity with predominantly genuine customer feedback.",
        "Most reviews exhibit authentic characteristics such as personal usage context and natural "
        "language. Focus on verified purchase reviews for the most trustworthy insights.",
    ),
    (
        50,
        "This product has a mixed review profile with both genuine and questionable reviews present.",
        "Prioritize reviews that include specific usage scenarios, balanced perspectives and verified "
        "purchase status when evaluating this product.",
    ),
    (
        70,
        "This product shows concerning review patterns with a significant portion lacking authenticity signals.",
        "Many reviews show generic praise, promotional language or little product knowledge. Consider "
        "other sources before purchasing.",
    ),
)

_FAILING_ASSESSMENT = (
    "This product has significant review authenticity concerns with many reviews showing manipulation patterns.",
    "Genuine feedback may be present but is overshadowed by suspicious content. We recommend thorough "
    "research from multiple sources before making a purchase decision.",
)


def _average_rating(reviews: List[Review]) -> float:
    ratings = [r.rating for r in reviews if 1 <= r.rating <= 5]
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 2)


class MetricsReconciler:
    """Recomputes aggregate metrics. Pure and deterministic for a given input."""

    def __init__(self, fake_threshold: int = ScoringConstants.FAKE_THRESHOLD):
        self.fake_threshold = fake_threshold

    def is_fake(self, score: Optional[ReviewScore]) -> bool:
        return score is not None and score.score >= self.fake_threshold

    def reconcile(
        self,
        reviews: List[Review],
        scores: Dict[str, ReviewScore],
        artifact: Optional[AnalysisArtifact] = None,
    ) -> ReconciledMetrics:
        total = len(reviews)
        # Only scores of reviews still in the (possibly reduced) set count
        fake_flags = [self.is_fake(scores.get(r.id)) for r in reviews]
        fake_count = sum(fake_flags)
        fake_percentage = round(fake_count / total * 100, 1) if total else 0.0

        amazon_rating = _average_rating(reviews)
        genuine = [r for r, fake in zip(reviews, fake_flags) if not fake]
        adjusted_rating = _average_rating(genuine) if genuine else amazon_rating
        if genuine and adjusted_rating == 0.0:
            adjusted_rating = amazon_rating

        grade = grade_from_percentage(fake_percentage)
        explanation = self.explain(total, fake_count, fake_percentage, artifact)

        return ReconciledMetrics(
            total_reviews=total,
            fake_count=fake_count,
            fake_percentage=fake_percentage,
            grade=grade,
            amazon_rating=amazon_rating,
            adjusted_rating=adjusted_rating,
            explanation=explanation,
        )

    def explain(
        self,
        total: int,
        fake_count: int,
        fake_percentage: float,
        artifact: Optional[AnalysisArtifact] = None,
    ) -> str:
        """Human-readable summary, leading with the genuine share."""
        if total == 0:
            return "No reviews were available to analyze."

        genuine_pct = round(100 - fake_percentage, 1)
        opening, detail = _FAILING_ASSESSMENT
        for upper, first, second in _ASSESSMENTS:
            if fake_percentage <= upper:
                opening, detail = first, second
                break

        paragraphs = [
            f"Analysis of {total} reviews found approximately {total - fake_count} genuine reviews "
            f"({genuine_pct}% authenticity rate). {opening}",
            detail,
        ]
        if artifact and artifact.key_patterns:
            patterns = ", ".join(artifact.key_patterns[:3])
            paragraphs.append(f"Key patterns identified in the review analysis include: {patterns}.")
        return "\n\n".join(paragraphs)
