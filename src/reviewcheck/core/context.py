"""Batch-wide review statistics shared with every chunk of an analysis."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from .constants import ContextConstants
from .models import Review


@dataclass
class GlobalContext:
    """Statistics over the whole review set, computed without any provider call."""
    total_reviews: int = 0
    rating_distribution: Dict[int, int] = field(default_factory=dict)
    five_star_percentage: float = 0.0
    four_plus_percentage: float = 0.0
    verified_percentage: float = 0.0
    avg_text_length: int = 0
    suspicious_patterns: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        """One-line header prepended to each chunk prompt."""
        text = (
            f"GLOBAL CONTEXT: {self.five_star_percentage}% 5-star, "
            f"{self.verified_percentage}% verified across {self.total_reviews} reviews. "
        )
        if self.suspicious_patterns:
            alerts = "; ".join(self.suspicious_patterns[:ContextConstants.MAX_ALERTS_IN_SUMMARY])
            return text + f"ALERTS: {alerts}."
        return text + "No major red flags detected."


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def extract_global_context(reviews: List[Review]) -> GlobalContext:
    total = len(reviews)
    if not total:
        return GlobalContext()

    distribution = Counter(r.rating for r in reviews)
    five = _pct(distribution.get(5, 0), total)
    four_plus = _pct(distribution.get(4, 0) + distribution.get(5, 0), total)
    verified = _pct(sum(1 for r in reviews if r.verified), total)
    avg_len = round(sum(len(r.text or "") for r in reviews) / total)

    patterns = []
    if five > ContextConstants.FIVE_STAR_ALERT:
        patterns.append(f"Extremely high 5-star concentration ({five}%)")
    if four_plus > ContextConstants.FOUR_PLUS_ALERT:
        patterns.append(f"Overwhelming positive ratings ({four_plus}% are 4-5 stars)")
    if verified < ContextConstants.VERIFIED_ALERT:
        patterns.append(f"Low verified purchase rate ({verified}%)")
    if avg_len < ContextConstants.SHORT_TEXT_ALERT:
        patterns.append(f"Unusually short reviews (avg {avg_len} chars)")
    if total > ContextConstants.HIGH_VOLUME_REVIEWS and five > ContextConstants.HIGH_VOLUME_FIVE_STAR:
        patterns.append("High-volume product with suspicious rating uniformity")

    return GlobalContext(
        total_reviews=total,
        rating_distribution=dict(sorted(distribution.items())),
        five_star_percentage=five,
        four_plus_percentage=four_plus,
        verified_percentage=verified,
        avg_text_length=avg_len,
        suspicious_patterns=patterns,
    )
