"""Duplicate removal and reconciliation against the platform's reported total."""

import logging
from dataclasses import dataclass, field
from typing import List

from .models import Review
from .normalizer import normalize

logger = logging.getLogger(__name__)


@dataclass
class DedupReport:
    """Outcome of a full dedupe + reconcile pass."""
    reviews: List[Review] = field(default_factory=list)
    input_count: int = 0
    duplicates_removed: int = 0
    truncated: int = 0


def dedupe(reviews: List[Review]) -> List[Review]:
    """Drop reviews whose normalized text was already seen. First occurrence wins.

    Reviews with empty text (or text that normalizes to nothing) are always
    kept, since there is nothing to compare them by.
    """
    seen = set()
    kept = []
    for review in reviews:
        key = normalize(review.text)
        if not key:
            kept.append(review)
            continue
        if key in seen:
            logger.debug(f"Dropping duplicate review {review.id}")
            continue
        seen.add(key)
        kept.append(review)
    return kept


def reconcile_against_total(reviews: List[Review], reported_total: int) -> List[Review]:
    """Cap the review list at the platform's reported total.

    Excess reviews are truncated by position: the first ``reported_total``
    items are kept in their original order. This discards information on
    purpose and is deterministic. A ``reported_total`` of 0 means unknown and
    leaves the list untouched.
    """
    if reported_total > 0 and len(reviews) > reported_total:
        logger.info(f"Truncating {len(reviews)} reviews to reported total {reported_total}")
        return list(reviews[:reported_total])
    return list(reviews)


def reconcile(reviews: List[Review], reported_total: int) -> DedupReport:
    """Dedupe, then enforce ``len(reviews) <= reported_total``."""
    unique = dedupe(reviews)
    capped = reconcile_against_total(unique, reported_total)
    report = DedupReport(
        reviews=capped,
        input_count=len(reviews),
        duplicates_removed=len(reviews) - len(unique),
        truncated=len(unique) - len(capped),
    )
    if report.duplicates_removed or report.truncated:
        logger.info(
            f"Reconciled {report.input_count} reviews: "
            f"{report.duplicates_removed} duplicates, {report.truncated} truncated"
        )
    return report
