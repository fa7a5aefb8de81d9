"""Shared fakes for the analysis pipeline tests."""

import threading
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from reviewcheck.core.errors import ProviderCallFailed
from reviewcheck.core.models import (
    AnalysisArtifact,
    FakeExample,
    ProviderResult,
    Review,
    ReviewScore,
)
from reviewcheck.services.providers import ReviewAnalysisProvider
from reviewcheck.services.prompts import label_for_score


class FakeProvider(ReviewAnalysisProvider):
    """In-process provider with scripted scores and failures.

    ``fail_calls`` holds 1-based call numbers that raise ProviderCallFailed;
    ``fail_always`` makes every call fail.
    """

    def __init__(
        self,
        name: str = "fake",
        available: bool = True,
        score_fn: Optional[Callable[[Review], int]] = None,
        fail_calls: Iterable[int] = (),
        fail_always: bool = False,
        max_batch_size: Optional[int] = None,
        cost_per_review: float = 0.0,
        patterns: Optional[List[str]] = None,
    ):
        super().__init__(catalog={})
        self.key = name
        self.available = available
        self.score_fn = score_fn or (lambda review: 10)
        self.fail_calls = set(fail_calls)
        self.fail_always = fail_always
        self._max_batch_size = max_batch_size
        self.cost_per_review = cost_per_review
        self.patterns = patterns or []
        self.calls: List[List[str]] = []
        self.contexts: List[Optional[str]] = []
        self._lock = threading.Lock()

    @property
    def max_batch_size(self) -> Optional[int]:
        return self._max_batch_size

    def is_available(self) -> bool:
        return self.available

    def estimated_cost(self, review_count: int) -> float:
        return review_count * self.cost_per_review

    def _complete(self, system: str, user: str) -> str:
        return "{}"

    def analyze(self, reviews, context_summary=None):
        with self._lock:
            self.calls.append([r.id for r in reviews])
            self.contexts.append(context_summary)
            call_number = len(self.calls)
        if self.fail_always or call_number in self.fail_calls:
            raise ProviderCallFailed(self.name, "http_error", f"scripted failure on call {call_number}")

        scores: Dict[str, ReviewScore] = {}
        examples = []
        for review in reviews:
            value = self.score_fn(review)
            scores[review.id] = ReviewScore(
                review_id=review.id,
                score=value,
                label=label_for_score(value),
                confidence=0.8,
                explanation="scripted",
            )
            if value >= 85:
                examples.append(FakeExample(review.id, value, review.text[:50], "scripted"))
        return ProviderResult(
            scores=scores,
            artifact=AnalysisArtifact(fake_examples=examples, key_patterns=list(self.patterns)),
            explanation=f"{self.name} batch of {len(reviews)}",
            cost=self.estimated_cost(len(reviews)),
        )


def make_reviews(count: int, prefix: str = "r", rating: int = 4, verified: bool = True) -> List[Review]:
    """Unique reviews r1..rN."""
    return [
        Review(
            id=f"{prefix}{i}",
            text=f"Review number {i} with its own distinct wording about the product",
            rating=rating,
            verified=verified,
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def reviews_factory():
    return make_reviews
