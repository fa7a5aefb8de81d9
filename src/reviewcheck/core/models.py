"""Data models for ReviewCheck."""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class ScoreLabel(str, Enum):
    """Categorical verdict for one review."""
    GENUINE = "genuine"
    SUSPICIOUS = "suspicious"
    FAKE = "fake"
    LEGACY = "legacy"


class AnalysisStatus(str, Enum):
    """Lifecycle of a product analysis."""
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Review:
    """Represents a single user review."""
    id: str
    text: str
    rating: int
    verified: bool = False
    posted_at: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "rating": self.rating,
            "verified": self.verified,
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Review":
        posted = data.get("posted_at")
        return cls(
            id=str(data["id"]),
            text=data.get("text") or "",
            rating=int(data.get("rating") or 0),
            verified=bool(data.get("verified", False)),
            posted_at=date.fromisoformat(posted) if posted else None,
        )


@dataclass
class ReviewScore:
    """Fake-probability score for one review.

    Legacy scores carry only the number; ``is_legacy`` marks them so consumers
    never have to inspect which fields happen to be filled in.
    """
    review_id: str
    score: int
    label: ScoreLabel
    confidence: float = 0.0
    explanation: str = ""
    red_flags: List[str] = field(default_factory=list)
    is_legacy: bool = False

    @classmethod
    def legacy(cls, review_id: str, score: int) -> "ReviewScore":
        return cls(
            review_id=review_id,
            score=score,
            label=ScoreLabel.LEGACY,
            confidence=0.0,
            is_legacy=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["label"] = self.label.value
        return data

    @classmethod
    def from_dict(cls, review_id: str, data: Any) -> "ReviewScore":
        # Older records stored a bare number per review
        if isinstance(data, (int, float)):
            return cls.legacy(review_id, int(data))
        return cls(
            review_id=str(data.get("review_id", review_id)),
            score=int(data["score"]),
            label=ScoreLabel(data.get("label", ScoreLabel.LEGACY.value)),
            confidence=float(data.get("confidence", 0.0)),
            explanation=data.get("explanation", ""),
            red_flags=list(data.get("red_flags") or []),
            is_legacy=bool(data.get("is_legacy", False)),
        )


@dataclass
class FakeExample:
    """Excerpt of a high-scoring review."""
    review_id: str
    score: int
    excerpt: str
    reason: str = ""


@dataclass
class AnalysisArtifact:
    """Cross-review findings for a batch."""
    fake_examples: List[FakeExample] = field(default_factory=list)
    key_patterns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AnalysisArtifact":
        data = data or {}
        return cls(
            fake_examples=[FakeExample(**e) for e in data.get("fake_examples", [])],
            key_patterns=list(data.get("key_patterns", [])),
        )


@dataclass
class ProductRecord:
    """Persisted analysis state for one product."""
    asin: str
    country: str = "us"
    reviews: List[Review] = field(default_factory=list)
    reported_total: int = 0
    scores: Dict[str, ReviewScore] = field(default_factory=dict)
    artifact: AnalysisArtifact = field(default_factory=AnalysisArtifact)
    fake_percentage: Optional[float] = None
    grade: Optional[str] = None
    amazon_rating: Optional[float] = None
    adjusted_rating: Optional[float] = None
    explanation: str = ""
    status: AnalysisStatus = AnalysisStatus.PENDING
    error_message: Optional[str] = None
    partial_note: Optional[str] = None
    analysis_provider: Optional[str] = None
    total_cost: float = 0.0
    first_analyzed_at: Optional[datetime] = None
    last_analyzed_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return record_key(self.asin, self.country)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asin": self.asin,
            "country": self.country,
            "reviews": [r.to_dict() for r in self.reviews],
            "reported_total": self.reported_total,
            "scores": {rid: s.to_dict() for rid, s in self.scores.items()},
            "artifact": self.artifact.to_dict(),
            "fake_percentage": self.fake_percentage,
            "grade": self.grade,
            "amazon_rating": self.amazon_rating,
            "adjusted_rating": self.adjusted_rating,
            "explanation": self.explanation,
            "status": self.status.value,
            "error_message": self.error_message,
            "partial_note": self.partial_note,
            "analysis_provider": self.analysis_provider,
            "total_cost": self.total_cost,
            "first_analyzed_at": self.first_analyzed_at.isoformat() if self.first_analyzed_at else None,
            "last_analyzed_at": self.last_analyzed_at.isoformat() if self.last_analyzed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductRecord":
        def _ts(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            asin=data["asin"],
            country=data.get("country", "us"),
            reviews=[Review.from_dict(r) for r in data.get("reviews", [])],
            reported_total=int(data.get("reported_total") or 0),
            scores={rid: ReviewScore.from_dict(rid, s) for rid, s in (data.get("scores") or {}).items()},
            artifact=AnalysisArtifact.from_dict(data.get("artifact")),
            fake_percentage=data.get("fake_percentage"),
            grade=data.get("grade"),
            amazon_rating=data.get("amazon_rating"),
            adjusted_rating=data.get("adjusted_rating"),
            explanation=data.get("explanation", ""),
            status=AnalysisStatus(data.get("status", AnalysisStatus.PENDING.value)),
            error_message=data.get("error_message"),
            partial_note=data.get("partial_note"),
            analysis_provider=data.get("analysis_provider"),
            total_cost=float(data.get("total_cost") or 0.0),
            first_analyzed_at=_ts(data.get("first_analyzed_at")),
            last_analyzed_at=_ts(data.get("last_analyzed_at")),
        )


def record_key(asin: str, country: str) -> str:
    """Storage key for a product record."""
    return f"{asin.upper()}:{country.lower()}"


@dataclass
class ProviderHealth:
    """Point-in-time snapshot of a provider's rolling metrics."""
    name: str
    available: bool = True
    success_count: int = 0
    failure_count: int = 0
    total_latency: float = 0.0
    request_count: int = 0
    consecutive_failures: int = 0
    health_score: float = 0.0
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def success_rate(self) -> float:
        """Percentage of successful calls, 100 when nothing is recorded."""
        total = self.success_count + self.failure_count
        return (self.success_count / total) * 100 if total else 100.0

    @property
    def avg_latency(self) -> float:
        return self.total_latency / self.request_count if self.request_count else 0.0


@dataclass
class ProviderResult:
    """Output of a single provider call."""
    scores: Dict[str, ReviewScore] = field(default_factory=dict)
    artifact: AnalysisArtifact = field(default_factory=AnalysisArtifact)
    explanation: str = ""
    clamped_ids: List[str] = field(default_factory=list)
    cost: float = 0.0


@dataclass
class ChunkedResult:
    """Merged output of a chunked analysis over one provider."""
    provider: str
    scores: Dict[str, ReviewScore] = field(default_factory=dict)
    artifact: AnalysisArtifact = field(default_factory=AnalysisArtifact)
    missing_ids: List[str] = field(default_factory=list)
    failed_chunks: List[int] = field(default_factory=list)
    total_chunks: int = 0
    clamped_ids: List[str] = field(default_factory=list)
    integrity_violations: List[str] = field(default_factory=list)
    explanations: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    cost: float = 0.0

    @property
    def succeeded_chunks(self) -> int:
        return self.total_chunks - len(self.failed_chunks)

    @property
    def is_total_failure(self) -> bool:
        return self.total_chunks > 0 and self.succeeded_chunks == 0

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_chunks) and not self.is_total_failure

    @property
    def failure_rate(self) -> float:
        return len(self.failed_chunks) / self.total_chunks if self.total_chunks else 0.0


@dataclass
class ReconciledMetrics:
    """Aggregate metrics derived from a review set and its scores."""
    total_reviews: int
    fake_count: int
    fake_percentage: float
    grade: str
    amazon_rating: float
    adjusted_rating: float
    explanation: str
