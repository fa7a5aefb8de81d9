"""Core modules for ReviewCheck."""

from .models import *
from .config import settings, AnalysisConfig
from .dedup import dedupe, reconcile, reconcile_against_total
from .grading import grade_from_percentage, grade_rank
from .metrics import MetricsReconciler
from .normalizer import normalize

__all__ = [
    "settings",
    "AnalysisConfig",
    "Review",
    "ReviewScore",
    "ScoreLabel",
    "AnalysisArtifact",
    "FakeExample",
    "ProductRecord",
    "ProviderHealth",
    "AnalysisStatus",
    "MetricsReconciler",
    "normalize",
    "dedupe",
    "reconcile",
    "reconcile_against_total",
    "grade_from_percentage",
    "grade_rank",
]
