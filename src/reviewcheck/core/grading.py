"""Letter grades from fake percentage. Every grade in the package comes from here."""

from typing import Dict, Tuple

from .constants import GradeConstants

# Higher rank is a better grade
_GRADE_RANKS = {"A": 5, "B": 4, "C": 3, "D": 2, "F": 1, "U": 0}


def grade_from_percentage(fake_percentage: float) -> str:
    """Map a fake percentage onto the ordered threshold table."""
    for upper, grade in GradeConstants.THRESHOLDS:
        if fake_percentage <= upper:
            return grade
    return GradeConstants.FAILING_GRADE


def grade_rank(grade: str) -> int:
    """Rank a grade so that a better grade compares greater."""
    try:
        return _GRADE_RANKS[grade]
    except KeyError:
        raise ValueError(f"Unknown grade: {grade!r}")


def grade_thresholds() -> Dict[str, Tuple[float, float]]:
    """Inclusive fake-percentage range per grade, for display."""
    ranges = {}
    lower = 0.0
    for upper, grade in GradeConstants.THRESHOLDS:
        ranges[grade] = (lower, upper)
        lower = upper
    ranges[GradeConstants.FAILING_GRADE] = (lower, 100.0)
    return ranges


def grade_description(grade: str) -> str:
    return GradeConstants.DESCRIPTIONS.get(grade, "Unknown grade")
