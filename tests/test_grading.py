"""Tests for the grade table."""

import pytest

from reviewcheck.core.grading import grade_description, grade_from_percentage, grade_rank, grade_thresholds


@pytest.mark.parametrize("percentage,grade", [
    (0, "A"), (15, "A"), (15.1, "B"), (30, "B"), (30.1, "C"),
    (50, "C"), (50.1, "D"), (70, "D"), (70.1, "F"), (100, "F"),
])
def test_grade_from_percentage(percentage, grade):
    assert grade_from_percentage(percentage) == grade


def test_grade_monotonicity():
    """A lower fake percentage never yields a worse grade."""
    steps = [i / 10 for i in range(0, 1001)]
    ranks = [grade_rank(grade_from_percentage(p)) for p in steps]
    assert all(a >= b for a, b in zip(ranks, ranks[1:]))


def test_unanalyzable_grade_ranks_lowest():
    assert grade_rank("U") < grade_rank("F")


def test_unknown_grade_rank():
    with pytest.raises(ValueError):
        grade_rank("Z")


def test_thresholds_cover_full_range():
    ranges = grade_thresholds()
    assert ranges["A"][0] == 0.0
    assert ranges["F"][1] == 100.0
    assert set(ranges) == {"A", "B", "C", "D", "F"}


def test_grade_description():
    assert grade_description("A")
    assert grade_description("nope") == "Unknown grade"
