import math

import pytest

from grade_scale import (
    DEFAULT_GRADE_COLOR,
    GRADE_ORDER,
    grade_color,
    grade_to_points,
    is_pass_grade,
    normalize_grade_token,
    percentage,
    round2,
    round_half_up,
)


@pytest.mark.parametrize(
    "grade,points",
    [("O", 10), ("A+", 9), ("A", 8), ("B+", 7), ("B", 6), ("C", 5), ("P", 4), ("U", 0)],
)
def test_grade_points(grade, points):
    assert grade_to_points(grade) == points


def test_unknown_grade_has_no_points():
    assert grade_to_points("AB") is None
    assert grade_to_points("") is None
    assert not is_pass_grade("WH")
    assert not is_pass_grade("U")
    assert is_pass_grade("P")


def test_normalize_grade_token():
    assert normalize_grade_token(" a + ") == "A+"
    assert normalize_grade_token("b+\t") == "B+"
    assert normalize_grade_token(None) == ""
    assert normalize_grade_token(math.nan) == ""


def test_grade_order_is_best_first():
    assert GRADE_ORDER == ("O", "A+", "A", "B+", "B", "C", "P", "U")


def test_grade_colors():
    assert grade_color("O") == "#10b981"
    assert grade_color("U") == "#dc2626"
    assert grade_color("XYZ") == DEFAULT_GRADE_COLOR


def test_rounding_is_half_up():
    assert round2(2.675) == 2.68
    assert round2(7.125) == 7.13
    assert round_half_up(0.5, 0) == 1.0
    assert round2(50 / 7) == 7.14


def test_percentage():
    assert percentage(2, 3) == 66.67
    assert percentage(1, 0) == 0.0
    assert percentage(3, 3) == 100.0
    assert percentage(1, 3, 1) == 33.3
