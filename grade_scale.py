"""Letter-grade scale, display colours and rounding helpers shared by the analysis."""

from __future__ import annotations

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple

import numpy as np

GRADE_POINT_MAP: Dict[str, int] = {
    "O": 10,
    "A+": 9,
    "A": 8,
    "B+": 7,
    "B": 6,
    "C": 5,
    "P": 4,
    "U": 0,
}

# Best grade first
GRADE_ORDER: Tuple[str, ...] = tuple(GRADE_POINT_MAP)

FAIL_GRADE = "U"

GRADE_COLORS: Dict[str, str] = {
    "O": "#10b981",
    "A+": "#34d399",
    "A": "#6ee7b7",
    "B+": "#facc15",
    "B": "#fbbf24",
    "C": "#f97316",
    "P": "#ef4444",
    "U": "#dc2626",
}

DEFAULT_GRADE_COLOR = "#9ca3af"

PASS_FAIL_COLORS: Dict[str, str] = {
    "pass": "#22c55e",
    "fail": "#ef4444",
}


def normalize_grade_token(value) -> str:
    """Return an upper-cased, whitespace-free grade token."""

    if value is None:
        return ""
    if isinstance(value, float) and np.isnan(value):
        return ""
    token = str(value).strip().upper()
    token = re.sub(r"\s+", "", token)
    return token


def is_valid_grade(grade: str) -> bool:
    return grade in GRADE_POINT_MAP


def grade_to_points(grade: str) -> Optional[int]:
    """Return the grade point for *grade*, or ``None`` when it is not on the scale."""

    return GRADE_POINT_MAP.get(grade)


def is_pass_grade(grade: str) -> bool:
    return is_valid_grade(grade) and grade != FAIL_GRADE


def grade_color(grade: str) -> str:
    return GRADE_COLORS.get(grade, DEFAULT_GRADE_COLOR)


def round_half_up(value: float, places: int = 2) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round2(value: float) -> float:
    return round_half_up(value, 2)


def percentage(part: float, whole: float, places: int = 2) -> float:
    if not whole:
        return 0.0
    return round_half_up(part / whole * 100, places)
