"""Utilities for bucketing students into result classifications."""

from __future__ import annotations

from typing import Dict, Iterable

import pandas as pd

from grade_scale import FAIL_GRADE, GRADE_POINT_MAP, percentage

DISTINCTION = "Distinction"
FIRST_CLASS = "First Class"
FIRST_CLASS_WITH_ARREAR = "First Class With Arrear"
SECOND_CLASS = "Second Class"
SECOND_CLASS_WITH_ARREAR = "Second Class With Arrear"
FAIL = "Fail"

CATEGORY_ORDER: Iterable[str] = (
    DISTINCTION,
    FIRST_CLASS,
    FIRST_CLASS_WITH_ARREAR,
    SECOND_CLASS,
    SECOND_CLASS_WITH_ARREAR,
    FAIL,
)

DISTINCTION_MIN = 8.5
FIRST_CLASS_MIN = 6.5
SECOND_CLASS_WITH_ARREAR_MIN = 5.0


def classify_student(gpa: float, has_arrears: bool) -> str:
    if has_arrears:
        if gpa >= FIRST_CLASS_MIN:
            return FIRST_CLASS_WITH_ARREAR
        if gpa >= SECOND_CLASS_WITH_ARREAR_MIN:
            return SECOND_CLASS_WITH_ARREAR
        return FAIL
    if gpa >= DISTINCTION_MIN:
        return DISTINCTION
    if gpa >= FIRST_CLASS_MIN:
        return FIRST_CLASS
    return SECOND_CLASS


def grade_pass_percentage(records: pd.DataFrame) -> float:
    """Share of valid grades in *records* that are not a fail, as a percentage."""

    if records.empty:
        return 0.0
    valid = records["grade"].isin(list(GRADE_POINT_MAP))
    passed = valid & (records["grade"] != FAIL_GRADE)
    return percentage(int(passed.sum()), int(valid.sum()))


def _aggregate_counts(categories: pd.Series) -> Dict[str, int]:
    counts = categories.value_counts()
    return {label: int(counts.get(label, 0)) for label in CATEGORY_ORDER}


def build_classification_summary(students: pd.DataFrame, records: pd.DataFrame) -> Dict[str, object]:
    """Count students per classification for one scope.

    *students* needs ``gpa`` and ``has_arrears`` columns, one row per student.
    *records* are the grade records of the same scope and feed the pass
    percentage and the fail-grade count.
    """

    if students is None or students.empty:
        categories = pd.Series(dtype=object)
    else:
        categories = pd.Series(
            [classify_student(float(g), bool(a)) for g, a in zip(students["gpa"], students["has_arrears"])],
            dtype=object,
        )

    summary: Dict[str, object] = _aggregate_counts(categories)
    summary["total_students"] = int(len(categories))
    summary["fail_grade_count"] = int((records["grade"] == FAIL_GRADE).sum()) if not records.empty else 0
    summary["pass_percentage"] = grade_pass_percentage(records)
    return summary


def classification_table(summary: Dict[str, object]) -> pd.DataFrame:
    """Return the classification summary as a two-column table."""

    columns = ["Category", "Students"]

    if not summary:
        return pd.DataFrame(columns=columns)

    rows = [{"Category": label, "Students": summary.get(label, 0)} for label in CATEGORY_ORDER]
    rows.append({"Category": "Total Students", "Students": summary.get("total_students", 0)})
    rows.append({"Category": "% of pass", "Students": summary.get("pass_percentage", 0.0)})
    return pd.DataFrame(rows, columns=columns, dtype=object)
