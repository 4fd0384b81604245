"""Credit-weighted SGPA / CGPA computation over student-grade records."""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd

from grade_scale import FAIL_GRADE, GRADE_POINT_MAP, round2

GPA_COLUMNS = ["register_no", "total_points", "total_credits", "gpa"]


def credited_records(records: pd.DataFrame) -> pd.DataFrame:
    """Return rows with a valid grade and a positive credit, plus their grade points."""

    if records.empty or "credit" not in records.columns:
        return records.iloc[0:0].assign(
            credit=pd.Series(dtype=float), grade_point=pd.Series(dtype=float)
        )

    credit = pd.to_numeric(records["credit"], errors="coerce")
    mask = records["grade"].isin(list(GRADE_POINT_MAP)) & credit.notna() & (credit > 0)
    working = records.loc[mask].copy()
    working["credit"] = credit[mask].astype(float)
    working["grade_point"] = working["grade"].map(GRADE_POINT_MAP).astype(float)
    return working


def _weighted_average(total_points: float, total_credits: float) -> float:
    if total_credits == 0:
        return 0.0
    return round2(total_points / total_credits)


def _student_totals(records: pd.DataFrame, student_id: str) -> tuple:
    credited = credited_records(records[records["register_no"] == student_id])
    total_points = float((credited["grade_point"] * credited["credit"]).sum())
    total_credits = float(credited["credit"].sum())
    return total_points, total_credits


def calculate_sgpa(records: pd.DataFrame, student_id: str) -> float:
    return _weighted_average(*_student_totals(records, student_id))


def group_by_file(records: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Split *records* per source file, keeping upload order."""

    groups: Dict[str, pd.DataFrame] = {}
    if records.empty:
        return groups
    for source in records["source_file"].drop_duplicates().tolist():
        groups[source] = records[records["source_file"] == source]
    return groups


def calculate_cgpa(
    records: pd.DataFrame,
    student_id: str,
    file_groups: Optional[Dict[str, pd.DataFrame]] = None,
) -> float:
    """One credit-weighted average over every semester file, not a mean of SGPAs."""

    groups = file_groups if file_groups is not None else group_by_file(records)
    if len(groups) <= 1:
        return calculate_sgpa(records, student_id)

    total_points = 0.0
    total_credits = 0.0
    for semester_records in groups.values():
        points, credits = _student_totals(semester_records, student_id)
        total_points += points
        total_credits += credits
    return _weighted_average(total_points, total_credits)


def compute_student_gpas(records: pd.DataFrame, student_ids: Optional[List[str]] = None) -> pd.DataFrame:
    """Return per-student weighted totals and GPA, sorted by register number.

    Students listed in *student_ids* (default: everyone in *records*) without
    any credited record get a GPA of 0.
    """

    if student_ids is None:
        student_ids = records["register_no"].drop_duplicates().tolist() if not records.empty else []
    if not student_ids:
        return pd.DataFrame(columns=GPA_COLUMNS)

    credited = credited_records(records)
    credited = credited.assign(weighted=credited["grade_point"] * credited["credit"])
    totals = (
        credited.groupby("register_no")
        .agg(total_points=("weighted", "sum"), total_credits=("credit", "sum"))
        .reindex(sorted(student_ids), fill_value=0.0)
    )
    totals.index.name = "register_no"
    totals = totals.reset_index()
    totals["total_points"] = totals["total_points"].astype(float)
    totals["total_credits"] = totals["total_credits"].astype(float)
    totals["gpa"] = [
        _weighted_average(points, credits)
        for points, credits in zip(totals["total_points"], totals["total_credits"])
    ]
    return totals[GPA_COLUMNS]


def has_arrears(records: pd.DataFrame, student_id: str) -> bool:
    student = records[records["register_no"] == student_id]
    return bool((student["grade"] == FAIL_GRADE).any())


def students_with_arrears(records: pd.DataFrame) -> set:
    if records.empty:
        return set()
    return set(records.loc[records["grade"] == FAIL_GRADE, "register_no"])


def subjects_with_arrears(records: pd.DataFrame, student_id: str) -> str:
    failed = records[(records["register_no"] == student_id) & (records["grade"] == FAIL_GRADE)]
    return ", ".join(failed["subject_code"].drop_duplicates().tolist())
