"""Assemble the full result analysis from credited student-grade records.

``analyze_results`` is a pure function: it never mutates its input and the
same records and options always produce an equal result dict.

Scopes used throughout:

* the *current semester* file is the uploaded file whose semester label
  parses to the highest number (first file wins ties);
* SGPA figures, subject performance and the current classification use the
  current-semester records, without arrear subjects when
  ``exclude_arrears_from_sgpa`` is set;
* CGPA and the cumulative classification use every record of every file.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

import pandas as pd

from class_performance import FIRST_CLASS_MIN, build_classification_summary
from credit_assignment import restrict_to_subjects
from gpa_calculator import (
    compute_student_gpas,
    group_by_file,
    students_with_arrears,
    subjects_with_arrears,
)
from grade_scale import (
    FAIL_GRADE,
    GRADE_ORDER,
    GRADE_POINT_MAP,
    PASS_FAIL_COLORS,
    grade_color,
    percentage,
    round2,
)

NEEDS_IMPROVEMENT_BELOW = FIRST_CLASS_MIN


@dataclass(frozen=True)
class AnalysisOptions:
    exclude_arrears_from_sgpa: bool = True
    top_performer_count: int = 6
    cgpa_topper_count: int = 10

    @classmethod
    def from_config(cls, cfg: Dict) -> "AnalysisOptions":
        defaults = cls()
        return cls(
            exclude_arrears_from_sgpa=bool(
                cfg.get("exclude_arrears_from_sgpa", defaults.exclude_arrears_from_sgpa)
            ),
            top_performer_count=int(cfg.get("top_performer_count", defaults.top_performer_count)),
            cgpa_topper_count=int(cfg.get("cgpa_topper_count", defaults.cgpa_topper_count)),
        )


def first_non_empty(values: Iterable) -> str:
    """Return the first non-null / non-empty string from *values*."""

    for value in values:
        if pd.isna(value):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def parse_semester_number(label) -> Optional[int]:
    """Read the leading integer of a semester label (``"3.0"`` -> 3, ``"III"`` -> None)."""

    if label is None or (isinstance(label, float) and pd.isna(label)):
        return None
    m = re.match(r"\s*([+-]?\d+)", str(label))
    return int(m.group(1)) if m else None


def resolve_current_semester_file(
    records: pd.DataFrame,
    file_groups: Optional[Dict[str, pd.DataFrame]] = None,
) -> Optional[str]:
    groups = file_groups if file_groups is not None else group_by_file(records)
    if not groups:
        return None

    current = next(iter(groups))
    highest: Optional[int] = None
    for name, group in groups.items():
        if group.empty:
            continue
        semester = parse_semester_number(group["semester"].iloc[0])
        if semester is not None and (highest is None or semester > highest):
            highest = semester
            current = name
    return current


def _arrear_mask(records: pd.DataFrame) -> pd.Series:
    if "is_arrear" not in records.columns:
        return pd.Series(False, index=records.index, dtype=bool)
    return records["is_arrear"].fillna(False).astype(bool)


def _valid_grades(records: pd.DataFrame) -> pd.DataFrame:
    return records[records["grade"].isin(list(GRADE_POINT_MAP))]


def _best_grade(grades: Iterable[str]) -> str:
    valid = [g for g in grades if g in GRADE_POINT_MAP]
    if not valid:
        return ""
    return min(valid, key=GRADE_ORDER.index)


def grade_counts(records: pd.DataFrame) -> List[Dict[str, object]]:
    counts = _valid_grades(records)["grade"].value_counts()
    return [
        {"grade": grade, "count": int(counts[grade]), "fill": grade_color(grade)}
        for grade in GRADE_ORDER
        if grade in counts.index
    ]


def compute_pass_fail(records: pd.DataFrame) -> List[Dict[str, object]]:
    valid = _valid_grades(records)
    failed = int((valid["grade"] == FAIL_GRADE).sum())
    passed = len(valid) - failed
    return [
        {"name": "Pass", "value": percentage(passed, len(valid)), "fill": PASS_FAIL_COLORS["pass"]},
        {"name": "Fail", "value": percentage(failed, len(valid)), "fill": PASS_FAIL_COLORS["fail"]},
    ]


def compute_subject_performance(records: pd.DataFrame) -> List[Dict[str, object]]:
    """Per-subject pass/fail figures and the highest grade, in first-appearance order."""

    rows: List[Dict[str, object]] = []
    if records.empty:
        return rows

    for code, group in records.groupby("subject_code", sort=False):
        valid = _valid_grades(group)
        if valid.empty:
            continue
        total = len(valid)
        failed = int((valid["grade"] == FAIL_GRADE).sum())
        passed = total - failed
        highest = _best_grade(valid["grade"])
        rows.append({
            "subject_code": code,
            "subject_name": first_non_empty(group.get("subject_name", [])),
            "faculty_name": first_non_empty(group.get("faculty_name", [])),
            "total": total,
            "passed": passed,
            "failed": failed,
            "pass_percentage": percentage(passed, total),
            "fail_percentage": percentage(failed, total),
            "highest_grade": highest,
            "highest_grade_count": int((valid["grade"] == highest).sum()),
        })
    return rows


def compute_subject_grade_distribution(records: pd.DataFrame) -> Dict[str, List[Dict[str, object]]]:
    if records.empty:
        return {}
    return {
        code: grade_counts(group)
        for code, group in records.groupby("subject_code", sort=False)
    }


def compute_file_wise_analysis(file_groups: Dict[str, pd.DataFrame]) -> Dict[str, Dict[str, object]]:
    analysis: Dict[str, Dict[str, object]] = {}
    for name, group in file_groups.items():
        gpas = compute_student_gpas(group)
        students = len(gpas)
        analysis[name] = {
            "average_sgpa": round2(sum(gpas["gpa"]) / students) if students else 0.0,
            "students": students,
            "records": int(len(group)),
            "semester": first_non_empty(group["semester"]),
        }
    return analysis


def rank_students(details: List[Dict[str, object]], key: str) -> List[Dict[str, object]]:
    """Stable descending sort on *key*; equal values keep their incoming order."""

    return sorted(details, key=lambda item: item[key], reverse=True)


def _summary_stats(values: List[float]) -> Dict[str, float]:
    if not values:
        return {"average": 0.0, "highest": 0.0, "lowest": 0.0}
    return {
        "average": round2(sum(values) / len(values)),
        "highest": round2(max(values)),
        "lowest": round2(min(values)),
    }


def compute_cgpa_analysis(
    records: pd.DataFrame,
    topper_count: int,
) -> Dict[str, object]:
    """CGPA per student as one weighted average across every file."""

    cgpas = compute_student_gpas(records)
    arrears = students_with_arrears(records)
    details = [
        {"register_no": reg, "cgpa": float(cgpa), "has_arrears": reg in arrears}
        for reg, cgpa in zip(cgpas["register_no"], cgpas["gpa"])
    ]
    ranked = rank_students(details, "cgpa")
    stats = _summary_stats([d["cgpa"] for d in details])
    return {
        "student_cgpas": ranked,
        "average_cgpa": stats["average"],
        "highest_cgpa": stats["highest"],
        "lowest_cgpa": stats["lowest"],
        "toppers": ranked[:topper_count],
    }


def analyze_results(
    records: pd.DataFrame,
    options: Optional[AnalysisOptions] = None,
    assigned_subjects: Optional[Iterable[str]] = None,
) -> Dict[str, object]:
    options = options or AnalysisOptions()
    if assigned_subjects:
        records = restrict_to_subjects(records, assigned_subjects)

    file_groups = group_by_file(records)
    files_processed = list(file_groups)
    current_file = resolve_current_semester_file(records, file_groups)

    if current_file is not None:
        current_records = file_groups[current_file]
    else:
        current_records = records.iloc[0:0]
    arrear_mask = _arrear_mask(current_records)
    if options.exclude_arrears_from_sgpa:
        scoped = current_records[~arrear_mask]
    else:
        scoped = current_records

    # Current-semester SGPA per student, register-number order
    scoped_ids = scoped["register_no"].drop_duplicates().tolist()
    sgpas = compute_student_gpas(scoped, scoped_ids)
    current_arrears = students_with_arrears(current_records)
    student_sgpa_details = [
        {"register_no": reg, "sgpa": float(sgpa), "has_arrears": reg in current_arrears}
        for reg, sgpa in zip(sgpas["register_no"], sgpas["gpa"])
    ]
    sgpa_stats = _summary_stats([d["sgpa"] for d in student_sgpa_details])

    ranked_students = rank_students(student_sgpa_details, "sgpa")
    top_performers = []
    for student in ranked_students[: options.top_performer_count]:
        grades = records.loc[records["register_no"] == student["register_no"], "grade"]
        top_performers.append({
            "register_no": student["register_no"],
            "sgpa": student["sgpa"],
            "best_grade": _best_grade(grades),
        })

    needs_improvement = [
        {
            "register_no": student["register_no"],
            "sgpa": student["sgpa"],
            "arrear_subjects": subjects_with_arrears(records, student["register_no"]),
        }
        for student in student_sgpa_details
        if student["sgpa"] < NEEDS_IMPROVEMENT_BELOW or student["has_arrears"]
    ]

    current_classification = build_classification_summary(
        pd.DataFrame(student_sgpa_details, columns=["register_no", "sgpa", "has_arrears"]).rename(
            columns={"sgpa": "gpa"}
        ),
        scoped,
    )

    cgpa_analysis = None
    if len(files_processed) > 1:
        cgpa_analysis = compute_cgpa_analysis(records, options.cgpa_topper_count)
        cumulative_students = pd.DataFrame(
            cgpa_analysis["student_cgpas"], columns=["register_no", "cgpa", "has_arrears"]
        ).rename(columns={"cgpa": "gpa"})
        cumulative_classification = build_classification_summary(cumulative_students, records)
    else:
        cumulative_classification = dict(current_classification)

    current_semester = ""
    if current_file is not None:
        current_semester = first_non_empty(current_records["semester"])

    return {
        "total_students": int(records["register_no"].nunique()) if not records.empty else 0,
        "average_sgpa": sgpa_stats["average"],
        "highest_sgpa": sgpa_stats["highest"],
        "lowest_sgpa": sgpa_stats["lowest"],
        "grade_distribution": grade_counts(records),
        "total_grades": int(len(_valid_grades(records))),
        "pass_fail": compute_pass_fail(records),
        "subject_performance": compute_subject_performance(scoped),
        "subject_grade_distribution": compute_subject_grade_distribution(scoped),
        "student_sgpa_details": student_sgpa_details,
        "ranked_students": ranked_students,
        "top_performers": top_performers,
        "needs_improvement": needs_improvement,
        "file_count": len(files_processed),
        "files_processed": files_processed,
        "file_wise_analysis": compute_file_wise_analysis(file_groups),
        "current_semester_file": current_file,
        "current_semester": current_semester,
        "cgpa_analysis": cgpa_analysis,
        "current_classification": current_classification,
        "cumulative_classification": cumulative_classification,
        "arrear_subjects": current_records.loc[arrear_mask, "subject_code"].drop_duplicates().tolist(),
        "options": asdict(options),
    }
