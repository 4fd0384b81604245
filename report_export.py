"""Shape a result analysis into report tables and write CSV / Excel / JSON files."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd

from analysis_logging import get_logger
from class_performance import CATEGORY_ORDER, FIRST_CLASS_MIN, classification_table
from grade_scale import percentage

logger = get_logger(__name__)

DEFAULT_COLLEGE_NAME = "K. S. Rangasamy College of Technology"

CSV_REPORT_NAME = "result-analysis-report.csv"
EXCEL_REPORT_NAME = "result-analysis-report.xlsx"
JSON_REPORT_NAME = "result-analysis.json"

EXPORT_RANK_COUNT = 10

SUBJECT_TABLE_HEADER = [
    "S.No",
    "Subject Code",
    "Subject Name",
    "Faculty Name",
    "Dept",
    "App",
    "Ab",
    "Fail",
    "WH",
    "Passed",
    "% of pass",
    "Highest Grade",
    "No. of students",
]


class ReportError(RuntimeError):
    """Raised when a report file cannot be produced."""


@dataclass
class ReportOptions:
    logo_image_path: Optional[str] = None
    department: str = "CSE"
    department_full_name: str = "Computer Science and Engineering"
    calculation_mode: str = "sgpa"
    college_name: str = DEFAULT_COLLEGE_NAME
    rank_count: int = 3

    @property
    def gpa_label(self) -> str:
        return "CGPA" if self.calculation_mode == "cgpa" else "SGPA"

    @property
    def mode_display(self) -> str:
        if self.calculation_mode == "cgpa":
            return "CGPA (Cumulative Grade Point Average)"
        return "SGPA (Semester Grade Point Average)"


def fmt2(value) -> str:
    return f"{float(value):.2f}"


def student_status(student: Dict[str, object]) -> str:
    if student["has_arrears"]:
        return "Has Arrears"
    if student["sgpa"] < FIRST_CLASS_MIN:
        return "SGPA below 6.5"
    return "Good Standing"


def is_multi_file(analysis: Dict[str, object]) -> bool:
    return analysis.get("file_count", 0) > 1 and analysis.get("cgpa_analysis") is not None


# ------------------------
# Table builders shared by every report format
# ------------------------

def college_info_rows(analysis: Dict[str, object], options: ReportOptions) -> List[List[str]]:
    rows = [
        ["College Name", options.college_name],
        ["Department", options.department_full_name],
        ["Total Students", str(analysis["total_students"])],
    ]
    if options.calculation_mode == "cgpa" and analysis.get("file_count", 0) > 0:
        rows.append(["Files Processed", str(analysis["file_count"])])
    rows.append(["Calculation Mode", options.mode_display])
    return rows


def performance_summary_rows(analysis: Dict[str, object]) -> List[List[str]]:
    rows = [
        ["Average SGPA", fmt2(analysis["average_sgpa"])],
        ["Highest SGPA", fmt2(analysis["highest_sgpa"])],
        ["Lowest SGPA", fmt2(analysis["lowest_sgpa"])],
        ["Pass Percentage", fmt2(analysis["current_classification"]["pass_percentage"]) + "%"],
    ]
    if is_multi_file(analysis):
        cgpa = analysis["cgpa_analysis"]
        rows.extend([
            ["Average CGPA", fmt2(cgpa["average_cgpa"])],
            ["Highest CGPA", fmt2(cgpa["highest_cgpa"])],
            ["Lowest CGPA", fmt2(cgpa["lowest_cgpa"])],
            ["Cumulative Pass Percentage", fmt2(analysis["cumulative_classification"]["pass_percentage"]) + "%"],
        ])
    return rows


def arrear_note(analysis: Dict[str, object]) -> str:
    subjects = analysis.get("arrear_subjects") or []
    if not subjects or not analysis["options"].get("exclude_arrears_from_sgpa", True):
        return ""
    return (
        "The following subjects were marked as Arrear and excluded from SGPA calculations: "
        + ", ".join(subjects)
    )


def file_analysis_rows(analysis: Dict[str, object]) -> List[List[str]]:
    rows = []
    for name, info in analysis.get("file_wise_analysis", {}).items():
        note = "Current semester" if name == analysis.get("current_semester_file") else ""
        rows.append([name, str(info["students"]), fmt2(info["average_sgpa"]), info["semester"], note])
    return rows


def subject_table_rows(analysis: Dict[str, object], department: str) -> List[List[object]]:
    """Rows of the end-semester result analysis table (current semester subjects)."""

    rows = []
    for idx, subject in enumerate(analysis["subject_performance"], start=1):
        rows.append([
            idx,
            subject["subject_code"],
            subject["subject_name"],
            subject["faculty_name"],
            department,
            subject["total"],
            "Nil",
            subject["failed"] or "Nil",
            "Nil",
            subject["passed"],
            f"{percentage(subject['passed'], subject['total'], 1):.1f}",
            subject["highest_grade"],
            subject["highest_grade_count"],
        ])
    return rows


def classification_rows(analysis: Dict[str, object]) -> List[List[object]]:
    """One row per category with current and cumulative counts."""

    current = analysis["current_classification"]
    cumulative = analysis["cumulative_classification"]
    rows: List[List[object]] = [
        [label, current[label], cumulative[label]] for label in CATEGORY_ORDER
    ]
    rows.append(["% of pass", fmt2(current["pass_percentage"]), fmt2(cumulative["pass_percentage"])])
    return rows


def rank_rows(analysis: Dict[str, object], count: int = 3) -> List[List[str]]:
    """Side-by-side rank rows: this semester (SGPA) and up to this semester."""

    current = analysis["ranked_students"][:count]
    if is_multi_file(analysis):
        cumulative = [
            {"register_no": s["register_no"], "value": s["cgpa"]}
            for s in analysis["cgpa_analysis"]["student_cgpas"][:count]
        ]
    else:
        cumulative = [{"register_no": s["register_no"], "value": s["sgpa"]} for s in current]

    rows = []
    for i in range(count):
        sem = current[i] if i < len(current) else None
        cum = cumulative[i] if i < len(cumulative) else None
        rows.append([
            str(i + 1),
            sem["register_no"] if sem else "",
            fmt2(sem["sgpa"]) if sem else "",
            str(i + 1),
            cum["register_no"] if cum else "",
            fmt2(cum["value"]) if cum else "",
        ])
    return rows


# ------------------------
# Writers
# ------------------------

def write_csv_report(analysis: Dict[str, object], destination: str) -> str:
    rows = [
        {
            "Registration Number": student["register_no"],
            "SGPA": fmt2(student["sgpa"]),
            "Status": student_status(student),
        }
        for student in analysis["student_sgpa_details"]
    ]
    df = pd.DataFrame(rows, columns=["Registration Number", "SGPA", "Status"])
    os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
    df.to_csv(destination, index=False)
    return destination


def student_details_frame(analysis: Dict[str, object]) -> pd.DataFrame:
    """Student SGPA details in the column layout read back by the summary CLI."""

    rows = [
        {
            "register_no": s["register_no"],
            "sgpa": fmt2(s["sgpa"]),
            "has_arrears": int(bool(s["has_arrears"])),
            "status": student_status(s),
        }
        for s in analysis["student_sgpa_details"]
    ]
    return pd.DataFrame(rows, columns=["register_no", "sgpa", "has_arrears", "status"])


def _excel_sheets(
    analysis: Dict[str, object],
    records: pd.DataFrame,
    options: ReportOptions,
) -> Dict[str, pd.DataFrame]:
    sheets: Dict[str, pd.DataFrame] = {}

    sheets["College Information"] = pd.DataFrame(
        college_info_rows(analysis, options), columns=["Field", "Value"]
    )

    performance = performance_summary_rows(analysis)
    if is_multi_file(analysis):
        performance.append(["Number of Files Processed", str(analysis["file_count"])])
        for name, info in analysis["file_wise_analysis"].items():
            performance.append([f"{name} Average SGPA", fmt2(info["average_sgpa"])])
            performance.append([f"{name} Students", str(info["students"])])
            if info["semester"]:
                performance.append([f"{name} Semester", info["semester"]])
    sheets["Performance Summary"] = pd.DataFrame(performance, columns=["Metric", "Value"])

    sheets["End Semester Result Analysis"] = pd.DataFrame(
        subject_table_rows(analysis, options.department), columns=SUBJECT_TABLE_HEADER
    )

    total_grades = analysis["total_grades"]
    sheets["Grade Distribution"] = pd.DataFrame(
        [
            [g["grade"], g["count"], fmt2(percentage(g["count"], total_grades)) + "%"]
            for g in analysis["grade_distribution"]
        ],
        columns=["Grade", "Count", "Percentage"],
    )

    sheets["Rank in this semester"] = pd.DataFrame(
        [
            [i, s["register_no"], fmt2(s["sgpa"])]
            for i, s in enumerate(analysis["ranked_students"][:EXPORT_RANK_COUNT], start=1)
        ],
        columns=["S.No", "Name of the student", "SGPA"],
    )
    if is_multi_file(analysis):
        sheets["Rank up to this semester"] = pd.DataFrame(
            [
                [i, s["register_no"], fmt2(s["cgpa"])]
                for i, s in enumerate(analysis["cgpa_analysis"]["toppers"][:EXPORT_RANK_COUNT], start=1)
            ],
            columns=["S.No", "Name of the student", "CGPA"],
        )

    sheets["Classification"] = pd.DataFrame(
        classification_rows(analysis), columns=["Category", "Current semester", "Up to this semester"]
    )

    details = student_details_frame(analysis)
    sheets["Student SGPA Details"] = details.rename(
        columns={"register_no": "Registration Number", "sgpa": "SGPA", "status": "Status"}
    )[["Registration Number", "SGPA", "Status"]]

    if is_multi_file(analysis):
        sheets["Student CGPA Details"] = pd.DataFrame(
            [[s["register_no"], fmt2(s["cgpa"])] for s in analysis["cgpa_analysis"]["student_cgpas"]],
            columns=["Registration Number", "CGPA"],
        )
        file_rows = []
        for name in analysis["files_processed"]:
            file_records = records[records["source_file"] == name]
            semester = file_records["semester"].iloc[0] if not file_records.empty else "Unknown"
            file_rows.append([name, int(len(file_records)), semester or "Unknown"])
        sheets["File Details"] = pd.DataFrame(file_rows, columns=["File Name", "Record Count", "Semester"])

    return sheets


def write_excel_report(
    analysis: Dict[str, object],
    records: pd.DataFrame,
    options: ReportOptions,
    destination: str,
) -> str:
    sheets = _excel_sheets(analysis, records, options)
    os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
    with pd.ExcelWriter(destination, engine="openpyxl") as w:
        for name, frame in sheets.items():
            frame.to_excel(w, index=False, sheet_name=name)
            worksheet = w.sheets[name]
            for column_cells in worksheet.columns:
                worksheet.column_dimensions[column_cells[0].column_letter].width = 20
    return destination


def write_json_report(analysis: Dict[str, object], destination: str) -> str:
    os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
    with open(destination, "w", encoding="utf-8") as f:
        json.dump(analysis, f, indent=2)
    return destination


def write_classification_summary(summary: Dict[str, object], destination: str) -> str:
    table = classification_table(summary)
    os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
    suffix = os.path.splitext(destination)[1].lower()
    if suffix in {".xlsx", ".xlsm"}:
        table.to_excel(destination, index=False, engine="openpyxl")
    else:
        table.to_csv(destination, index=False)
    return destination


def remove_partial(destination: str) -> None:
    if os.path.exists(destination):
        logger.info("Removing incomplete report %s", destination)
        os.remove(destination)
