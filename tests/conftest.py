import pandas as pd
import pytest

from result_analysis import analyze_results

RECORD_FIELDS = [
    "register_no",
    "subject_code",
    "grade",
    "semester",
    "department_code",
    "source_file",
    "credit",
    "subject_name",
    "faculty_name",
    "is_arrear",
]


def _build(rows, source_file="sem1.xlsx", semester="1"):
    data = []
    for row in rows:
        reg, code, grade, credit = row[:4]
        is_arrear = row[4] if len(row) > 4 else False
        data.append({
            "register_no": reg,
            "subject_code": code,
            "grade": grade,
            "semester": semester,
            "department_code": "",
            "source_file": source_file,
            "credit": float(credit) if credit is not None else float("nan"),
            "subject_name": f"{code} name",
            "faculty_name": "",
            "is_arrear": is_arrear,
        })
    return pd.DataFrame(data, columns=RECORD_FIELDS)


@pytest.fixture
def make_records():
    """Factory: rows of (register_no, subject_code, grade, credit[, is_arrear])."""

    return _build


@pytest.fixture
def single_file_records():
    return _build([
        ("731121104001", "CS101", "O", 3),
        ("731121104002", "CS101", "A", 3),
        ("731121104003", "CS101", "U", 3),
    ])


@pytest.fixture
def multi_file_records():
    sem1 = _build(
        [
            ("731121104001", "MA101", "O", 4),
            ("731121104001", "PH101", "A+", 3),
            ("731121104002", "MA101", "B", 4),
            ("731121104002", "PH101", "U", 3),
            ("731121104003", "MA101", "A", 4),
            ("731121104003", "PH101", "B+", 3),
        ],
        source_file="sem1.xlsx",
        semester="1",
    )
    sem2 = _build(
        [
            ("731121104001", "CS201", "A+", 4),
            ("731121104001", "CS202", "O", 3),
            ("731121104002", "CS201", "C", 4),
            ("731121104002", "CS202", "B", 3),
            ("731121104002", "PH101", "P", 3, True),
            ("731121104003", "CS201", "O", 4),
            ("731121104003", "CS202", "A", 3),
        ],
        source_file="sem2.xlsx",
        semester="2",
    )
    return pd.concat([sem1, sem2], ignore_index=True)


@pytest.fixture
def multi_file_analysis(multi_file_records):
    return analyze_results(multi_file_records)
