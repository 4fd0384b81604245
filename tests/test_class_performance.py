import pandas as pd
import pytest

from class_performance import (
    CATEGORY_ORDER,
    DISTINCTION,
    FAIL,
    FIRST_CLASS,
    FIRST_CLASS_WITH_ARREAR,
    SECOND_CLASS,
    SECOND_CLASS_WITH_ARREAR,
    build_classification_summary,
    classification_table,
    classify_student,
    grade_pass_percentage,
)


@pytest.mark.parametrize(
    "gpa,arrears,expected",
    [
        (10.0, False, DISTINCTION),
        (8.5, False, DISTINCTION),
        (8.49, False, FIRST_CLASS),
        (6.5, False, FIRST_CLASS),
        (6.49, False, SECOND_CLASS),
        (0.0, False, SECOND_CLASS),
        (9.8, True, FIRST_CLASS_WITH_ARREAR),
        (6.5, True, FIRST_CLASS_WITH_ARREAR),
        (6.49, True, SECOND_CLASS_WITH_ARREAR),
        (5.0, True, SECOND_CLASS_WITH_ARREAR),
        (4.99, True, FAIL),
        (0.0, True, FAIL),
    ],
)
def test_classify_student_boundaries(gpa, arrears, expected):
    assert classify_student(gpa, arrears) == expected


def test_buckets_are_exclusive_and_exhaustive():
    students = pd.DataFrame(
        {
            "gpa": [9.1, 7.0, 5.5, 7.2, 5.2, 3.0, 0.0, 8.5],
            "has_arrears": [False, False, False, True, True, True, True, False],
        }
    )
    records = pd.DataFrame({"grade": ["O", "U", "U", "U", "A", "U"]})

    summary = build_classification_summary(students, records)

    assert sum(summary[label] for label in CATEGORY_ORDER) == summary["total_students"] == 8
    assert summary[DISTINCTION] == 2
    assert summary[FAIL] == 2
    # U grades are reported separately from the Fail bucket
    assert summary["fail_grade_count"] == 4
    assert summary["pass_percentage"] == 33.33


def test_empty_scope():
    summary = build_classification_summary(
        pd.DataFrame(columns=["gpa", "has_arrears"]), pd.DataFrame(columns=["grade"])
    )
    assert summary["total_students"] == 0
    assert summary["pass_percentage"] == 0.0
    assert all(summary[label] == 0 for label in CATEGORY_ORDER)


def test_pass_percentage_ignores_invalid_grades():
    records = pd.DataFrame({"grade": ["O", "A", "U", "WH", "AB"]})
    assert grade_pass_percentage(records) == 66.67


def test_classification_table_layout():
    summary = build_classification_summary(
        pd.DataFrame({"gpa": [9.0], "has_arrears": [False]}), pd.DataFrame({"grade": ["O"]})
    )
    table = classification_table(summary)

    assert list(table.columns) == ["Category", "Students"]
    assert table["Category"].tolist() == list(CATEGORY_ORDER) + ["Total Students", "% of pass"]
    assert table["Students"].tolist()[0] == 1
    assert table["Students"].tolist()[-1] == 100.0
