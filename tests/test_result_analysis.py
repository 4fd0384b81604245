import json

import pandas as pd
import pytest

from class_performance import (
    DISTINCTION,
    FAIL,
    FIRST_CLASS,
    FIRST_CLASS_WITH_ARREAR,
    SECOND_CLASS,
)
from result_analysis import (
    AnalysisOptions,
    analyze_results,
    parse_semester_number,
    rank_students,
    resolve_current_semester_file,
)


def test_single_subject_example(single_file_records):
    analysis = analyze_results(single_file_records)

    assert [s["sgpa"] for s in analysis["student_sgpa_details"]] == [10.0, 8.0, 0.0]
    assert analysis["average_sgpa"] == 6.0
    assert analysis["highest_sgpa"] == 10.0
    assert analysis["lowest_sgpa"] == 0.0
    current = analysis["current_classification"]
    assert current["pass_percentage"] == 66.67
    assert current[DISTINCTION] == 1
    assert current[FIRST_CLASS] == 1
    assert current[FAIL] == 1
    assert analysis["cgpa_analysis"] is None
    assert analysis["cumulative_classification"] == current


def test_arrear_subject_is_excluded_from_sgpa(make_records):
    records = make_records([
        ("731121104001", "CS201", "A", 4),
        ("731121104001", "PH101", "U", 3, True),
    ])

    analysis = analyze_results(records)

    student = analysis["student_sgpa_details"][0]
    assert student["sgpa"] == 8.0
    assert student["has_arrears"] is True
    assert analysis["current_classification"][FIRST_CLASS_WITH_ARREAR] == 1
    assert analysis["arrear_subjects"] == ["PH101"]
    assert [s["subject_code"] for s in analysis["subject_performance"]] == ["CS201"]

    included = analyze_results(records, AnalysisOptions(exclude_arrears_from_sgpa=False))
    # (8*4 + 0*3) / 7
    assert included["student_sgpa_details"][0]["sgpa"] == 4.57
    assert [s["subject_code"] for s in included["subject_performance"]] == ["CS201", "PH101"]


def test_analysis_is_pure(multi_file_records):
    before = multi_file_records.copy()
    first = analyze_results(multi_file_records)
    second = analyze_results(multi_file_records)

    assert first == second
    pd.testing.assert_frame_equal(multi_file_records, before)
    json.dumps(first)


def test_multi_file_analysis(multi_file_analysis):
    analysis = multi_file_analysis

    assert analysis["total_students"] == 3
    assert analysis["file_count"] == 2
    assert analysis["files_processed"] == ["sem1.xlsx", "sem2.xlsx"]
    assert analysis["current_semester_file"] == "sem2.xlsx"
    assert analysis["current_semester"] == "2"
    assert [s["sgpa"] for s in analysis["student_sgpa_details"]] == [9.43, 5.43, 9.14]

    cgpa = analysis["cgpa_analysis"]
    assert [(s["register_no"], s["cgpa"]) for s in cgpa["student_cgpas"]] == [
        ("731121104001", 9.5),
        ("731121104003", 8.36),
        ("731121104002", 4.35),
    ]
    assert cgpa["highest_cgpa"] == 9.5
    assert cgpa["lowest_cgpa"] == 4.35

    current = analysis["current_classification"]
    assert current[DISTINCTION] == 2
    assert current[SECOND_CLASS] == 1
    cumulative = analysis["cumulative_classification"]
    assert cumulative[DISTINCTION] == 1
    assert cumulative[FIRST_CLASS] == 1
    assert cumulative[FAIL] == 1
    assert cumulative["fail_grade_count"] == 1

    assert analysis["file_wise_analysis"]["sem1.xlsx"]["students"] == 3
    assert analysis["file_wise_analysis"]["sem2.xlsx"]["records"] == 7


def test_grade_distribution_and_pass_fail(multi_file_analysis):
    distribution = multi_file_analysis["grade_distribution"]
    assert [g["grade"] for g in distribution] == ["O", "A+", "A", "B+", "B", "C", "P", "U"]
    assert distribution[0]["count"] == 3
    assert distribution[0]["fill"] == "#10b981"
    assert multi_file_analysis["total_grades"] == 13
    assert [p["value"] for p in multi_file_analysis["pass_fail"]] == [92.31, 7.69]


def test_subject_performance(multi_file_analysis):
    subjects = {s["subject_code"]: s for s in multi_file_analysis["subject_performance"]}
    assert list(subjects) == ["CS201", "CS202"]
    cs201 = subjects["CS201"]
    assert cs201["total"] == 3
    assert cs201["passed"] == 3
    assert cs201["highest_grade"] == "O"
    assert cs201["highest_grade_count"] == 1
    assert cs201["subject_name"] == "CS201 name"
    assert "PH101" not in multi_file_analysis["subject_grade_distribution"]


def test_top_performers_are_a_prefix_of_the_ranking(make_records):
    rows = [(f"7311211040{i:02d}", "CS101", grade, 3) for i, grade in enumerate(
        ["B", "O", "A", "A+", "C", "P", "U", "B+", "O"], start=1
    )]
    analysis = analyze_results(make_records(rows))

    ranked = [s["register_no"] for s in analysis["ranked_students"]]
    top = [s["register_no"] for s in analysis["top_performers"]]
    assert top == ranked[:6]
    # equal SGPAs keep register-number order
    assert ranked[:2] == ["731121104002", "731121104009"]
    assert analysis["top_performers"][0]["best_grade"] == "O"


def test_needs_improvement_is_exact(make_records):
    records = make_records([
        ("1", "CS101", "O", 3),
        ("1", "CS102", "U", 3),
        ("2", "CS101", "B", 3),
        ("2", "CS102", "B", 3),
        ("3", "CS101", "A", 3),
        ("3", "CS102", "A+", 3),
        ("4", "CS101", "B+", 3),
        ("4", "CS102", "B", 3),
    ])
    analysis = analyze_results(records)

    flagged = [s["register_no"] for s in analysis["needs_improvement"]]
    expected = [
        s["register_no"]
        for s in analysis["student_sgpa_details"]
        if s["sgpa"] < 6.5 or s["has_arrears"]
    ]
    assert flagged == expected == ["1", "2"]
    assert analysis["needs_improvement"][0]["arrear_subjects"] == "CS102"


def test_assigned_subjects_restrict_the_analysis(single_file_records, make_records):
    extra = make_records([("731121104001", "HS101", "U", 2)])
    records = pd.concat([single_file_records, extra], ignore_index=True)

    analysis = analyze_results(records, assigned_subjects=["CS101"])

    assert analysis["total_grades"] == 3
    assert analysis["student_sgpa_details"][0]["has_arrears"] is False


@pytest.mark.parametrize(
    "label,expected",
    [("3", 3), ("3.0", 3), (" 4th", 4), ("III", None), ("", None), (None, None)],
)
def test_parse_semester_number(label, expected):
    assert parse_semester_number(label) == expected


def test_current_semester_file_resolution(make_records):
    records = pd.concat(
        [
            make_records([("1", "A1", "O", 1)], source_file="a.xlsx", semester="3"),
            make_records([("1", "B1", "O", 1)], source_file="b.xlsx", semester="5"),
            make_records([("1", "C1", "O", 1)], source_file="c.xlsx", semester="5"),
        ],
        ignore_index=True,
    )
    assert resolve_current_semester_file(records) == "b.xlsx"

    unparsed = pd.concat(
        [
            make_records([("1", "A1", "O", 1)], source_file="x.xlsx", semester="III"),
            make_records([("1", "B1", "O", 1)], source_file="y.xlsx", semester="IV"),
        ],
        ignore_index=True,
    )
    assert resolve_current_semester_file(unparsed) == "x.xlsx"
    assert resolve_current_semester_file(unparsed.iloc[0:0]) is None


def test_rank_students_is_stable():
    details = [
        {"register_no": "1", "sgpa": 7.0},
        {"register_no": "2", "sgpa": 9.0},
        {"register_no": "3", "sgpa": 7.0},
    ]
    assert [d["register_no"] for d in rank_students(details, "sgpa")] == ["2", "1", "3"]


def test_empty_records():
    empty = pd.DataFrame(
        columns=["register_no", "subject_code", "grade", "semester", "source_file", "credit", "is_arrear"]
    )
    analysis = analyze_results(empty)
    assert analysis["total_students"] == 0
    assert analysis["average_sgpa"] == 0.0
    assert analysis["current_semester_file"] is None
    assert analysis["student_sgpa_details"] == []


def test_options_from_config():
    options = AnalysisOptions.from_config({"exclude_arrears_from_sgpa": False, "top_performer_count": 3})
    assert options == AnalysisOptions(exclude_arrears_from_sgpa=False, top_performer_count=3)
