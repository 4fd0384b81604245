#!/usr/bin/env python3
"""Generate the classification summary from a student SGPA details file."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from class_performance import build_classification_summary
from report_export import write_classification_summary
from result_loader import parse_result_files

DEFAULT_DETAILS_PATH = Path("outputs/student_sgpa_details.csv")
DEFAULT_OUTPUT_PATH = Path("outputs/class_performance_summary.csv")

TRUE_TOKENS = {"1", "true", "yes", "y"}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--details",
        type=Path,
        default=DEFAULT_DETAILS_PATH,
        help="Path to student_sgpa_details.csv (default: outputs/student_sgpa_details.csv)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_PATH,
        help=(
            "Destination path for the summary table (default: "
            "outputs/class_performance_summary.csv). The format is inferred from the file extension."
        ),
    )
    parser.add_argument(
        "--results",
        nargs="+",
        default=None,
        help="Result files the details were computed from; used for the pass percentage row",
    )
    return parser.parse_args(argv)


def _as_flag(value) -> bool:
    if pd.isna(value):
        return False
    return str(value).strip().lower() in TRUE_TOKENS


def build_summary(details_path: Path, result_paths: Optional[Sequence[str]] = None) -> dict:
    if not details_path.exists():
        raise FileNotFoundError(f"Student details file not found: {details_path}")

    df = pd.read_csv(details_path, dtype={"register_no": str})
    missing = [c for c in ("register_no", "sgpa", "has_arrears") if c not in df.columns]
    if missing:
        raise ValueError(f"{details_path} is missing columns: {', '.join(missing)}")

    students = pd.DataFrame({
        "register_no": df["register_no"],
        "gpa": pd.to_numeric(df["sgpa"], errors="coerce").fillna(0.0),
        "has_arrears": df["has_arrears"].map(_as_flag),
    })
    if result_paths:
        records = parse_result_files(result_paths, "cgpa")
    else:
        records = pd.DataFrame(columns=["register_no", "grade"])
    return build_classification_summary(students, records)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    summary = build_summary(args.details, args.results)
    write_classification_summary(summary, str(args.output))
    print(f"Wrote class performance summary to: {args.output}")


if __name__ == "__main__":
    main()
