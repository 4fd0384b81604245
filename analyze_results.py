#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Analyse end-semester grade sheets and write the result analysis reports."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Dict, List, Optional, Sequence

from analysis_logging import get_logger, set_level
from credit_assignment import (
    CreditAssignmentError,
    assign_credits,
    load_credit_table,
    validate_credit_set,
)
from report_export import (
    CSV_REPORT_NAME,
    DEFAULT_COLLEGE_NAME,
    EXCEL_REPORT_NAME,
    JSON_REPORT_NAME,
    ReportError,
    ReportOptions,
    student_details_frame,
    write_csv_report,
    write_excel_report,
    write_json_report,
)
from pdf_report import write_pdf_report
from result_analysis import AnalysisOptions, analyze_results
from result_loader import UploadError, parse_result_files, unique_subjects
from word_report import write_word_report

HERE = os.path.dirname(os.path.abspath(__file__))

REPORT_FORMATS = ("csv", "xlsx", "docx", "pdf", "json")
STUDENT_DETAILS_NAME = "student_sgpa_details.csv"

logger = get_logger(__name__)


def load_config(path: str) -> Dict:
    if not path or not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def parse_formats(value: str) -> List[str]:
    formats = [f.strip().lower() for f in value.split(",") if f.strip()]
    unknown = [f for f in formats if f not in REPORT_FORMATS]
    if unknown:
        raise argparse.ArgumentTypeError(
            f"Unknown report format(s): {', '.join(unknown)}. Choose from {', '.join(REPORT_FORMATS)}."
        )
    return formats


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--input", nargs="+", required=True, help="Result files (.xlsx or .csv), one per semester")
    ap.add_argument(
        "--mode",
        choices=("sgpa", "cgpa"),
        default=None,
        help="Calculation mode (default: sgpa for one file, cgpa for several)",
    )
    ap.add_argument("--credits", required=True, help="Cumulative credit table (.csv, .xlsx or .json)")
    ap.add_argument(
        "--current-credits",
        default=None,
        help="Current-semester credit table; subjects missing from it are treated as arrears",
    )
    ap.add_argument("--config", default=os.path.join(HERE, "config.json"))
    ap.add_argument("--outdir", default="outputs")
    ap.add_argument(
        "--formats",
        type=parse_formats,
        default=list(REPORT_FORMATS),
        help="Comma separated report formats (default: %(default)s)",
    )
    ap.add_argument("--logo", default=None, help="Logo image placed in the Word/PDF header")
    ap.add_argument("--department", default=None, help="Department short name, e.g. CSE")
    ap.add_argument("--department-full-name", default=None)
    ap.add_argument(
        "--include-arrears",
        action="store_true",
        help="Keep arrear subjects in the SGPA and subject analysis",
    )
    ap.add_argument("--log-level", default="INFO")
    return ap.parse_args(argv)


def build_report_options(args: argparse.Namespace, cfg: Dict, mode: str) -> ReportOptions:
    defaults = ReportOptions()
    return ReportOptions(
        logo_image_path=args.logo or cfg.get("logo_image_path"),
        department=args.department or cfg.get("department", defaults.department),
        department_full_name=args.department_full_name
        or cfg.get("department_full_name", defaults.department_full_name),
        calculation_mode=mode,
        college_name=cfg.get("college_name", DEFAULT_COLLEGE_NAME),
        rank_count=int(cfg.get("report_rank_count", defaults.rank_count)),
    )


def write_reports(analysis, records, options: ReportOptions, outdir: str, formats: Sequence[str]) -> List[str]:
    os.makedirs(outdir, exist_ok=True)
    written = []
    mode = options.calculation_mode
    if "csv" in formats:
        written.append(write_csv_report(analysis, os.path.join(outdir, CSV_REPORT_NAME)))
    if "xlsx" in formats:
        written.append(write_excel_report(analysis, records, options, os.path.join(outdir, EXCEL_REPORT_NAME)))
    if "docx" in formats:
        written.append(
            write_word_report(analysis, records, options, os.path.join(outdir, f"{mode}-analysis-report.docx"))
        )
    if "pdf" in formats:
        written.append(
            write_pdf_report(analysis, records, options, os.path.join(outdir, f"{mode}-analysis-report.pdf"))
        )
    if "json" in formats:
        written.append(write_json_report(analysis, os.path.join(outdir, JSON_REPORT_NAME)))

    details_path = os.path.join(outdir, STUDENT_DETAILS_NAME)
    student_details_frame(analysis).to_csv(details_path, index=False)
    written.append(details_path)
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    set_level(args.log_level)

    cfg_path = args.config if os.path.isfile(args.config) else os.path.join(os.getcwd(), "config.json")
    cfg = load_config(cfg_path)

    mode = args.mode or ("sgpa" if len(args.input) == 1 else "cgpa")

    try:
        records = parse_result_files(args.input, mode)
        subjects = unique_subjects(records)

        cumulative = validate_credit_set(load_credit_table(args.credits), subjects)
        current = None
        if args.current_credits:
            current = validate_credit_set(
                load_credit_table(args.current_credits), subjects, require_complete=False
            )
        credited = assign_credits(
            records,
            cumulative,
            current_credits=current,
            default_credit=cfg.get("default_credit"),
        )
    except (UploadError, CreditAssignmentError) as exc:
        raise SystemExit(str(exc))

    analysis_options = AnalysisOptions.from_config(cfg)
    if args.include_arrears:
        analysis_options = AnalysisOptions(
            exclude_arrears_from_sgpa=False,
            top_performer_count=analysis_options.top_performer_count,
            cgpa_topper_count=analysis_options.cgpa_topper_count,
        )

    analysis = analyze_results(
        credited,
        analysis_options,
        assigned_subjects=[item["subject_code"] for item in cumulative],
    )
    logger.info(
        "Analysed %d students across %d file(s); current semester file: %s",
        analysis["total_students"],
        analysis["file_count"],
        analysis["current_semester_file"],
    )

    report_options = build_report_options(args, cfg, mode)
    try:
        write_reports(analysis, credited, report_options, args.outdir, args.formats)
    except ReportError as exc:
        logger.error("%s", exc)
        return 1

    print("Wrote outputs to:", args.outdir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
