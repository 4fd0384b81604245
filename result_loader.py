"""Read end-semester grade sheets into a long table of student-grade records."""

from __future__ import annotations

import os
import zipfile
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from analysis_logging import get_logger
from grade_scale import normalize_grade_token

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = {".xlsx", ".xlsm", ".csv"}
MAX_FILES = 10

CALCULATION_MODES = ("sgpa", "cgpa")

RECORD_COLUMNS: List[str] = [
    "register_no",
    "subject_code",
    "grade",
    "semester",
    "department_code",
    "source_file",
]

REQUIRED_COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    "register_no": ("REGNO", "REG NO", "REG. NO", "REGISTER NO", "REGISTER NUMBER"),
    "subject_code": ("SCODE", "SUB CODE", "SUBJECT CODE"),
    "grade": ("GR", "GRADE"),
    "semester": ("SEM", "SEMESTER"),
}

OPTIONAL_COLUMN_ALIASES: Dict[str, Sequence[str]] = {
    "department_code": ("CNO", "DEPT", "DEPT CODE", "DEPARTMENT CODE"),
}


class UploadError(ValueError):
    """Raised when an uploaded result file cannot be accepted."""


def normalize_token(value) -> str:
    """Return a stripped string for *value* (handles NaNs)."""

    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def normalize_register(value) -> str:
    token = normalize_token(value)
    if token.endswith(".0"):
        token = token[:-2]
    return token


def normalize_semester(value) -> str:
    token = normalize_token(value)
    if token.endswith(".0"):
        token = token[:-2]
    return token


def locate_column(columns: Iterable, *aliases: str) -> str:
    columns = list(columns)
    candidates = [" ".join(str(col).split()).upper() for col in columns]
    for alias in aliases:
        alias_norm = alias.strip().upper()
        for orig, cand in zip(columns, candidates):
            if alias_norm == cand:
                return orig
    return ""


def check_upload(paths: Sequence[str], mode: str) -> None:
    """Reject uploads that break the file-count or file-type rules for *mode*."""

    if mode not in CALCULATION_MODES:
        raise UploadError(f"Unknown calculation mode '{mode}'. Expected one of: sgpa, cgpa.")
    if not paths:
        raise UploadError("Please select at least one result file to upload.")
    if mode == "sgpa" and len(paths) != 1:
        raise UploadError("SGPA mode accepts exactly one result file.")
    if len(paths) > MAX_FILES:
        raise UploadError(f"You can upload a maximum of {MAX_FILES} result files at once.")

    for path in paths:
        name = os.path.basename(str(path))
        suffix = os.path.splitext(name)[1].lower()
        if suffix == ".xls":
            raise UploadError(
                f"{name} is a legacy .xls workbook. Save it as .xlsx and upload it again."
            )
        if suffix not in SUPPORTED_EXTENSIONS:
            raise UploadError(f"{name} is not a valid result file (.xlsx or .csv).")
        if not os.path.isfile(path):
            raise UploadError(f"Result file not found: {path}")


def read_result_sheet(path: str) -> pd.DataFrame:
    """Return the first sheet of *path* as strings."""

    suffix = os.path.splitext(str(path))[1].lower()
    try:
        if suffix == ".csv":
            return pd.read_csv(path, dtype=str)
        return pd.read_excel(path, sheet_name=0, dtype=str, engine="openpyxl")
    except (OSError, ValueError, zipfile.BadZipFile) as exc:
        raise UploadError(f"Unable to read {os.path.basename(str(path))}: {exc}") from exc


def parse_result_file(path: str, source_name: str | None = None) -> pd.DataFrame:
    """Parse one grade sheet into records tagged with *source_name*."""

    source = source_name or os.path.basename(str(path))
    df = read_result_sheet(path)
    if df is None or df.empty:
        raise UploadError(f"{source} does not contain any rows.")

    columns: Dict[str, str] = {}
    missing: List[str] = []
    for field, aliases in REQUIRED_COLUMN_ALIASES.items():
        col = locate_column(df.columns, *aliases)
        if not col:
            missing.append(aliases[0])
        columns[field] = col
    if missing:
        raise UploadError(
            f"{source} is missing required columns: {', '.join(missing)}."
        )
    for field, aliases in OPTIONAL_COLUMN_ALIASES.items():
        columns[field] = locate_column(df.columns, *aliases)

    dept_col = columns["department_code"]
    records = pd.DataFrame({
        "register_no": df[columns["register_no"]].map(normalize_register),
        "subject_code": df[columns["subject_code"]].map(normalize_token).str.upper(),
        "grade": df[columns["grade"]].map(normalize_grade_token),
        "semester": df[columns["semester"]].map(normalize_semester),
        "department_code": df[dept_col].map(normalize_token) if dept_col else "",
        "source_file": source,
    })

    usable = (records["register_no"] != "") & (records["subject_code"] != "")
    dropped = int((~usable).sum())
    if dropped:
        logger.info("Dropped %d rows without register number or subject code from %s", dropped, source)
    records = records.loc[usable, RECORD_COLUMNS].reset_index(drop=True)

    if records.empty:
        raise UploadError(f"{source} does not contain any student grade rows.")

    logger.info("Parsed %d records from %s", len(records), source)
    return records


def parse_result_files(paths: Sequence[str], mode: str = "cgpa") -> pd.DataFrame:
    """Parse every file in upload order into one records table."""

    check_upload(paths, mode)
    frames = [parse_result_file(path) for path in paths]

    sources = [frame["source_file"].iloc[0] for frame in frames]
    if len(set(sources)) != len(sources):
        raise UploadError("Each uploaded file must have a distinct file name.")

    combined = pd.concat(frames, ignore_index=True)
    logger.info("Parsed %d records from %d file(s)", len(combined), len(frames))
    return combined


def unique_subjects(records: pd.DataFrame) -> List[str]:
    if records.empty:
        return []
    return records["subject_code"].drop_duplicates().tolist()
