"""Validate subject credit sets and merge them into student-grade records."""

from __future__ import annotations

import json
import os
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from analysis_logging import get_logger
from result_loader import locate_column, normalize_token

logger = get_logger(__name__)


class CreditAssignmentError(ValueError):
    """Raised when a credit set cannot be applied to the uploaded subjects."""


def _parse_credit(value) -> float:
    try:
        credit = float(value)
    except (TypeError, ValueError):
        return np.nan
    return credit


def load_credit_table(path: str) -> List[Dict[str, object]]:
    """Load a subject credit table from CSV, Excel or JSON."""

    if not path or not os.path.isfile(path):
        raise CreditAssignmentError(f"Credit table not found: {path}")

    suffix = os.path.splitext(path)[1].lower()
    if suffix == ".json":
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = payload.get("credits", [])
        df = pd.DataFrame(payload, dtype=str)
    elif suffix == ".csv":
        df = pd.read_csv(path, dtype=str)
    elif suffix in {".xlsx", ".xlsm"}:
        df = pd.read_excel(path, dtype=str, engine="openpyxl")
    else:
        raise CreditAssignmentError(f"Unsupported credit table format: {os.path.basename(path)}")

    if df.empty:
        return []

    code_col = locate_column(df.columns, "subject_code", "SUBJECT CODE", "SCODE", "CODE")
    credit_col = locate_column(df.columns, "credit", "CREDITS", "CREDIT VALUE", "CREDIT POINTS")
    if not code_col or not credit_col:
        raise CreditAssignmentError(
            f"{os.path.basename(path)} must have subject code and credit columns."
        )
    name_col = locate_column(df.columns, "subject_name", "SUBJECT NAME", "NAME")
    faculty_col = locate_column(df.columns, "faculty_name", "FACULTY NAME", "FACULTY")

    credits: List[Dict[str, object]] = []
    for _, row in df.iterrows():
        credits.append({
            "subject_code": normalize_token(row.get(code_col)).upper(),
            "credit": _parse_credit(row.get(credit_col)),
            "subject_name": normalize_token(row.get(name_col)) if name_col else "",
            "faculty_name": normalize_token(row.get(faculty_col)) if faculty_col else "",
        })
    return credits


def validate_credit_set(
    credits: Iterable[Dict[str, object]],
    uploaded_subjects: Sequence[str],
    *,
    require_complete: bool = True,
) -> List[Dict[str, object]]:
    """Check a credit set against the uploaded subjects and return it normalised.

    Every entry needs a subject code that occurs in the uploaded records and a
    positive credit. Subject codes must be unique within the set. With
    *require_complete* every uploaded subject must be given a credit.
    """

    uploaded = set(uploaded_subjects)
    errors: List[str] = []
    normalised: List[Dict[str, object]] = []
    seen = set()

    for idx, item in enumerate(credits, start=1):
        code = normalize_token(item.get("subject_code")).upper()
        credit = _parse_credit(item.get("credit"))

        if not code:
            errors.append(f"Row {idx}: subject code is required")
        elif code not in uploaded:
            errors.append(f"Row {idx}: subject code {code} not found in uploaded files")
        if np.isnan(credit) or credit <= 0:
            errors.append(f"Row {idx}: credit must be a positive number")

        if code and code in seen:
            errors.append(f"Subject code {code} appears more than once")
        seen.add(code)

        normalised.append({
            "subject_code": code,
            "credit": credit,
            "subject_name": normalize_token(item.get("subject_name")),
            "faculty_name": normalize_token(item.get("faculty_name")),
        })

    if errors:
        raise CreditAssignmentError("; ".join(errors))

    if require_complete:
        missing = [code for code in uploaded_subjects if code not in seen]
        if missing:
            raise CreditAssignmentError(
                "The following subjects don't have credits assigned: " + ", ".join(missing)
            )

    return normalised


def credit_lookup(credits: Optional[Iterable[Dict[str, object]]]) -> Dict[str, Dict[str, object]]:
    return {str(item["subject_code"]): item for item in (credits or [])}


def assign_credits(
    records: pd.DataFrame,
    cumulative_credits: Iterable[Dict[str, object]],
    current_credits: Optional[Iterable[Dict[str, object]]] = None,
    default_credit: Optional[float] = None,
) -> pd.DataFrame:
    """Return a copy of *records* with credit, names and the arrear flag filled in.

    Credit values and names come from the cumulative set, then the current
    set, then *default_credit*. A subject missing from the current-semester
    set is an arrear subject; without a current set nothing is an arrear.
    """

    cumulative = credit_lookup(cumulative_credits)
    current = credit_lookup(current_credits) if current_credits is not None else None

    def pick(code: str, field: str):
        for lookup in (cumulative, current or {}):
            entry = lookup.get(code)
            if entry is not None and entry.get(field) not in (None, ""):
                return entry[field]
        return None

    out = records.copy()
    codes = out["subject_code"].drop_duplicates().tolist()

    credit_map: Dict[str, float] = {}
    defaulted: List[str] = []
    for code in codes:
        credit = pick(code, "credit")
        if credit is None or pd.isna(credit):
            credit = default_credit if default_credit is not None else np.nan
            defaulted.append(code)
        credit_map[code] = float(credit)

    if defaulted:
        if default_credit is not None:
            logger.info("Using default credit %s for subjects: %s", default_credit, ", ".join(defaulted))
        else:
            logger.info("No credit assigned for subjects: %s", ", ".join(defaulted))

    out["credit"] = out["subject_code"].map(credit_map).astype(float)
    out["subject_name"] = out["subject_code"].map(lambda c: pick(c, "subject_name") or "")
    out["faculty_name"] = out["subject_code"].map(lambda c: pick(c, "faculty_name") or "")
    if current is None:
        out["is_arrear"] = False
    else:
        out["is_arrear"] = ~out["subject_code"].isin(list(current))
    return out


def restrict_to_subjects(records: pd.DataFrame, subject_codes: Iterable[str]) -> pd.DataFrame:
    codes = list(subject_codes)
    if not codes:
        return records.copy()
    return records[records["subject_code"].isin(codes)].reset_index(drop=True)
