from __future__ import annotations

import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Image as RLImage,
    Table,
    TableStyle,
)

from analysis_logging import get_logger
from report_export import (
    SUBJECT_TABLE_HEADER,
    ReportError,
    ReportOptions,
    arrear_note,
    classification_rows,
    college_info_rows,
    file_analysis_rows,
    is_multi_file,
    performance_summary_rows,
    rank_rows,
    remove_partial,
    subject_table_rows,
)

logger = get_logger(__name__)


GRID_STYLE = [
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ("FONT", (0, 0), (-1, -1), "Helvetica"),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
]

HEADER_ROW_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("ALIGN", (0, 0), (-1, 0), "CENTER"),
]


def load_logo(logo_path: Optional[str]):
    """Return a flowable for the logo, or ``None`` when it cannot be read."""

    if not logo_path:
        return None
    if not os.path.isfile(logo_path):
        logger.warning("Logo image not found, continuing without logo: %s", logo_path)
        return None
    try:
        ImageReader(logo_path).getSize()
    except OSError as exc:
        logger.warning("Error loading logo image, continuing without logo: %s", exc)
        return None
    return RLImage(logo_path, width=50, height=50)


def grid_table(header: Optional[Sequence[str]], rows: List[Sequence[object]], col_widths=None, font_size=9):
    data = [list(header)] if header else []
    data.extend([[str(v) for v in row] for row in rows])
    if not data:
        data = [[""]]
    table = Table(data, colWidths=col_widths, repeatRows=1 if header else 0)
    style = list(GRID_STYLE) + [("FONTSIZE", (0, 0), (-1, -1), font_size)]
    if header:
        style.extend(HEADER_ROW_STYLE)
    table.setStyle(TableStyle(style))
    return table


def build_story(analysis: Dict[str, object], options: ReportOptions) -> list:
    styles = getSampleStyleSheet()
    story = []

    # ---------------- Header ----------------
    title_style = styles["Heading2"]
    title_style.alignment = TA_CENTER
    logo = load_logo(options.logo_image_path)
    header = Table(
        [[logo if logo is not None else "Logo", Paragraph(options.college_name.upper(), title_style), "RESULT ANALYSIS"]],
        colWidths=[70, 330, 110],
    )
    header.setStyle(TableStyle([
        ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
        ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("FONT", (2, 0), (2, 0), "Helvetica-Bold"),
    ]))
    story.append(header)
    story.append(Spacer(1, 6))

    date_str = datetime.now().strftime("%d %B %Y")
    story.append(Paragraph(f"<i>Generated on {date_str}</i>", styles["Normal"]))
    story.append(Spacer(1, 12))

    # ---------------- College Information ----------------
    story.append(Paragraph("College Information", styles["Heading3"]))
    story.append(grid_table(None, college_info_rows(analysis, options), col_widths=[160, 340]))
    story.append(Spacer(1, 12))

    # ---------------- Performance Summary ----------------
    story.append(Paragraph("Performance Summary", styles["Heading3"]))
    story.append(grid_table(None, performance_summary_rows(analysis), col_widths=[200, 120]))
    note = arrear_note(analysis)
    if note:
        story.append(Spacer(1, 6))
        story.append(Paragraph(f"<b>Note:</b> <i>{note}</i>", styles["BodyText"]))
    story.append(Spacer(1, 12))

    if is_multi_file(analysis):
        story.append(Paragraph("File Analysis", styles["Heading3"]))
        story.append(grid_table(
            ["File Name", "Students", "Average SGPA", "Semester", "Note"],
            file_analysis_rows(analysis),
        ))
        story.append(Spacer(1, 12))

    # ---------------- Subject table ----------------
    story.append(Paragraph("End Semester Result Analysis", styles["Heading3"]))
    story.append(grid_table(
        SUBJECT_TABLE_HEADER,
        subject_table_rows(analysis, options.department),
        font_size=6,
    ))
    story.append(Spacer(1, 12))

    # ---------------- Classification ----------------
    story.append(Paragraph("Classification", styles["Heading3"]))
    story.append(grid_table(
        ["Category", "Current semester", "Up to this semester"],
        classification_rows(analysis),
    ))
    story.append(Spacer(1, 12))

    # ---------------- Rank Analysis ----------------
    story.append(Paragraph("Rank Analysis", styles["Heading3"]))
    story.append(grid_table(
        ["RANK", "Name of the student", "SGPA", "RANK", "Name of the student", options.gpa_label],
        rank_rows(analysis, options.rank_count),
    ))
    return story


def write_pdf_report(
    analysis: Dict[str, object],
    records: pd.DataFrame,
    options: ReportOptions,
    destination: str,
) -> str:
    """
    Creates the result analysis PDF report.
    """

    try:
        os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
        doc = SimpleDocTemplate(
            destination,
            pagesize=A4,
            rightMargin=36,
            leftMargin=36,
            topMargin=36,
            bottomMargin=36,
        )
        doc.build(build_story(analysis, options))
    except (OSError, KeyError, ValueError) as exc:
        logger.error("Error generating PDF report: %s", exc)
        remove_partial(destination)
        raise ReportError(f"Unable to generate PDF report: {exc}") from exc
    return destination
