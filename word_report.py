"""Word (.docx) result analysis report."""

from __future__ import annotations

import os
from typing import Dict, List, Optional, Sequence

import pandas as pd
from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.exceptions import UnrecognizedImageError
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Inches, Pt, RGBColor

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

HEADING_COLOR = RGBColor(0x2E, 0x31, 0x92)


def set_table_borders(table):
    tbl = table._tbl
    tblPr = tbl.tblPr
    borders = OxmlElement('w:tblBorders')
    for border_name in ['top', 'left', 'bottom', 'right', 'insideH', 'insideV']:
        border = OxmlElement(f'w:{border_name}')
        border.set(qn('w:val'), 'single')
        border.set(qn('w:sz'), '4')
        border.set(qn('w:space'), '0')
        border.set(qn('w:color'), '000000')
        borders.append(border)
    tblPr.append(borders)


def add_section_heading(doc, text: str) -> None:
    paragraph = doc.add_paragraph()
    run = paragraph.add_run(text)
    run.bold = True
    run.font.size = Pt(14)
    run.font.color.rgb = HEADING_COLOR


def add_table(doc, header: Optional[Sequence[str]], rows: List[Sequence[object]], font_size: int = 10):
    cols = len(header) if header else (len(rows[0]) if rows else 1)
    table = doc.add_table(rows=0, cols=cols)
    set_table_borders(table)
    table.alignment = WD_TABLE_ALIGNMENT.CENTER

    if header:
        cells = table.add_row().cells
        for i, text in enumerate(header):
            cells[i].text = ""
            run = cells[i].paragraphs[0].add_run(str(text))
            run.bold = True
            run.font.size = Pt(font_size)
            cells[i].paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER

    for row in rows:
        cells = table.add_row().cells
        for i, value in enumerate(row):
            cells[i].text = ""
            run = cells[i].paragraphs[0].add_run(str(value))
            run.font.size = Pt(font_size)
    return table


def add_header(doc, options: ReportOptions) -> None:
    table = doc.add_table(rows=1, cols=3)
    set_table_borders(table)
    table.alignment = WD_TABLE_ALIGNMENT.CENTER
    logo_cell, title_cell, label_cell = table.rows[0].cells

    if not add_logo(logo_cell, options.logo_image_path):
        logo_cell.text = "Logo"

    title_cell.text = ""
    run = title_cell.paragraphs[0].add_run(options.college_name.upper())
    run.bold = True
    run.font.size = Pt(12)
    title_cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER

    label_cell.text = ""
    run = label_cell.paragraphs[0].add_run("RESULT ANALYSIS")
    run.bold = True
    run.font.size = Pt(11)
    label_cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER


def add_logo(cell, logo_path: Optional[str]) -> bool:
    """Place the logo in *cell*; a missing or unreadable image leaves it out."""

    if not logo_path:
        return False
    if not os.path.isfile(logo_path):
        logger.warning("Logo image not found, continuing without logo: %s", logo_path)
        return False
    paragraph = cell.paragraphs[0]
    try:
        paragraph.add_run().add_picture(logo_path, width=Inches(0.7), height=Inches(0.7))
    except (OSError, UnrecognizedImageError) as exc:
        logger.warning("Error loading logo image, continuing without logo: %s", exc)
        for run in list(paragraph.runs):
            run._r.getparent().remove(run._r)
        return False
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    return True


def build_word_document(analysis: Dict[str, object], records: pd.DataFrame, options: ReportOptions):
    doc = Document()
    add_header(doc, options)
    doc.add_paragraph()

    add_section_heading(doc, "College Information")
    add_table(doc, None, college_info_rows(analysis, options))
    doc.add_paragraph()

    add_section_heading(doc, "Performance Summary")
    for label, value in performance_summary_rows(analysis):
        paragraph = doc.add_paragraph()
        paragraph.add_run(f"{label}: ")
        paragraph.add_run(value).bold = True

    note = arrear_note(analysis)
    if note:
        paragraph = doc.add_paragraph()
        paragraph.add_run("Note: ").bold = True
        paragraph.add_run(note).italic = True

    if is_multi_file(analysis):
        add_section_heading(doc, "File Analysis")
        add_table(
            doc,
            ["File Name", "Students", "Average SGPA", "Semester", "Note"],
            file_analysis_rows(analysis),
        )
        doc.add_paragraph()

    semester = analysis.get("current_semester")
    heading = "End Semester Result Analysis"
    if semester:
        heading += f" (Semester {semester})"
    add_section_heading(doc, heading)
    add_table(doc, SUBJECT_TABLE_HEADER, subject_table_rows(analysis, options.department), font_size=8)
    doc.add_paragraph()

    add_section_heading(doc, "Classification")
    add_table(doc, ["Category", "Current semester", "Up to this semester"], classification_rows(analysis))
    doc.add_paragraph()

    add_section_heading(doc, "Rank Analysis")
    add_table(
        doc,
        ["RANK", "Name of the student", "SGPA", "RANK", "Name of the student", options.gpa_label],
        rank_rows(analysis, options.rank_count),
    )
    return doc


def write_word_report(
    analysis: Dict[str, object],
    records: pd.DataFrame,
    options: ReportOptions,
    destination: str,
) -> str:
    try:
        doc = build_word_document(analysis, records, options)
        os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
        doc.save(destination)
    except (OSError, KeyError, ValueError) as exc:
        logger.error("Error generating Word report: %s", exc)
        remove_partial(destination)
        raise ReportError(f"Unable to generate Word report: {exc}") from exc
    return destination
