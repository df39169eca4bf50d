# crm_reports/reporting/export.py
"""XLSX export of formatted report rows."""

import io
import re
from typing import Dict, List

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_workbook(headers: List[str], rows: List[Dict[str, str]], sheet_name: str = "Report") -> bytes:
    """Write display rows into a single-sheet workbook and return its bytes."""
    df = pd.DataFrame(rows, columns=headers)
    # Excel sheet names: at most 31 chars, none of []:*?/\
    sheet_name = re.sub(r"[\[\]:*?/\\]", " ", sheet_name or "").strip()[:31] or "Report"

    excel_buffer = io.BytesIO()
    with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        _style_header(worksheet, len(df.columns))
        _auto_adjust_columns(worksheet)

    excel_buffer.seek(0)
    return excel_buffer.getvalue()


def export_file_name(file_name: str) -> str:
    if not file_name.endswith(".xlsx"):
        file_name += ".xlsx"
    return file_name


def _style_header(worksheet, column_count: int):
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    for col_num in range(1, column_count + 1):
        cell = worksheet.cell(row=1, column=col_num)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment


def _auto_adjust_columns(worksheet):
    """Size every column to its longest value."""
    for index, column_cells in enumerate(worksheet.columns, start=1):
        max_length = max((len(str(cell.value)) for cell in column_cells if cell.value is not None), default=0)
        worksheet.column_dimensions[get_column_letter(index)].width = min(max_length + 2, 50)
