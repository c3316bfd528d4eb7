"""
Excel styling for exported workbooks.

Header row look, column widths and sheet helpers shared by every sheet.
"""

from __future__ import annotations

from dataclasses import dataclass

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet


# ============================================================================
# Color Palette
# ============================================================================


class Colors:
    """Workbook color palette (hex codes without #)."""

    HEADER_BG = "203764"  # Navy
    HEADER_TEXT = "FFFFFF"
    HEADER_BORDER = "1F4E79"
    GRID = "B4B4B4"


class Fonts:
    HEADER = Font(name="Segoe UI", size=11, bold=True, color=Colors.HEADER_TEXT)
    DATA = Font(name="Segoe UI", size=10)
    MONOSPACE = Font(name="Consolas", size=10)


class Fills:
    HEADER = PatternFill(start_color=Colors.HEADER_BG, end_color=Colors.HEADER_BG, fill_type="solid")


class Borders:
    THIN = Border(
        left=Side(style="thin", color=Colors.GRID),
        right=Side(style="thin", color=Colors.GRID),
        top=Side(style="thin", color=Colors.GRID),
        bottom=Side(style="thin", color=Colors.GRID),
    )
    HEADER = Border(
        left=Side(style="thin", color=Colors.HEADER_BORDER),
        right=Side(style="thin", color=Colors.HEADER_BORDER),
        top=Side(style="thin", color=Colors.HEADER_BORDER),
        bottom=Side(style="medium", color=Colors.HEADER_BORDER),
    )


class Alignments:
    CENTER = Alignment(horizontal="center", vertical="center", wrap_text=False)
    CENTER_WRAP = Alignment(horizontal="center", vertical="center", wrap_text=True)
    LEFT = Alignment(horizontal="left", vertical="center", wrap_text=False)


# ============================================================================
# Column Definition
# ============================================================================


@dataclass
class ColumnDef:
    """
    Column definition for a data sheet.

    Attributes:
        name: Column header text (also the import key)
        width: Column width in characters
        alignment: Data cell alignment
        is_monospace: Use a monospace font (JSON cells)
    """

    name: str
    width: int = 12
    alignment: Alignment = Alignments.LEFT
    is_monospace: bool = False


# ============================================================================
# Helper Functions
# ============================================================================


def apply_header_row(ws: Worksheet, columns: list[ColumnDef], row: int = 1) -> None:
    """Write and style the header row, and set column widths."""
    for col_idx, col_def in enumerate(columns, start=1):
        cell = ws.cell(row=row, column=col_idx, value=col_def.name)
        cell.font = Fonts.HEADER
        cell.fill = Fills.HEADER
        cell.alignment = Alignments.CENTER_WRAP
        cell.border = Borders.HEADER
        ws.column_dimensions[get_column_letter(col_idx)].width = col_def.width


def style_data_cell(cell, col_def: ColumnDef) -> None:
    cell.font = Fonts.MONOSPACE if col_def.is_monospace else Fonts.DATA
    cell.alignment = col_def.alignment
    cell.border = Borders.THIN


def freeze_panes(ws: Worksheet, row: int = 2, col: int = 1) -> None:
    """
    Freeze panes in a worksheet.

    Args:
        ws: Worksheet
        row: First unfrozen row (freeze rows above)
        col: First unfrozen column (freeze columns to the left)
    """
    ws.freeze_panes = ws.cell(row=row, column=col)


def add_autofilter(ws: Worksheet, columns: list[ColumnDef], header_row: int = 1) -> None:
    last_col = get_column_letter(len(columns))
    ws.auto_filter.ref = f"A{header_row}:{last_col}{max(ws.max_row, header_row)}"
