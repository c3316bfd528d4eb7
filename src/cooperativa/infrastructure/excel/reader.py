"""
Worksheet reader.

Turns a sheet into header-keyed raw rows. Header names are trimmed and
lower-cased so hand-edited workbooks with ``Nombre`` or `` ID `` still match.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from openpyxl.worksheet.worksheet import Worksheet

logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def read_header_map(header_row: tuple[Any, ...] | None) -> dict[str, int]:
    """
    Build a header -> index map.

    Blank headers are ignored; on duplicates the leftmost column wins.
    """
    header_map: dict[str, int] = {}
    for idx, header in enumerate(header_row or ()):
        if _is_blank(header):
            continue
        header_map.setdefault(str(header).strip().lower(), idx)
    return header_map


def read_sheet_rows(ws: "Worksheet") -> list[dict[str, Any]]:
    """
    Read every data row of a worksheet as ``{header: raw cell}``.

    The first row is the header. Fully empty rows are skipped; short rows are
    padded with None.
    """
    rows_iter = ws.iter_rows(values_only=True)
    header_map = read_header_map(next(rows_iter, None))
    if not header_map:
        logger.debug("Sheet %s has no header row", ws.title)
        return []

    rows: list[dict[str, Any]] = []
    for row in rows_iter:
        if not row or all(_is_blank(v) for v in row):
            continue
        rows.append({name: row[idx] if idx < len(row) else None for name, idx in header_map.items()})

    logger.debug("Read %d rows from sheet %s", len(rows), ws.title)
    return rows
