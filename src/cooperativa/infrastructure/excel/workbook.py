"""
Workbook codec.

Serialises a ``Snapshot`` to an ``.xlsx`` workbook (one sheet per table, fixed
column order from ``domain.tables``) and parses a possibly hand-edited
workbook back into a sanitised ``Snapshot``.

Parsing never fails on bad rows: a row whose required column does not
sanitise is dropped, a missing sheet is an empty table. Only input that is
not a workbook at all raises ``WorkbookFormatError``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import zipfile
from io import BytesIO
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from cooperativa.domain.models import Record, TableName
from cooperativa.domain.snapshot import Snapshot
from cooperativa.domain.tables import TABLE_REGISTRY, ColumnKind, ColumnSpec, TableSpec
from cooperativa.infrastructure.excel.reader import read_sheet_rows
from cooperativa.infrastructure.excel.styles import (
    Alignments,
    ColumnDef,
    add_autofilter,
    apply_header_row,
    freeze_panes,
    style_data_cell,
)

logger = logging.getLogger(__name__)

_COLUMN_WIDTHS = {
    ColumnKind.ID: 10,
    ColumnKind.INTEGER: 14,
    ColumnKind.TEXT: 24,
    ColumnKind.DATE: 14,
    ColumnKind.TIME: 12,
    ColumnKind.BOOL: 10,
    ColumnKind.JSON: 60,
}


class WorkbookFormatError(ValueError):
    """Input is not a readable workbook (or not valid base64)."""


# Sheet names and column order per table, for users preparing a workbook by hand.
TEMPLATE_INFO: dict[str, dict[str, Any]] = {
    "sheet_names": {table.value: spec.sheet_name for table, spec in TABLE_REGISTRY.items()},
    "columns": {table.value: list(spec.column_names) for table, spec in TABLE_REGISTRY.items()},
}


# ============================================================================
# Export
# ============================================================================


def _column_def(column: ColumnSpec) -> ColumnDef:
    return ColumnDef(
        name=column.name,
        width=_COLUMN_WIDTHS[column.kind],
        alignment=Alignments.LEFT if column.kind in (ColumnKind.TEXT, ColumnKind.JSON) else Alignments.CENTER,
        is_monospace=column.kind is ColumnKind.JSON,
    )


def _cell_value(column: ColumnSpec, value: Any) -> Any:
    if value is None:
        return None
    if column.kind is ColumnKind.JSON:
        return json.dumps(value, ensure_ascii=False)
    if column.kind is ColumnKind.BOOL:
        return "true" if value else "false"
    return value


def _write_sheet(wb: Workbook, spec: TableSpec, records: list[Any]) -> None:
    ws = wb.create_sheet(title=spec.sheet_name)
    col_defs = [_column_def(column) for column in spec.columns]
    apply_header_row(ws, col_defs)

    for row_idx, record in enumerate(records, start=2):
        row = record.to_row() if isinstance(record, Record) else dict(record)
        for col_idx, (column, col_def) in enumerate(zip(spec.columns, col_defs), start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=_cell_value(column, row.get(column.name)))
            if isinstance(cell.value, str):
                # Text starting with "=" is data, not a formula
                cell.data_type = "s"
            style_data_cell(cell, col_def)

    freeze_panes(ws)
    add_autofilter(ws, col_defs)
    logger.debug("Sheet %s: %d rows", spec.sheet_name, len(records))


def build_workbook(snapshot: Snapshot) -> bytes:
    """
    Serialise a snapshot to ``.xlsx`` bytes.

    Every table gets a sheet, even when empty, so the export doubles as a
    template.
    """
    wb = Workbook()
    wb.remove(wb.active)
    for table, spec in TABLE_REGISTRY.items():
        _write_sheet(wb, spec, snapshot.rows(table))

    buffer = BytesIO()
    wb.save(buffer)
    logger.info("Workbook built: %d rows across %d sheets", snapshot.total_rows, len(TABLE_REGISTRY))
    return buffer.getvalue()


# ============================================================================
# Import
# ============================================================================


def _open_workbook(data: bytes):
    try:
        return load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise WorkbookFormatError(f"No se pudo leer el archivo Excel: {e}") from e


def _parse_sheet(spec: TableSpec, raw_rows: list[dict[str, Any]]) -> list[Record]:
    records = []
    for raw in raw_rows:
        values = spec.sanitize_row(raw)
        if values is not None:
            records.append(spec.to_entity(values))

    dropped = len(raw_rows) - len(records)
    if dropped:
        logger.debug("Sheet %s: dropped %d invalid rows", spec.sheet_name, dropped)
    return records


def parse_workbook(data: bytes) -> Snapshot:
    """
    Parse ``.xlsx`` bytes into a sanitised snapshot.

    Sheets are matched by name, ignoring case and surrounding spaces.

    Raises:
        WorkbookFormatError: If ``data`` is not a workbook
    """
    wb = _open_workbook(data)
    try:
        sheets = {name.strip().lower(): name for name in wb.sheetnames}
        tables: dict[TableName, list[Record]] = {}
        for table, spec in TABLE_REGISTRY.items():
            sheet_name = sheets.get(spec.sheet_name.lower())
            if sheet_name is None:
                logger.debug("Sheet %s not present, treating as empty", spec.sheet_name)
                continue
            tables[table] = _parse_sheet(spec, read_sheet_rows(wb[sheet_name]))
    finally:
        wb.close()

    snapshot = Snapshot.from_mapping(tables)
    logger.info("Workbook parsed: %d valid rows", snapshot.total_rows)
    return snapshot


# ============================================================================
# Base64 transport
# ============================================================================


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(text: str) -> bytes:
    """
    Decode standard base64, ignoring whitespace and line breaks.

    Raises:
        WorkbookFormatError: If ``text`` is not valid base64
    """
    compact = "".join(text.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise WorkbookFormatError(f"Contenido base64 inválido: {e}") from e


def build_workbook_base64(snapshot: Snapshot) -> str:
    return encode_base64(build_workbook(snapshot))


def parse_workbook_base64(text: str) -> Snapshot:
    return parse_workbook(decode_base64(text))
