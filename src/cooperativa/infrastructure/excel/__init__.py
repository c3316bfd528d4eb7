"""
Excel workbook codec (openpyxl).
"""

from cooperativa.infrastructure.excel.workbook import (
    TEMPLATE_INFO,
    WorkbookFormatError,
    build_workbook,
    build_workbook_base64,
    decode_base64,
    encode_base64,
    parse_workbook,
    parse_workbook_base64,
)

__all__ = [
    "TEMPLATE_INFO",
    "WorkbookFormatError",
    "build_workbook",
    "build_workbook_base64",
    "decode_base64",
    "encode_base64",
    "parse_workbook",
    "parse_workbook_base64",
]
