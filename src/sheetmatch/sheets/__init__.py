"""Spreadsheet file decoding and encoding."""

from .workbook import (
    TableDecodeError,
    output_name_for,
    output_path_for,
    read_table,
    read_table_bytes,
    table_to_xlsx_bytes,
    write_table,
)

__all__ = [
    "TableDecodeError",
    "output_name_for",
    "output_path_for",
    "read_table",
    "read_table_bytes",
    "table_to_xlsx_bytes",
    "write_table",
]
