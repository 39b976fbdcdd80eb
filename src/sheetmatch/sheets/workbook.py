"""Read and write tables as XLSX or CSV files."""

import csv
import io
import logging
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import openpyxl
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from ..engine.models import CellValue, MergedRange, Table, ValidationRange

logger = logging.getLogger(__name__)

XLSX_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}
SUPPORTED_SUFFIXES = XLSX_SUFFIXES | CSV_SUFFIXES

DEFAULT_SHEET_TITLE = "Updated_Sheet"

# Attributes of an openpyxl DataValidation that make up its rule.
VALIDATION_RULE_FIELDS = (
    "type",
    "operator",
    "formula1",
    "formula2",
    "allow_blank",
    "showDropDown",
    "showErrorMessage",
    "showInputMessage",
    "errorStyle",
    "error",
    "errorTitle",
    "prompt",
    "promptTitle",
)

_INT_RE = re.compile(r"^-?(0|[1-9]\d*)$")
_FLOAT_RE = re.compile(r"^-?(0|[1-9]\d*)?\.\d+([eE][-+]?\d+)?$|^-?(0|[1-9]\d*)[eE][-+]?\d+$")


class TableDecodeError(ValueError):
    """Raised when a file cannot be turned into a table."""


def _cell_value(value: Any) -> CellValue:
    """Convert an openpyxl cell value to a table cell value."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _csv_value(text: str) -> CellValue:
    """Interpret a CSV field the way a spreadsheet application would."""
    stripped = text.strip()
    if stripped == "":
        return None
    if _INT_RE.match(stripped):
        return int(stripped)
    if _FLOAT_RE.match(stripped):
        return float(stripped)
    if stripped.upper() in ("TRUE", "FALSE"):
        return stripped.upper() == "TRUE"
    return text


def _unique_headers(raw: Iterable[Any]) -> list[str]:
    """Turn a header row into unique, non-empty column names."""
    headers: list[str] = []
    seen: set[str] = set()
    for position, value in enumerate(raw, start=1):
        base = str(_cell_value(value)).strip() if value is not None else ""
        if not base:
            base = f"Column {position}"
        name = base
        counter = 2
        while name in seen:
            name = f"{base} {counter}"
            counter += 1
        seen.add(name)
        headers.append(name)
    return headers


def _build_table(
    raw_rows: list[list[CellValue]],
    name: str,
    merged_ranges: Optional[list[MergedRange]] = None,
    validation_ranges: Optional[list[ValidationRange]] = None,
) -> Table:
    if not raw_rows:
        raise TableDecodeError(f"Sheet in '{name}' is empty or could not be read")

    # Columns past the last one holding any header or data are formatting noise.
    width = 0
    for row in raw_rows:
        for position in range(len(row) - 1, -1, -1):
            if row[position] is not None:
                width = max(width, position + 1)
                break
    if width == 0:
        raise TableDecodeError(f"Sheet in '{name}' is empty or could not be read")

    header_row, *data = raw_rows
    padded_header = list(header_row[:width]) + [None] * (width - len(header_row))
    headers = _unique_headers(padded_header)

    rows = [list(row[:width]) for row in data]
    while rows and all(value is None for value in rows[-1]):
        rows.pop()

    return Table(
        headers=headers,
        rows=rows,
        merged_ranges=merged_ranges or [],
        validation_ranges=validation_ranges or [],
        name=name,
    )


def _read_merges(sheet: Worksheet) -> list[MergedRange]:
    return [
        MergedRange(
            start_row=rng.min_row - 1,
            start_col=rng.min_col - 1,
            end_row=rng.max_row - 1,
            end_col=rng.max_col - 1,
        )
        for rng in sheet.merged_cells.ranges
    ]


def _read_validations(sheet: Worksheet) -> list[ValidationRange]:
    validations = []
    for dv in sheet.data_validations.dataValidation:
        rule = {field: getattr(dv, field, None) for field in VALIDATION_RULE_FIELDS}
        for rng in dv.sqref.ranges:
            validations.append(
                ValidationRange(
                    start_row=rng.min_row - 1,
                    start_col=rng.min_col - 1,
                    end_row=rng.max_row - 1,
                    end_col=rng.max_col - 1,
                    rule=rule,
                )
            )
    return validations


def _from_workbook(workbook, name: str, sheet_name: Optional[str]) -> Table:
    try:
        if sheet_name:
            if sheet_name not in workbook.sheetnames:
                raise TableDecodeError(f"Sheet '{sheet_name}' not found in '{name}'")
            sheet = workbook[sheet_name]
        else:
            sheet = workbook.active

        raw_rows = [
            [_cell_value(value) for value in row]
            for row in sheet.iter_rows(values_only=True)
        ]
        table = _build_table(
            raw_rows,
            name,
            merged_ranges=_read_merges(sheet),
            validation_ranges=_read_validations(sheet),
        )
    finally:
        workbook.close()

    logger.info(
        f"Read '{name}' sheet '{sheet.title}': {len(table.headers)} columns, "
        f"{table.row_count} rows, {len(table.merged_ranges)} merged ranges, "
        f"{len(table.validation_ranges)} validation ranges"
    )
    return table


def _from_csv(handle: Iterable[str], name: str) -> Table:
    raw_rows = [[_csv_value(field) for field in row] for row in csv.reader(handle)]
    table = _build_table(raw_rows, name)
    logger.info(f"Read '{name}': {len(table.headers)} columns, {table.row_count} rows")
    return table


def _check_suffix(name: str) -> str:
    suffix = Path(name).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise TableDecodeError(
            f"Unsupported file type '{suffix or name}'; expected one of "
            f"{', '.join(sorted(SUPPORTED_SUFFIXES))}"
        )
    return suffix


def read_table(path: Union[str, Path], sheet_name: Optional[str] = None) -> Table:
    """
    Decode the first (or named) sheet of a file into a Table.

    The first row becomes the headers; merged cells and data validations are
    carried along in 0-based sheet coordinates.

    Raises:
        TableDecodeError: If the file type is unsupported or the sheet is empty
    """
    path = Path(path)
    suffix = _check_suffix(path.name)
    if not path.exists():
        raise TableDecodeError(f"File not found: {path}")

    if suffix in CSV_SUFFIXES:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return _from_csv(handle, path.name)

    try:
        workbook = openpyxl.load_workbook(path, data_only=True)
    except Exception as e:
        raise TableDecodeError(f"Failed to open '{path.name}': {e}") from e
    return _from_workbook(workbook, path.name, sheet_name)


def read_table_bytes(data: bytes, filename: str, sheet_name: Optional[str] = None) -> Table:
    """Decode uploaded file content into a Table."""
    suffix = _check_suffix(filename)

    if suffix in CSV_SUFFIXES:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise TableDecodeError(f"'{filename}' is not valid UTF-8: {e}") from e
        return _from_csv(io.StringIO(text, newline=""), filename)

    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    except Exception as e:
        raise TableDecodeError(f"Failed to open '{filename}': {e}") from e
    return _from_workbook(workbook, filename, sheet_name)


def _to_workbook(table: Table, sheet_title: str) -> openpyxl.Workbook:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = sheet_title

    sheet.append(table.headers)
    for row in table.rows:
        sheet.append(row)

    for merged in table.merged_ranges:
        sheet.merge_cells(
            start_row=merged.start_row + 1,
            start_column=merged.start_col + 1,
            end_row=merged.end_row + 1,
            end_column=merged.end_col + 1,
        )

    for validation in table.validation_ranges:
        rule = {
            k: v
            for k, v in validation.rule.items()
            if k in VALIDATION_RULE_FIELDS and v is not None
        }
        dv = DataValidation(**rule)
        dv.add(
            f"{get_column_letter(validation.start_col + 1)}{validation.start_row + 1}:"
            f"{get_column_letter(validation.end_col + 1)}{validation.end_row + 1}"
        )
        sheet.add_data_validation(dv)

    return workbook


def table_to_xlsx_bytes(table: Table, sheet_title: str = DEFAULT_SHEET_TITLE) -> bytes:
    """Encode a Table as XLSX file content."""
    buffer = io.BytesIO()
    _to_workbook(table, sheet_title).save(buffer)
    return buffer.getvalue()


def write_table(
    table: Table, path: Union[str, Path], sheet_title: str = DEFAULT_SHEET_TITLE
) -> Path:
    """Write a Table to an XLSX or CSV file, chosen by the path's suffix."""
    path = Path(path)
    suffix = _check_suffix(path.name)
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in CSV_SUFFIXES:
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(table.headers)
            for row in table.rows:
                writer.writerow(["" if value is None else value for value in row])
    else:
        _to_workbook(table, sheet_title).save(path)

    logger.info(f"Wrote {table.row_count} rows to {path}")
    return path


def output_name_for(filename: str, suffix: str = "_updated", extension: str = ".xlsx") -> str:
    """Derive an output filename, e.g. ``orders.csv`` -> ``orders_updated.xlsx``."""
    stem = Path(filename).stem or "table"
    return f"{stem}{suffix}{extension}"


def output_path_for(
    path: Union[str, Path], suffix: str = "_updated", extension: str = ".xlsx"
) -> Path:
    """Output path next to the input file."""
    path = Path(path)
    return path.with_name(output_name_for(path.name, suffix, extension))
