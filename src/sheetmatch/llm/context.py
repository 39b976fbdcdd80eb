"""Render selected table cells as markdown context for the assistant."""

from typing import Iterable

from pydantic import BaseModel, Field

from ..engine.models import CellValue, Table


class CellSelection(BaseModel):
    """Selected cells as 0-based ``(data_row, column)`` coordinates."""

    cells: set[tuple[int, int]] = Field(default_factory=set)

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> "CellSelection":
        """Parse ``"row,col"`` coordinate strings."""
        cells = set()
        for key in keys:
            row, col = key.split(",")
            cells.add((int(row), int(col)))
        return cls(cells=cells)

    def __len__(self) -> int:
        return len(self.cells)


def _format_cell(value: CellValue) -> str:
    if value is None:
        return ""
    return str(value).replace("|", "\\|").replace("\n", " ")


def format_selection(table: Table, selection: CellSelection, title: str) -> str:
    """
    Build a markdown table spanning every selected row and column.

    The result covers the bounding rows and columns of the selection, sorted,
    so unselected cells that share a row and column with selected ones are
    included too. An empty selection renders as an empty string.
    """
    if not selection.cells:
        return ""

    rows = sorted({row for row, _ in selection.cells if 0 <= row < table.row_count})
    cols = sorted({col for _, col in selection.cells if 0 <= col < len(table.headers)})
    if not rows or not cols:
        return ""

    headers = [table.headers[col] for col in cols]
    lines = [
        f"| {' | '.join(headers)} |",
        f"| {' | '.join('---' for _ in headers)} |",
    ]
    for row in rows:
        values = [_format_cell(table.rows[row][col]) for col in cols]
        lines.append(f"| {' | '.join(values)} |")

    return f"\n## {title} (selected data)\n" + "\n".join(lines)


def build_context(sections: Iterable[str]) -> str:
    """Join rendered selections, dropping empty ones."""
    return "".join(section for section in sections if section).strip()
