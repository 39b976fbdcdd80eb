"""Key-to-value index over table B."""

from collections.abc import Iterator, Mapping
from typing import Callable

from .models import CellValue, Table

ShadowPredicate = Callable[[int, int], bool]


def key_token(value: CellValue) -> tuple[str, CellValue]:
    """Hashable identity for a cell value that never coerces across types.

    Plain dict keys would fold ``True`` into ``1``; tagging by kind keeps
    booleans, numbers and text apart. Ints and floats share a tag because a
    decoded sheet cannot tell ``1`` from ``1.0``.
    """
    if isinstance(value, bool):
        return "bool", value
    if isinstance(value, (int, float)):
        return "number", value
    if value is None:
        return "none", None
    return "text", value


def values_equal(left: CellValue, right: CellValue) -> bool:
    """Strict equality: ``5`` never equals ``"5"`` and ``True`` never equals ``1``."""
    return key_token(left) == key_token(right)


class IndexMap(Mapping):
    """Mapping from table B key values to table B values, last write wins."""

    def __init__(self):
        self._entries: dict[tuple[str, CellValue], tuple[CellValue, CellValue]] = {}

    def set(self, key: CellValue, value: CellValue) -> None:
        token = key_token(key)
        # Overwriting keeps the key at its first-seen position.
        self._entries[token] = (key, value)

    def __getitem__(self, key: CellValue) -> CellValue:
        return self._entries[key_token(key)][1]

    def __contains__(self, key: object) -> bool:
        return key_token(key) in self._entries  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[CellValue]:
        return (key for key, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


def _never_shadow(row_index: int, col_index: int) -> bool:
    return False


def build_index(
    table_b: Table,
    key_b: str,
    value_b: str,
    is_shadow: ShadowPredicate = _never_shadow,
) -> IndexMap:
    """Index table B's key column to its value column.

    Rows where either the key or the value cell is a merge shadow are left
    out entirely. A key that appears more than once resolves to the value of
    its last row.
    """
    key_col = table_b.require_column(key_b)
    value_col = table_b.require_column(value_b)

    index = IndexMap()
    for i, row in enumerate(table_b.rows):
        if is_shadow(i, key_col) or is_shadow(i, value_col):
            continue
        index.set(row[key_col], row[value_col])
    return index


def indexed_keys(index: IndexMap) -> list[CellValue]:
    """Distinct indexed keys in first-occurrence order."""
    return list(index)
