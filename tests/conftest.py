"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable, Optional

import pytest

from sheetmatch.engine import ColumnSelection, MergedRange, Table
from sheetmatch.llm import AssistantConfigStore


@pytest.fixture
def make_table() -> Callable[..., Table]:
    """Factory for tables built from headers and positional rows."""

    def _make(
        headers: list[str],
        rows: list[list],
        merged: Optional[list[tuple[int, int, int, int]]] = None,
        name: str = "",
    ) -> Table:
        return Table(
            headers=headers,
            rows=[list(row) for row in rows],
            merged_ranges=[
                MergedRange(start_row=r0, start_col=c0, end_row=r1, end_col=c1)
                for r0, c0, r1, c1 in (merged or [])
            ],
            name=name,
        )

    return _make


@pytest.fixture
def table_a(make_table) -> Table:
    """Target table with one empty and one filled value."""
    return make_table(["id", "val"], [[1, None], [2, "x"]], name="a.xlsx")


@pytest.fixture
def table_b(make_table) -> Table:
    """Source table matching both keys of table_a."""
    return make_table(["id", "v"], [[1, "a"], [2, "x"]], name="b.xlsx")


@pytest.fixture
def selection() -> ColumnSelection:
    """Write table B's ``v`` into table A's ``val``, matching on ``id``."""
    return ColumnSelection.of("id", "val", "id", "v")


@pytest.fixture
def config_store(tmp_path: Path) -> AssistantConfigStore:
    """Assistant config store backed by a temporary file."""
    return AssistantConfigStore(tmp_path / "assistant_config.json")
