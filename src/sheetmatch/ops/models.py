"""Request and result models for reconciliation runs."""

from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from ..engine.models import (
    AuditReport,
    ColumnSelection,
    ReconcileMode,
    RowRange,
    Table,
    UpdateReport,
)


class ReconcileRequest(BaseModel):
    """Everything needed to reconcile two in-memory tables."""

    table_a: Table
    table_b: Table
    selection: ColumnSelection
    mode: ReconcileMode = ReconcileMode.UPDATE
    row_range: Optional[RowRange] = None
    skip_if_filled: bool = False


class RunResult(BaseModel):
    """Outcome of a reconciliation run."""

    mode: ReconcileMode
    report: Union[UpdateReport, AuditReport]
    output_path: Optional[Path] = None
    duration_ms: float = 0.0

    @property
    def summary(self) -> str:
        """One-line human readable summary."""
        report = self.report
        missing = len(report.not_found_keys)
        if isinstance(report, AuditReport):
            return (
                f"Audit: {report.matches} match(es), {report.mismatches} mismatch(es), "
                f"{missing} key(s) from table B not found in table A"
            )
        return (
            f"Update: {report.writes} cell(s) written to '{report.target_column}', "
            f"{missing} key(s) from table B not found in table A"
        )
