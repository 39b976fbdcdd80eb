"""Runs reconciliations end to end: decode, reconcile, encode."""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from ..config import settings
from ..engine import ReconcileError, UpdateReport, reconcile
from ..engine.models import ColumnSelection, ReconcileMode, RowRange
from ..sheets import output_path_for, read_table, write_table
from .models import ReconcileRequest, RunResult

logger = logging.getLogger(__name__)


class ReconcileRunner:
    """
    Orchestrates reconciliation runs.

    The engine itself is pure and silent; this layer adds file handling,
    timing and logging around it.
    """

    def __init__(
        self,
        column_suffix: Optional[str] = None,
        output_suffix: Optional[str] = None,
    ):
        self.column_suffix = column_suffix or settings.new_column_suffix
        self.output_suffix = output_suffix or settings.output_suffix

    def run_tables(self, request: ReconcileRequest) -> RunResult:
        """
        Reconcile two in-memory tables.

        Raises:
            ReconcileError: If the selection, row range or merges are invalid
        """
        start_time = time.time()
        selection = request.selection

        logger.info(
            f"Running {request.mode.value} on '{request.table_a.name or 'A'}' "
            f"({request.table_a.row_count} rows) against "
            f"'{request.table_b.name or 'B'}' ({request.table_b.row_count} rows): "
            f"{selection.key_a} <- {selection.key_b}, value {selection.value_b}"
        )

        try:
            report = reconcile(
                request.mode,
                request.table_a,
                request.table_b,
                selection,
                row_range=request.row_range,
                skip_if_filled=request.skip_if_filled,
                column_suffix=self.column_suffix,
            )
        except ReconcileError as e:
            logger.error(f"Reconciliation rejected: {e}")
            raise

        result = RunResult(
            mode=request.mode,
            report=report,
            duration_ms=(time.time() - start_time) * 1000,
        )
        logger.info(f"{result.summary} ({result.duration_ms:.2f}ms)")
        return result

    def run_files(
        self,
        path_a: Union[str, Path],
        path_b: Union[str, Path],
        selection: ColumnSelection,
        mode: ReconcileMode = ReconcileMode.UPDATE,
        row_range: Optional[RowRange] = None,
        skip_if_filled: bool = False,
        output_path: Optional[Union[str, Path]] = None,
        sheet_a: Optional[str] = None,
        sheet_b: Optional[str] = None,
    ) -> RunResult:
        """
        Reconcile two files; in update mode the new table A is written out.

        The output defaults to ``<stem_of_a><output_suffix>.xlsx`` next to
        table A.

        Raises:
            TableDecodeError: If either file cannot be read
            ReconcileError: If the selection, row range or merges are invalid
        """
        table_a = read_table(path_a, sheet_a)
        table_b = read_table(path_b, sheet_b)

        result = self.run_tables(
            ReconcileRequest(
                table_a=table_a,
                table_b=table_b,
                selection=selection,
                mode=mode,
                row_range=row_range,
                skip_if_filled=skip_if_filled,
            )
        )

        if isinstance(result.report, UpdateReport):
            target = Path(output_path) if output_path else output_path_for(
                path_a, self.output_suffix
            )
            result.output_path = write_table(result.report.updated_table, target)

        return result
