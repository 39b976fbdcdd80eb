"""Command-line interface for SheetMatch."""

import argparse
import logging
import sys
from typing import Optional

import uvicorn

from .config import settings


def main(argv: Optional[list[str]] = None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="SheetMatch - match spreadsheet rows by key, then update or audit a column"
    )
    parser.add_argument(
        "--log-level", default=settings.log_level, help="Logging level (default: INFO)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help="Host to bind to (default: 127.0.0.1)"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help="Port to bind to (default: 8000)"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Update command
    update_parser = subparsers.add_parser(
        "update", help="Copy values from table B into table A where keys match"
    )
    _add_table_arguments(update_parser)
    target = update_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--value-a", help="Existing column of table A to write to")
    target.add_argument(
        "--new-column",
        action="store_true",
        help="Write to a new column created right after the key column",
    )
    update_parser.add_argument(
        "--skip-filled",
        action="store_true",
        help="Do not overwrite target cells that already hold data",
    )
    update_parser.add_argument(
        "--output", "-o", help="Output file (default: <table A>_updated.xlsx)"
    )

    # Audit command
    audit_parser = subparsers.add_parser(
        "audit", help="Check a column of table A against table B without changing it"
    )
    _add_table_arguments(audit_parser)
    audit_parser.add_argument("--value-a", required=True, help="Column of table A to check")
    audit_parser.add_argument(
        "--show-column", help="Extra table A column to print next to each mismatch"
    )

    # Inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Show headers and first rows of a file")
    inspect_parser.add_argument("file", help="XLSX or CSV file")
    inspect_parser.add_argument("--sheet", help="Sheet name (default: first sheet)")
    inspect_parser.add_argument(
        "--rows", type=int, default=settings.preview_rows, help="Rows to show (default: 5)"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "update":
        sys.exit(run_update(args))
    elif args.command == "audit":
        sys.exit(run_audit(args))
    elif args.command == "inspect":
        sys.exit(run_inspect(args))
    else:
        parser.print_help()
        sys.exit(1)


def _add_table_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("table_a", help="Target table (XLSX or CSV)")
    parser.add_argument("table_b", help="Source table (XLSX or CSV)")
    parser.add_argument("--key-a", required=True, help="Key column of table A")
    parser.add_argument("--key-b", required=True, help="Key column of table B")
    parser.add_argument("--value-b", required=True, help="Value column of table B")
    parser.add_argument("--sheet-a", help="Sheet of table A (default: first sheet)")
    parser.add_argument("--sheet-b", help="Sheet of table B (default: first sheet)")
    parser.add_argument("--start-row", type=int, help="First data row of table A to process (1-based)")
    parser.add_argument("--end-row", type=int, help="Last data row of table A to process (inclusive)")


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "sheetmatch.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


def _row_range(args):
    from .engine import RowRange

    if args.start_row is None and args.end_row is None:
        return None
    return RowRange(start=args.start_row, end=args.end_row)


def _run(args, mode, selection, **kwargs):
    """Run a reconciliation, printing errors instead of tracebacks."""
    from .engine import ReconcileError
    from .ops import ReconcileRunner
    from .sheets import TableDecodeError

    try:
        return ReconcileRunner().run_files(
            args.table_a,
            args.table_b,
            selection,
            mode=mode,
            row_range=_row_range(args),
            sheet_a=args.sheet_a,
            sheet_b=args.sheet_b,
            **kwargs,
        )
    except (ReconcileError, TableDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def _print_not_found(keys):
    print(f"Keys in table B not found in table A: {len(keys)}")
    for key in keys:
        print(f"  {key}")


def run_update(args) -> int:
    """Run update mode and write the new table A."""
    from .engine import ColumnSelection, ReconcileMode

    selection = ColumnSelection.of(
        args.key_a, args.value_a, args.key_b, args.value_b, create_new=args.new_column
    )
    result = _run(
        args,
        ReconcileMode.UPDATE,
        selection,
        skip_if_filled=args.skip_filled,
        output_path=args.output,
    )
    if result is None:
        return 1

    report = result.report
    if report.created_column:
        print(f"Created column: {report.target_column}")
    print(f"Cells updated: {report.writes}")
    _print_not_found(report.not_found_keys)
    print(f"Saved: {result.output_path}")
    return 0


def run_audit(args) -> int:
    """Run audit mode and print the mismatches."""
    from .engine import ColumnSelection, ReconcileMode

    selection = ColumnSelection.of(args.key_a, args.value_a, args.key_b, args.value_b)
    result = _run(args, ReconcileMode.AUDIT, selection)
    if result is None:
        return 1

    report = result.report
    extra = args.show_column
    if extra and extra not in report.inspection_columns:
        print(f"Error: Column '{extra}' is not another column of table A", file=sys.stderr)
        return 1

    print(f"Matches: {report.matches}")
    print(f"Mismatches: {report.mismatches}")
    for entry in report.mismatched_entries:
        line = (
            f"  {entry.key}: A ({report.compared_column}) = {entry.a_value!r}, "
            f"B ({report.source_column}) = {entry.b_value!r}"
        )
        if extra:
            line += f", {extra} = {entry.a_row.get(extra)!r}"
        print(line)
    _print_not_found(report.not_found_keys)
    return 0


def run_inspect(args) -> int:
    """Print a file's headers and its first rows."""
    from .sheets import TableDecodeError, read_table

    try:
        table = read_table(args.file, args.sheet)
    except TableDecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"{table.name}: {table.row_count} rows, {len(table.headers)} columns")
    print(" | ".join(table.headers))
    for row in table.preview(args.rows):
        print(" | ".join("" if value is None else str(value) for value in row.values()))
    if table.merged_ranges:
        print(f"Merged ranges: {len(table.merged_ranges)}")
    return 0


if __name__ == "__main__":
    main()
