"""Command-line interface for inspecting and exporting XLSX tables."""

import logging
import sys

import typer

from xlsx_tables.configuration import ExcelConfiguration
from xlsx_tables.data_context import XlsxDataContext
from xlsx_tables.exceptions import XlsxTablesError
from xlsx_tables.export import write_csv

app = typer.Typer(add_completion=False, help="Read XLSX worksheets as typed tables.")

SOURCE_HELP = "Data source: s3://bucket/key, https://url, or /path/to/file.xlsx"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


def _data_context(
    source: str, column_name_line: int, detect_types: bool, eagerness: int
) -> XlsxDataContext:
    configuration = ExcelConfiguration(
        detect_column_types=detect_types,
        eagerness=eagerness,
        column_name_line_number=column_name_line or None,
    )
    return XlsxDataContext(source, configuration=configuration)


def _fail(error: Exception, verbose: bool) -> typer.Exit:
    if isinstance(error, FileNotFoundError):
        typer.echo(f"Error: File not found: {error}", err=True)
    elif isinstance(error, ImportError):
        typer.echo(
            f"Error: Missing dependency: {error}\nInstall with: pip install xlsx-tables[all]",
            err=True,
        )
    else:
        typer.echo(f"Error: {error}", err=True)
        if verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
    return typer.Exit(code=1)


@app.command()
def tables(
    source: str = typer.Argument(..., help=SOURCE_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """List the tables (worksheets) of a workbook."""
    _configure_logging(verbose)
    try:
        schema = XlsxDataContext(
            source, configuration=ExcelConfiguration(detect_column_types=False)
        ).get_schema()
    except (XlsxTablesError, OSError, ValueError, ImportError) as e:
        raise _fail(e, verbose) from None

    for name in schema.table_names:
        typer.echo(name)


@app.command()
def schema(
    source: str = typer.Argument(..., help=SOURCE_HELP),
    column_name_line: int = typer.Option(
        1, help="One-based line holding the column names, 0 for none"
    ),
    detect_types: bool = typer.Option(True, help="Infer column types from the data"),
    eagerness: int = typer.Option(1000, help="Rows sampled for type inference"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Show every table with its columns and inferred types."""
    _configure_logging(verbose)
    try:
        discovered = _data_context(source, column_name_line, detect_types, eagerness).get_schema()
    except (XlsxTablesError, OSError, ValueError, ImportError) as e:
        raise _fail(e, verbose) from None

    for table in discovered.tables:
        typer.echo(f"{table.name}:")
        for column in table.columns:
            typer.echo(f"  {column.ordinal}\t{column.name}\t{column.type.value}")


@app.command()
def rows(
    source: str = typer.Argument(..., help=SOURCE_HELP),
    table: str | None = typer.Option(None, "--table", "-t", help="Table to read (default: first)"),
    column: list[str] | None = typer.Option(
        None, "--column", "-c", help="Column to select; repeat for several (default: all)"
    ),
    max_rows: int | None = typer.Option(None, help="Stop after this many rows"),
    output: str | None = typer.Option(None, help="Output CSV file path (default: stdout)"),
    column_name_line: int = typer.Option(
        1, help="One-based line holding the column names, 0 for none"
    ),
    header: bool = typer.Option(True, help="Write the column names as first CSV line"),
    detect_types: bool = typer.Option(True, help="Infer column types from the data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Stream the rows of a table as CSV."""
    _configure_logging(verbose)
    try:
        context = _data_context(source, column_name_line, detect_types, 1000)
        if table is None:
            names = context.get_schema().table_names
            if not names:
                raise XlsxTablesError("Workbook has no worksheets")
            table = names[0]
        dataset = context.execute_query(table, column or None, max_rows=max_rows)
        count = write_csv(dataset, output or sys.stdout.buffer, header=header)
    except (XlsxTablesError, OSError, ValueError, ImportError) as e:
        raise _fail(e, verbose) from None

    if output:
        typer.echo(f"{count} row(s) written to: {output}", err=True)


if __name__ == "__main__":
    app()
