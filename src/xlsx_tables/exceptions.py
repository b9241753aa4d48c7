"""Exceptions raised while discovering or scanning XLSX tables.

Exception Hierarchy:
    XlsxTablesError (base)
    ├── ContainerError      archive cannot be read or a part is missing
    ├── SheetParseError     malformed manifest or worksheet XML
    └── UnknownTableError   scan requested for a table never discovered

Stopping a parse early is not an error and has no exception here; see
``xlsx_tables.sheet_parser.ParseOutcome``.
"""


class XlsxTablesError(Exception):
    """Base class for all xlsx-tables errors."""


class ContainerError(XlsxTablesError, OSError):
    """The XLSX container could not be opened or a required part is missing."""


class SheetParseError(XlsxTablesError, ValueError):
    """An XML part of the workbook is malformed."""

    def __init__(self, part: str, message: str) -> None:
        super().__init__(f"Failed to parse {part}: {message}")
        self.part = part


class UnknownTableError(XlsxTablesError, LookupError):
    """No internal sheet identifier is known for the requested table."""

    def __init__(self, table_name: str) -> None:
        super().__init__(f"No internal relationship id found for table: {table_name}")
        self.table_name = table_name
