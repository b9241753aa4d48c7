"""xlsx-tables: streaming XLSX reader exposing worksheets as typed tables."""

from xlsx_tables.configuration import ExcelConfiguration
from xlsx_tables.data_context import XlsxDataContext
from xlsx_tables.exceptions import (
    ContainerError,
    SheetParseError,
    UnknownTableError,
    XlsxTablesError,
)
from xlsx_tables.row_publisher import Row, RowPublisherDataSet
from xlsx_tables.schema import Column, ColumnType, Schema, Table

__all__ = [
    "Column",
    "ColumnType",
    "ContainerError",
    "ExcelConfiguration",
    "Row",
    "RowPublisherDataSet",
    "Schema",
    "SheetParseError",
    "Table",
    "UnknownTableError",
    "XlsxDataContext",
    "XlsxTablesError",
]
