"""Immutable schema model produced by XLSX discovery."""

from dataclasses import dataclass
from enum import Enum


class ColumnType(Enum):
    """Scalar types a sheet column can be inferred as."""

    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    STRING = "STRING"


@dataclass(frozen=True)
class Column:
    """
    A named, typed column of a table.

    ``ordinal`` is the column's index within its table. ``cell_index`` is the
    zero-based sheet column the values are read from; the two only differ
    when empty columns were skipped during discovery.
    """

    name: str
    type: ColumnType
    ordinal: int
    cell_index: int
    queryable: bool = True


@dataclass(frozen=True)
class Table:
    """
    A worksheet exposed as a table.

    ``header_row_number`` is the zero-based sheet row the column names were
    taken from, or None when the table has no header row. Scans start at
    the row after it.
    """

    name: str
    columns: tuple[Column, ...]
    internal_id: str
    header_row_number: int | None = None

    @property
    def first_data_row_number(self) -> int | None:
        """Zero-based row the data starts at, when discovery found a header row."""
        if self.header_row_number is None:
            return None
        return self.header_row_number + 1

    def __post_init__(self) -> None:
        for index, column in enumerate(self.columns):
            if column.ordinal != index:
                raise ValueError(
                    f"Column '{column.name}' of table '{self.name}' has ordinal "
                    f"{column.ordinal} but is at position {index}"
                )

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def get_column_by_name(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


@dataclass(frozen=True)
class Schema:
    """Snapshot of all tables of a workbook, in workbook order."""

    name: str
    tables: tuple[Table, ...]

    @property
    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]

    def get_table_by_name(self, name: str) -> Table | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None
