"""Read-only configuration for XLSX schema discovery and scanning."""

from dataclasses import dataclass, field

from xlsx_tables.naming import ColumnNamingStrategy, default_column_naming_strategy

NO_COLUMN_NAME_LINE = 0
DEFAULT_COLUMN_NAME_LINE = 1
DEFAULT_EAGERNESS = 1000


@dataclass(frozen=True)
class ExcelConfiguration:
    """
    Options controlling how sheets are turned into tables.

    Attributes:
        detect_column_types: Sample data rows to infer column types. When False
            every column is a STRING column.
        eagerness: Maximum number of data rows sampled for type inference.
        column_name_line_number: One-based line holding the column names, or
            None (or 0) when the sheet has no header row.
        skip_empty_lines: Rows without any cells are not reported.
        skip_empty_columns: Columns with an empty header cell are left out.
        column_naming_strategy: Factory for per-table naming sessions.
        widen_numeric_types: Let a column mixing INTEGER and DOUBLE values
            become DOUBLE instead of STRING.
    """

    detect_column_types: bool = True
    eagerness: int = DEFAULT_EAGERNESS
    column_name_line_number: int | None = DEFAULT_COLUMN_NAME_LINE
    skip_empty_lines: bool = True
    skip_empty_columns: bool = False
    column_naming_strategy: ColumnNamingStrategy = field(
        default_factory=default_column_naming_strategy
    )
    widen_numeric_types: bool = False

    def __post_init__(self) -> None:
        if self.eagerness <= 0:
            raise ValueError(f"eagerness must be a positive integer, got {self.eagerness}")
        if self.column_name_line_number is not None and self.column_name_line_number < 0:
            raise ValueError(
                "column_name_line_number must be None or non-negative, "
                f"got {self.column_name_line_number}"
            )

    @property
    def has_column_name_line(self) -> bool:
        return bool(self.column_name_line_number)

    @property
    def first_data_row_number(self) -> int:
        """Zero-based number of the first row that holds data rather than names."""
        return self.column_name_line_number or 0
