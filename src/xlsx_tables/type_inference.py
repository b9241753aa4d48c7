"""Column type inference over a bounded sample of data rows."""

import logging

from xlsx_tables.schema import ColumnType
from xlsx_tables.sheet_parser import CellKind, SheetRow

logger = logging.getLogger(__name__)

_NUMERIC_TYPES = frozenset((ColumnType.INTEGER, ColumnType.DOUBLE))


def classify_cell(kind: CellKind, value: str | None) -> ColumnType:
    """
    Classify one cell.

    Numbers are INTEGER when they have no fractional part and DOUBLE
    otherwise; date formatted numbers are DATE. Anything that is not a
    number, date or boolean (text, errors, blanks) is STRING.
    """
    if kind is CellKind.NUMERIC and value is not None:
        try:
            return ColumnType.INTEGER if float(value) % 1 == 0 else ColumnType.DOUBLE
        except ValueError:
            return ColumnType.STRING
    if kind is CellKind.DATE:
        return ColumnType.DATE
    if kind is CellKind.BOOLEAN:
        return ColumnType.BOOLEAN
    return ColumnType.STRING


class ColumnTypeInferencer:
    """
    Infers one type per column from at most ``eagerness`` data rows.

    Each column starts without a type and adopts the type of its first
    observed cell. A later cell of a different type widens the column to
    STRING, and STRING never changes again. With ``widen_numeric_types`` a
    mix of INTEGER and DOUBLE becomes DOUBLE rather than STRING.

    Rows before the first data row (the header line and anything above it)
    and rows without cells are not sampled and do not use up the budget.
    """

    def __init__(
        self,
        eagerness: int,
        first_data_row_number: int = 0,
        widen_numeric_types: bool = False,
    ) -> None:
        if eagerness <= 0:
            raise ValueError(f"eagerness must be a positive integer, got {eagerness}")
        self.eagerness = eagerness
        self.first_data_row_number = first_data_row_number
        self.widen_numeric_types = widen_numeric_types
        self.sampled_rows = 0
        self._types: list[ColumnType | None] = []

    @property
    def exhausted(self) -> bool:
        return self.sampled_rows >= self.eagerness

    def observe(self, row: SheetRow) -> bool:
        """
        Sample one row.

        Returns:
            bool: True while more rows may be sampled.
        """
        if self.exhausted:
            return False
        if row.row_number < self.first_data_row_number or row.cell_count == 0:
            return True

        if row.width > len(self._types):
            # earlier, narrower rows had no cell in these columns
            missing = ColumnType.STRING if self.sampled_rows else None
            self._types.extend([missing] * (row.width - len(self._types)))
        self.sampled_rows += 1

        for index in range(len(self._types)):
            if index < row.width:
                observed = classify_cell(row.kinds[index], row.values[index])
            else:
                observed = ColumnType.STRING
            self._types[index] = self._widen(self._types[index], observed)

        return not self.exhausted

    def _widen(self, current: ColumnType | None, observed: ColumnType) -> ColumnType:
        if current is None:
            return observed
        if current is ColumnType.STRING or current is observed:
            return current
        if self.widen_numeric_types and {current, observed} <= _NUMERIC_TYPES:
            return ColumnType.DOUBLE
        return ColumnType.STRING

    def column_types(self, width: int = 0) -> list[ColumnType]:
        """
        Return the inferred types, one per column.

        The result covers the widest sampled row and at least ``width``
        columns; columns never observed are STRING.
        """
        width = max(width, len(self._types))
        types = [
            (self._types[index] if index < len(self._types) else None) or ColumnType.STRING
            for index in range(width)
        ]
        logger.debug("Inferred %d column type(s) from %d row(s)", width, self.sampled_rows)
        return types
