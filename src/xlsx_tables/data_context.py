"""Schema discovery and row scans over an XLSX workbook."""

from collections.abc import Sequence
from contextlib import closing
import logging
from pathlib import Path
import threading
from typing import Any

from xlsx_tables.configuration import ExcelConfiguration
from xlsx_tables.exceptions import UnknownTableError
from xlsx_tables.naming import ColumnNamingContext
from xlsx_tables.package import XlsxPackage
from xlsx_tables.registry import TableIdRegistry
from xlsx_tables.resources import Resource, resolve_resource
from xlsx_tables.row_publisher import RowPublisherDataSet, XlsxRowPublisherAction
from xlsx_tables.schema import Column, ColumnType, Schema, Table
from xlsx_tables.sheet_parser import SheetRow, XlsxSheetParser
from xlsx_tables.type_inference import ColumnTypeInferencer
from xlsx_tables.workbook import SheetEntry, build_tables

logger = logging.getLogger(__name__)


class _HeaderProbe:
    """
    Row callback used while building a table's columns.

    Keeps the header row (or, without a header line, the first row) and
    feeds the following rows to the type inferencer until its budget is
    spent, then asks the parser to stop.
    """

    def __init__(self, configuration: ExcelConfiguration) -> None:
        self.has_header = configuration.has_column_name_line
        self.header_search_start = 0
        if self.has_header:
            self.header_search_start = configuration.first_data_row_number - 1
        self.header: SheetRow | None = None
        self.inferencer: ColumnTypeInferencer | None = None
        if configuration.detect_column_types:
            self.inferencer = ColumnTypeInferencer(
                configuration.eagerness,
                first_data_row_number=configuration.first_data_row_number,
                widen_numeric_types=configuration.widen_numeric_types,
            )

    def __call__(self, row: SheetRow) -> bool:
        if self.header is None:
            if row.row_number < self.header_search_start:
                return True
            self.header = row
            if self.inferencer is None:
                return False
            if self.has_header:
                return True
        return self.inferencer is not None and self.inferencer.observe(row)


class XlsxDataContext:
    """
    Entry point for reading an XLSX workbook as tables.

    Every worksheet becomes a table whose columns are named from the header
    line and typed from a sample of the data rows. ``execute_query`` streams
    the rows of a table through a worker thread; nothing reads the whole
    sheet into memory.

    Each schema build or scan opens the container on its own, so a context
    can be shared between threads.
    """

    def __init__(
        self,
        source: str | Path | Resource,
        configuration: ExcelConfiguration | None = None,
        chunk_size: int = 16777216,
        **source_options: Any,
    ) -> None:
        """
        Initialize the data context.

        Args:
            source: Resource instance, S3 URI, HTTP(S) URL or local path.
            configuration: Discovery options (default: ExcelConfiguration()).
            chunk_size: Size of chunks to read from the source (default: 16MB).
            **source_options: Options for the resource (see resolve_resource).
        """
        self.resource = resolve_resource(source, chunk_size, **source_options)
        self.configuration = configuration or ExcelConfiguration()
        self._registry = TableIdRegistry()
        self._schema: Schema | None = None
        self._schema_lock = threading.Lock()
        self._date1904 = False

        logger.info(
            "XlsxDataContext initialized (source=%s, resource=%s)",
            self.resource.get_metadata().get("source_type"),
            self.resource.name,
        )

    def _open_package(self) -> XlsxPackage:
        return XlsxPackage.open(self.resource)

    def create_schema(self, name: str | None = None) -> Schema:
        """
        Discover the tables and columns of the workbook.

        Args:
            name: Schema name (default: the resource name).

        Raises:
            ContainerError: If the workbook cannot be read.
            SheetParseError: If the manifest or a worksheet is malformed.
        """
        schema_name = name or self.resource.name
        with self._open_package() as package:
            manifest = build_tables(package.manifest_stream(), self._registry)
            self._date1904 = manifest.date1904
            tables = tuple(
                self._build_table(package, sheet, manifest.date1904) for sheet in manifest.sheets
            )

        schema = Schema(schema_name, tables)
        logger.info("Built schema %s with %d table(s)", schema_name, len(tables))
        return schema

    def get_schema(self) -> Schema:
        """Return the schema snapshot, discovering it on first use."""
        with self._schema_lock:
            if self._schema is None:
                self._schema = self.create_schema()
            return self._schema

    def get_table(self, name: str) -> Table:
        table = self.get_schema().get_table_by_name(name)
        if table is None:
            raise UnknownTableError(name)
        return table

    def invalidate(self) -> None:
        """
        Re-read the workbook manifest after the file has changed.

        The table -> sheet mapping is refreshed and tables no longer in the
        workbook are forgotten. The cached schema is dropped; the next
        ``get_schema`` discovers it again.
        """
        with self._open_package() as package:
            manifest = build_tables(package.manifest_stream(), self._registry)
        self._date1904 = manifest.date1904
        self._registry.retain_only(manifest.table_names)
        with self._schema_lock:
            self._schema = None

    def execute_query(
        self,
        table: Table | str,
        columns: Sequence[Column | str] | None = None,
        max_rows: int | None = None,
    ) -> RowPublisherDataSet:
        """
        Stream the data rows of a table.

        Args:
            table: Table or table name.
            columns: Columns (or column names) to select, in output order.
                Defaults to every column of the table.
            max_rows: Stop after this many rows (default: no limit).

        Returns:
            RowPublisherDataSet: Close it when done, or use it in a ``with`` block.

        Raises:
            UnknownTableError: If the table was never discovered.
            ValueError: If a column name is not part of the table.
        """
        if isinstance(table, str):
            table = self.get_table(table)
        relationship_id = self._registry.resolve(table.name)
        selected = self._select_columns(table, columns)

        package = self._open_package()
        try:
            action = XlsxRowPublisherAction(
                package,
                relationship_id,
                selected,
                self.configuration,
                date1904=self._date1904,
                table_name=table.name,
                first_data_row_number=table.first_data_row_number,
            )
            return RowPublisherDataSet(selected, max_rows, action, package.release, name=table.name)
        except Exception:
            package.release()
            raise

    def get_metadata(self) -> dict[str, Any]:
        """Return metadata about the underlying resource."""
        return self.resource.get_metadata()

    @staticmethod
    def _select_columns(table: Table, columns: Sequence[Column | str] | None) -> list[Column]:
        if columns is None:
            return [column for column in table.columns if column.queryable]

        selected = []
        for column in columns:
            if isinstance(column, str):
                found = table.get_column_by_name(column)
                if found is None:
                    raise ValueError(f"Column '{column}' not found in table '{table.name}'")
                column = found
            selected.append(column)
        return selected

    def _build_table(self, package: XlsxPackage, sheet: SheetEntry, date1904: bool) -> Table:
        probe = _HeaderProbe(self.configuration)
        parser = XlsxSheetParser(
            probe,
            package.shared_strings,
            package.styles,
            self.configuration,
            date1904=date1904,
            part_name=package.part_path(sheet.relationship_id),
        )
        with closing(package.part_stream(sheet.relationship_id)) as chunks:
            parser.parse(chunks)

        columns = self._build_columns(sheet.name, probe)
        header_row_number = None
        if probe.has_header and probe.header is not None:
            header_row_number = probe.header.row_number
        logger.debug(
            "Table %s: %d column(s), header row %s", sheet.name, len(columns), header_row_number
        )
        return Table(sheet.name, columns, sheet.relationship_id, header_row_number)

    def _build_columns(self, table_name: str, probe: _HeaderProbe) -> tuple[Column, ...]:
        header = probe.header
        if header is None:
            logger.warning("Sheet %s has no rows, no columns created", table_name)
            return ()

        if probe.inferencer is not None:
            types = probe.inferencer.column_types(header.width)
        else:
            types = [ColumnType.STRING] * header.width

        columns: list[Column] = []
        strategy = self.configuration.column_naming_strategy
        with strategy.start_column_naming_session() as session:
            for index, column_type in enumerate(types):
                cell_value = header.values[index] if index < header.width else None
                intrinsic_name = cell_value if probe.has_header else None
                name = session.get_next_column_name(
                    ColumnNamingContext(table_name, intrinsic_name, index)
                )
                if self.configuration.skip_empty_columns and not cell_value:
                    continue
                columns.append(Column(name, column_type, len(columns), index))
        return tuple(columns)
