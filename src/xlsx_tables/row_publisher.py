"""Pull-based datasets backed by a push-based sheet parse."""

from collections.abc import Callable, Iterator, Sequence
from contextlib import closing
from dataclasses import dataclass
import logging
import queue
import threading

from xlsx_tables.configuration import ExcelConfiguration
from xlsx_tables.package import XlsxPackage
from xlsx_tables.schema import Column
from xlsx_tables.sheet_parser import ParseOutcome, SheetRow, XlsxSheetParser
from xlsx_tables.styles import CellStyle

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 64
POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class Row:
    """A published row, restricted to the selected columns."""

    row_number: int
    columns: tuple[Column, ...]
    values: tuple[str | None, ...]
    styles: tuple[CellStyle | None, ...]

    def get(self, column: Column | str | int) -> str | None:
        """Value by column, column name or position in the selection."""
        if isinstance(column, int):
            return self.values[column]
        for index, selected in enumerate(self.columns):
            if selected == column or selected.name == column:
                return self.values[index]
        raise KeyError(column)

    def as_dict(self) -> dict[str, str | None]:
        return {column.name: value for column, value in zip(self.columns, self.values)}


class _End:
    pass


_END = _End()


@dataclass(frozen=True)
class _Failure:
    error: BaseException


class RowPublisher:
    """
    Producer side of a dataset: hands rows to the consumer through a bounded queue.

    ``publish`` blocks while the queue is full and returns False once the
    row cap is reached or the consumer has gone away, which is the parser's
    cue to stop.
    """

    def __init__(self, max_rows: int | None, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        self.max_rows = max_rows
        self.published = 0
        self.outcome: ParseOutcome | None = None
        self.queue: queue.Queue[Row | _End | _Failure] = queue.Queue(maxsize=buffer_size)
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def publish(self, row: Row) -> bool:
        if self.max_rows is not None and self.published >= self.max_rows:
            return False
        if not self._put(row):
            return False
        self.published += 1
        return self.max_rows is None or self.published < self.max_rows

    def finished(self, outcome: ParseOutcome) -> None:
        self.outcome = outcome
        self._put(_END)

    def failed(self, error: BaseException) -> None:
        self._put(_Failure(error))

    def stop(self) -> None:
        self._stop.set()

    def drain(self) -> None:
        while True:
            try:
                self.queue.get_nowait()
            except queue.Empty:
                return

    def _put(self, item: Row | _End | _Failure) -> bool:
        while not self._stop.is_set():
            try:
                self.queue.put(item, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False


PublishAction = Callable[[RowPublisher], ParseOutcome]


class RowPublisherDataSet:
    """
    A single-pass, optionally capped sequence of rows.

    The publish action runs on a worker thread started by the first pull and
    pushes rows into a bounded queue; ``next`` pulls them in order. ``close``
    stops the worker, waits for it and then runs ``closeable`` exactly once.
    Close the dataset (or use it as a context manager) whether or not it
    was read to the end.
    """

    def __init__(
        self,
        columns: Sequence[Column],
        max_rows: int | None,
        publish_action: PublishAction,
        closeable: Callable[[], None] | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        name: str = "dataset",
    ) -> None:
        if max_rows is not None and max_rows < 0:
            raise ValueError(f"max_rows must be None or non-negative, got {max_rows}")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")

        self.columns = tuple(columns)
        self.max_rows = max_rows
        self.name = name
        self.row_count = 0
        self._publish_action = publish_action
        self._closeable = closeable
        self._publisher = RowPublisher(max_rows, buffer_size)
        self._worker: threading.Thread | None = None
        self._lock = threading.Lock()
        self._closed = False
        self._exhausted = False
        self._peeked: Row | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def outcome(self) -> ParseOutcome | None:
        """How the underlying parse ended, once it has."""
        return self._publisher.outcome

    def has_next(self) -> bool:
        if self._peeked is None:
            self._peeked = self._pull()
        return self._peeked is not None

    def next(self) -> Row | None:
        """Return the next row, or None at the end of the dataset."""
        if self._peeked is not None:
            row, self._peeked = self._peeked, None
            return row
        return self._pull()

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = self.next()
        if row is None:
            raise StopIteration
        return row

    def _start(self) -> threading.Thread | None:
        with self._lock:
            if self._worker is None and not self._closed:
                self._worker = threading.Thread(
                    target=self._run, daemon=True, name=f"RowPublisher-{self.name}"
                )
                self._worker.start()
            return self._worker

    def _run(self) -> None:
        try:
            outcome = self._publish_action(self._publisher)
        except Exception as e:
            logger.exception("Error publishing rows of %s: %s", self.name, e)
            self._publisher.failed(e)
        else:
            self._publisher.finished(outcome)

    def _pull(self) -> Row | None:
        if self._closed or self._exhausted:
            return None
        worker = self._start()
        if worker is None:
            return None

        while True:
            try:
                item = self._publisher.queue.get(timeout=POLL_INTERVAL)
                break
            except queue.Empty:
                if self._closed:
                    return None
                if not worker.is_alive() and self._publisher.queue.empty():
                    self._exhausted = True
                    return None

        if isinstance(item, _End):
            self._exhausted = True
            return None
        if isinstance(item, _Failure):
            self._exhausted = True
            self.close()
            raise item.error

        self.row_count += 1
        return item

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._peeked = None
            worker = self._worker

        self._publisher.stop()
        self._publisher.drain()
        if worker is not None and worker is not threading.current_thread():
            worker.join()
        if self._closeable is not None:
            self._closeable()
        logger.debug("Closed %s after %d row(s)", self.name, self.row_count)

    def __enter__(self) -> "RowPublisherDataSet":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class XlsxRowPublisherAction:
    """
    Scans one worksheet and publishes its data rows.

    Rows up to and including the header row are skipped. The header row
    is the one discovery took the column names from
    (``first_data_row_number``), falling back to the configured column name
    line. Each remaining row is projected onto the selected columns by their
    ``cell_index``. Cells missing from a row read as None.
    """

    def __init__(
        self,
        package: XlsxPackage,
        relationship_id: str,
        columns: Sequence[Column],
        configuration: ExcelConfiguration,
        date1904: bool = False,
        table_name: str = "",
        first_data_row_number: int | None = None,
    ) -> None:
        self.package = package
        self.relationship_id = relationship_id
        self.columns = tuple(columns)
        self.configuration = configuration
        self.date1904 = date1904
        self.table_name = table_name or relationship_id
        if first_data_row_number is None:
            first_data_row_number = configuration.first_data_row_number
        self.first_data_row_number = first_data_row_number

    def __call__(self, publisher: RowPublisher) -> ParseOutcome:
        first_data_row = self.first_data_row_number

        def row_callback(row: SheetRow) -> bool:
            if row.row_number < first_data_row:
                return True
            return publisher.publish(self._project(row))

        parser = XlsxSheetParser(
            row_callback,
            self.package.shared_strings,
            self.package.styles,
            self.configuration,
            date1904=self.date1904,
            part_name=self.package.part_path(self.relationship_id),
        )
        with closing(self.package.part_stream(self.relationship_id)) as chunks:
            outcome = parser.parse(chunks)

        logger.info(
            "Published %d row(s) from table %s (%s)",
            publisher.published,
            self.table_name,
            outcome.value,
        )
        return outcome

    def _project(self, row: SheetRow) -> Row:
        values = []
        styles = []
        for column in self.columns:
            if column.cell_index < row.width:
                values.append(row.values[column.cell_index])
                styles.append(row.styles[column.cell_index])
            else:
                values.append(None)
                styles.append(None)
        return Row(row.row_number, self.columns, tuple(values), tuple(styles))
