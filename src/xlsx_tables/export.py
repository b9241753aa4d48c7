"""Write datasets as CSV."""

from collections.abc import Iterator, Sequence
import csv
import io
import logging
from pathlib import Path
from typing import BinaryIO, TextIO

from xlsx_tables.row_publisher import RowPublisherDataSet

logger = logging.getLogger(__name__)


def row_to_bytes(values: Sequence[str | None], delimiter: str = ",") -> bytes:
    """
    Convert row values into a CSV byte chunk.

    None is written as an empty field.
    """
    output = io.StringIO()
    writer = csv.writer(output, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(["" if value is None else value for value in values])
    return output.getvalue().encode("utf-8")


def _csv_chunks(dataset: RowPublisherDataSet, header: bool, delimiter: str) -> Iterator[bytes]:
    if header:
        yield row_to_bytes([column.name for column in dataset.columns], delimiter)
    for row in dataset:
        yield row_to_bytes(row.values, delimiter)


def write_csv(
    dataset: RowPublisherDataSet,
    output: str | Path | BinaryIO | TextIO,
    header: bool = True,
    delimiter: str = ",",
) -> int:
    """
    Write a dataset as CSV and close it.

    Args:
        dataset: Rows to write.
        output: Output destination. Can be:
            - File path: writes to file
            - Binary file object: writes bytes
            - Text file object: writes strings
        header: Write the column names as first line.
        delimiter: Field delimiter.

    Returns:
        int: Number of data rows written.

    Raises:
        OSError: If output cannot be written.
    """
    try:
        chunks = _csv_chunks(dataset, header, delimiter)
        if isinstance(output, (str, Path)):
            with Path(output).open("w", encoding="utf-8", newline="") as f:
                for chunk in chunks:
                    f.write(chunk.decode("utf-8"))
        elif isinstance(output, io.TextIOBase):
            for chunk in chunks:
                output.write(chunk.decode("utf-8"))
        else:
            for chunk in chunks:
                output.write(chunk)  # type: ignore[arg-type]
    finally:
        dataset.close()

    logger.info("CSV export of %s complete: %d row(s)", dataset.name, dataset.row_count)
    return dataset.row_count
