"""Workbooks on the local file system."""

from collections.abc import Iterator
import logging
from pathlib import Path
from typing import Any

from typing_extensions import override

from xlsx_tables.exceptions import ContainerError
from xlsx_tables.resources.base import XLSX_MIME_TYPE, Resource

logger = logging.getLogger(__name__)


class LocalFileResource(Resource):
    """
    An XLSX file on disk.

    The path is checked once, when the resource is created. The file may
    still disappear afterwards: ``exists()`` then turns False, reads fail
    with ``ContainerError`` and the metadata reports size 0.
    """

    def __init__(self, file_path: str | Path, chunk_size: int = 16777216) -> None:
        """
        Args:
            file_path: Path of the workbook.
            chunk_size: Bytes per chunk handed to the unzipper (default: 16MB).

        Raises:
            FileNotFoundError: If nothing exists at ``file_path``.
            ValueError: If ``file_path`` is a directory or another non-file.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        if not path.is_file():
            raise ValueError(f"Path is not a file: {file_path}")

        self.file_path = path
        self.chunk_size = chunk_size
        logger.info("LocalFileResource initialized for: %s", path)

    @property
    @override
    def name(self) -> str:
        return self.file_path.name

    @override
    def read_chunks(self) -> Iterator[bytes]:
        """
        Stream the file from its first byte.

        Raises:
            ContainerError: If the file can no longer be opened or read.
        """
        try:
            with self.file_path.open("rb") as f:
                yield from iter(lambda: f.read(self.chunk_size), b"")
        except OSError as e:
            logger.exception("Error reading file %s: %s", self.file_path, e)
            raise ContainerError(f"Failed to read file {self.file_path}: {e}") from e

    @override
    def exists(self) -> bool:
        return self.file_path.is_file()

    @override
    def get_metadata(self) -> dict[str, Any]:
        try:
            stat = self.file_path.stat()
        except OSError:
            logger.warning("Cannot stat %s", self.file_path)
            size, last_modified = 0, None
        else:
            size, last_modified = stat.st_size, stat.st_mtime

        return {
            "size": size,
            "type": XLSX_MIME_TYPE,
            "source_type": "local",
            "path": str(self.file_path),
            "last_modified": last_modified,
        }
