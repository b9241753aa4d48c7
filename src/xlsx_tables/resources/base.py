"""Abstract base class for the byte sources a workbook is read from."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class Resource(ABC):
    """
    A readable location holding an XLSX container.

    Every call to ``read_chunks`` opens a fresh forward-only stream, so a
    resource can be read any number of times (once per schema build or
    scan) without keeping the file in memory.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short display name, e.g. the file name. Used as default schema name."""
        ...

    @abstractmethod
    def read_chunks(self) -> Iterator[bytes]:
        """
        Return an iterator of byte chunks from the start of the resource.

        Raises:
            ContainerError: If the resource cannot be read.
        """
        ...

    @abstractmethod
    def get_metadata(self) -> dict[str, Any]:
        """
        Return metadata about the resource.

        Returns:
            dict[str, Any]: Metadata dictionary containing at least:
                - 'size': Size in bytes (0 when unknown)
                - 'type': MIME type
                - 'source_type': Kind of resource ('local', 'http', 's3', 'memory')
        """
        ...

    def exists(self) -> bool:
        """Whether the resource can currently be read."""
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
