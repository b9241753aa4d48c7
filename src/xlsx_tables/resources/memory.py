"""In-memory resource, handy for uploads and tests."""

from collections.abc import Iterator
from typing import Any

from typing_extensions import override

from xlsx_tables.resources.base import XLSX_MIME_TYPE, Resource


class InMemoryResource(Resource):
    """Serve an XLSX container that is already held as bytes."""

    def __init__(self, data: bytes, name: str = "memory.xlsx", chunk_size: int = 65536) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.data = data
        self._name = name
        self.chunk_size = chunk_size

    @property
    @override
    def name(self) -> str:
        return self._name

    @override
    def read_chunks(self) -> Iterator[bytes]:
        view = memoryview(self.data)
        for start in range(0, len(view), self.chunk_size):
            yield bytes(view[start : start + self.chunk_size])

    @override
    def get_metadata(self) -> dict[str, Any]:
        return {
            "size": len(self.data),
            "type": XLSX_MIME_TYPE,
            "source_type": "memory",
            "name": self._name,
        }
