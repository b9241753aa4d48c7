"""Thread-safe mapping of table names to internal sheet identifiers."""

from collections.abc import Iterable
import logging
import threading

from xlsx_tables.exceptions import UnknownTableError

logger = logging.getLogger(__name__)


class TableIdRegistry:
    """
    Insertion-ordered table name -> relationship id map.

    Shared by every discovery and scan of a data context. All access goes
    through an internal lock, so callers never coordinate among themselves.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids: dict[str, str] = {}

    def put(self, table_name: str, internal_id: str) -> None:
        with self._lock:
            previous = self._ids.get(table_name)
            self._ids[table_name] = internal_id
        if previous is not None and previous != internal_id:
            logger.debug(
                "Table '%s' moved from %s to %s", table_name, previous, internal_id
            )

    def get(self, table_name: str) -> str | None:
        with self._lock:
            return self._ids.get(table_name)

    def resolve(self, table_name: str) -> str:
        """Return the internal id of a table or raise UnknownTableError."""
        internal_id = self.get(table_name)
        if internal_id is None:
            raise UnknownTableError(table_name)
        return internal_id

    def retain_only(self, table_names: Iterable[str]) -> list[str]:
        """Drop every entry not named in ``table_names``; return the dropped names."""
        keep = set(table_names)
        with self._lock:
            stale = [name for name in self._ids if name not in keep]
            for name in stale:
                del self._ids[name]
        if stale:
            logger.info("Dropped %d stale table(s): %s", len(stale), ", ".join(stale))
        return stale

    def items(self) -> list[tuple[str, str]]:
        with self._lock:
            return list(self._ids.items())

    def __contains__(self, table_name: object) -> bool:
        with self._lock:
            return table_name in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
