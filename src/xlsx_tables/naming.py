"""Column naming strategies and their per-table naming sessions."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
import logging

from typing_extensions import override

logger = logging.getLogger(__name__)


def column_letters(index: int) -> str:
    """Convert a zero-based column index to spreadsheet letters (0 -> 'A', 26 -> 'AA')."""
    if index < 0:
        raise ValueError(f"column index must be non-negative, got {index}")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _is_blank(name: str | None) -> bool:
    return name is None or not name.strip()


@dataclass(frozen=True)
class ColumnNamingContext:
    """What a session knows about the column it is naming."""

    table_name: str | None
    intrinsic_column_name: str | None
    column_index: int


class ColumnNamingSession(ABC):
    """
    Scoped name generator for the columns of one table.

    Names returned by ``get_next_column_name`` are never empty and never
    repeat within the session. A session keeps the names it has issued until
    it is closed; use it as a context manager so it is released on every
    exit path.
    """

    def __init__(self) -> None:
        self._issued: set[str] | None = set()

    @abstractmethod
    def propose_column_name(self, context: ColumnNamingContext) -> str | None:
        """Return the strategy's preferred name, which may be blank or taken."""
        ...

    def get_next_column_name(self, context: ColumnNamingContext) -> str:
        if self._issued is None:
            raise RuntimeError("Column naming session has already been closed")

        name = self.propose_column_name(context)
        if name is None or _is_blank(name):
            name = column_letters(context.column_index)

        if name in self._issued:
            candidate = f"{name}_{context.column_index}"
            counter = 2
            while candidate in self._issued:
                candidate = f"{name}_{context.column_index}_{counter}"
                counter += 1
            logger.debug("Column name '%s' already taken, using '%s'", name, candidate)
            name = candidate

        self._issued.add(name)
        return name

    @property
    def closed(self) -> bool:
        return self._issued is None

    def close(self) -> None:
        if self._issued is None:
            return
        self._issued = None
        self._release()

    def _release(self) -> None:
        """Hook for sessions holding resources beyond the issued names."""

    def __enter__(self) -> "ColumnNamingSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ColumnNamingStrategy(ABC):
    """Factory of column naming sessions, one per table being built."""

    @abstractmethod
    def start_column_naming_session(self) -> ColumnNamingSession: ...


class _AlphabeticSession(ColumnNamingSession):
    @override
    def propose_column_name(self, context: ColumnNamingContext) -> str | None:
        return column_letters(context.column_index)


class AlphabeticColumnNamingStrategy(ColumnNamingStrategy):
    """Names columns like the spreadsheet does: A, B, ..., Z, AA, AB, ..."""

    @override
    def start_column_naming_session(self) -> ColumnNamingSession:
        return _AlphabeticSession()


class _PositionalSession(ColumnNamingSession):
    def __init__(self, pattern: str) -> None:
        super().__init__()
        self.pattern = pattern

    @override
    def propose_column_name(self, context: ColumnNamingContext) -> str | None:
        return self.pattern.format(index=context.column_index)


class PositionalColumnNamingStrategy(ColumnNamingStrategy):
    """Names columns from their ordinal, e.g. ``column[0]``, ``column[1]``."""

    def __init__(self, pattern: str = "column[{index}]") -> None:
        if "{index}" not in pattern:
            raise ValueError("pattern must contain an '{index}' placeholder")
        self.pattern = pattern

    @override
    def start_column_naming_session(self) -> ColumnNamingSession:
        return _PositionalSession(self.pattern)


class _UniqueSession(ColumnNamingSession):
    def __init__(self) -> None:
        super().__init__()
        self._seen: dict[str, int] = {}

    @override
    def propose_column_name(self, context: ColumnNamingContext) -> str | None:
        name = context.intrinsic_column_name
        if name is None or _is_blank(name):
            return None
        name = name.strip()
        count = self._seen.get(name, 0) + 1
        self._seen[name] = count
        return name if count == 1 else f"{name}{count}"

    @override
    def _release(self) -> None:
        self._seen.clear()


class UniqueColumnNamingStrategy(ColumnNamingStrategy):
    """Uses the header text, numbering repeats: ``name``, ``name2``, ``name3``."""

    @override
    def start_column_naming_session(self) -> ColumnNamingSession:
        return _UniqueSession()


class _CustomSession(ColumnNamingSession):
    def __init__(self, names: Sequence[str], fallback: ColumnNamingSession) -> None:
        super().__init__()
        self.names = names
        self.position = 0
        self.fallback = fallback

    @override
    def propose_column_name(self, context: ColumnNamingContext) -> str | None:
        if self.position < len(self.names):
            name = self.names[self.position]
            self.position += 1
            return name
        return self.fallback.get_next_column_name(context)

    @override
    def _release(self) -> None:
        self.fallback.close()


class CustomColumnNamingStrategy(ColumnNamingStrategy):
    """Hands out caller-supplied names in order, then defers to a fallback strategy."""

    def __init__(
        self,
        names: Sequence[str],
        fallback: ColumnNamingStrategy | None = None,
    ) -> None:
        self.names = tuple(names)
        self.fallback = fallback or AlphabeticColumnNamingStrategy()

    @override
    def start_column_naming_session(self) -> ColumnNamingSession:
        return _CustomSession(self.names, self.fallback.start_column_naming_session())


class _DelegatingSession(ColumnNamingSession):
    def __init__(self, intrinsic: ColumnNamingSession, fallback: ColumnNamingSession) -> None:
        super().__init__()
        self.intrinsic = intrinsic
        self.fallback = fallback

    @override
    def propose_column_name(self, context: ColumnNamingContext) -> str | None:
        if _is_blank(context.intrinsic_column_name):
            return self.fallback.get_next_column_name(context)
        return self.intrinsic.get_next_column_name(context)

    @override
    def _release(self) -> None:
        try:
            self.intrinsic.close()
        finally:
            self.fallback.close()


class DelegatingIntrinsicSwitchColumnNamingStrategy(ColumnNamingStrategy):
    """Uses one strategy when the header cell has text and another when it is blank."""

    def __init__(
        self,
        intrinsic_strategy: ColumnNamingStrategy,
        fallback_strategy: ColumnNamingStrategy,
    ) -> None:
        self.intrinsic_strategy = intrinsic_strategy
        self.fallback_strategy = fallback_strategy

    @override
    def start_column_naming_session(self) -> ColumnNamingSession:
        return _DelegatingSession(
            self.intrinsic_strategy.start_column_naming_session(),
            self.fallback_strategy.start_column_naming_session(),
        )


def default_column_naming_strategy() -> ColumnNamingStrategy:
    """Header text when present (numbered on repeats), spreadsheet letters otherwise."""
    return DelegatingIntrinsicSwitchColumnNamingStrategy(
        UniqueColumnNamingStrategy(), AlphabeticColumnNamingStrategy()
    )
