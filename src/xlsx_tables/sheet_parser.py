"""Push parser turning worksheet XML into row callbacks."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
import datetime
from enum import Enum
import logging
import xml.etree.ElementTree as ET

from openpyxl.utils.datetime import CALENDAR_MAC_1904, CALENDAR_WINDOWS_1900, from_excel

from xlsx_tables.configuration import ExcelConfiguration
from xlsx_tables.exceptions import SheetParseError
from xlsx_tables.styles import CellStyle, StyleTable

logger = logging.getLogger(__name__)


class CellKind(Enum):
    """What a cell holds, as far as type detection is concerned."""

    NUMERIC = "numeric"
    DATE = "date"
    BOOLEAN = "boolean"
    STRING = "string"
    ERROR = "error"
    BLANK = "blank"


class ParserState(Enum):
    NOT_STARTED = "not_started"
    PARSING = "parsing"
    STOPPED = "stopped"
    COMPLETE = "complete"
    FAILED = "failed"


class ParseOutcome(Enum):
    """How a successful parse ended."""

    COMPLETE = "complete"
    STOPPED = "stopped"


@dataclass
class SheetRow:
    """
    One physical row of a worksheet.

    ``values``, ``styles`` and ``kinds`` are dense up to the last cell of the
    row; positions without a cell hold None, None and BLANK.
    """

    row_number: int
    values: list[str | None] = field(default_factory=list)
    styles: list[CellStyle | None] = field(default_factory=list)
    kinds: list[CellKind] = field(default_factory=list)
    cell_count: int = 0

    @property
    def width(self) -> int:
        return len(self.values)


RowCallback = Callable[[SheetRow], bool]


def address_to_index(address: str) -> int:
    """Convert a cell address to its zero-based column index ('B7' -> 1)."""
    col_part = "".join(filter(str.isalpha, address.upper()))
    index = 0
    for char in col_part:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _excel_date_text(value: float, date1904: bool) -> str:
    converted = from_excel(value, epoch=CALENDAR_MAC_1904 if date1904 else CALENDAR_WINDOWS_1900)
    if isinstance(converted, datetime.datetime) and converted.time() == datetime.time():
        return converted.date().isoformat()
    return converted.isoformat()


class XlsxSheetParser:
    """
    Incremental parser for one worksheet part.

    Chunks are fed to an ``XMLPullParser`` as they arrive; every completed
    ``<row>`` is handed to ``row_callback``. A callback returning False ends
    the parse right there and ``parse`` returns ``ParseOutcome.STOPPED``.
    Only the open row is kept in memory.
    """

    def __init__(
        self,
        row_callback: RowCallback,
        shared_strings: list[str],
        styles: StyleTable,
        configuration: ExcelConfiguration,
        date1904: bool = False,
        part_name: str = "worksheet",
    ) -> None:
        self.row_callback = row_callback
        self.shared_strings = shared_strings
        self.styles = styles
        self.skip_empty_lines = configuration.skip_empty_lines
        self.date1904 = date1904
        self.part_name = part_name
        self.state = ParserState.NOT_STARTED

        self._row_number = -1
        self._cells: dict[int, tuple[str | None, CellStyle | None, CellKind]] = {}
        self._cell_count = 0
        self._column = -1
        self._cell_type = "n"
        self._cell_style: CellStyle | None = None
        self._value_text: str | None = None
        self._inline_parts: list[str] = []
        self._in_inline = False
        self._phonetic_depth = 0

    def parse(self, chunks: Iterable[bytes]) -> ParseOutcome:
        """
        Parse a worksheet from its byte chunks.

        Returns:
            ParseOutcome: COMPLETE when the sheet was read to the end, STOPPED
            when the row callback asked to stop.

        Raises:
            SheetParseError: If the worksheet XML is malformed.
        """
        if self.state is not ParserState.NOT_STARTED:
            raise RuntimeError(f"Parser for {self.part_name} has already been used")

        parser = ET.XMLPullParser(events=("start", "end"))
        self.state = ParserState.PARSING
        try:
            for chunk in chunks:
                parser.feed(chunk)
                if not self._drain(parser):
                    return self._stopped()
            parser.close()
            if not self._drain(parser):
                return self._stopped()
        except ET.ParseError as e:
            self.state = ParserState.FAILED
            logger.exception("Error parsing %s: %s", self.part_name, e)
            raise SheetParseError(self.part_name, str(e)) from e
        except Exception:
            self.state = ParserState.FAILED
            raise

        self.state = ParserState.COMPLETE
        logger.debug("Parsed %s to the end", self.part_name)
        return ParseOutcome.COMPLETE

    def _stopped(self) -> ParseOutcome:
        self.state = ParserState.STOPPED
        logger.debug("Stop requested while parsing %s at row %d", self.part_name, self._row_number)
        return ParseOutcome.STOPPED

    def _drain(self, parser: ET.XMLPullParser) -> bool:
        """Handle pending events; False once the callback asked to stop."""
        for event, elem in parser.read_events():
            tag = _local_name(elem.tag)
            if event == "start":
                self._start(tag, elem.attrib)
                continue

            if tag == "row":
                row = self._finish_row()
                elem.clear()
                if self.skip_empty_lines and row.cell_count == 0:
                    continue
                if not self.row_callback(row):
                    return False
                continue

            if tag == "v":
                self._value_text = elem.text or ""
            elif tag == "t" and self._in_inline and not self._phonetic_depth:
                self._inline_parts.append(elem.text or "")
            elif tag == "rPh":
                self._phonetic_depth -= 1
            elif tag == "is":
                self._in_inline = False
                self._value_text = "".join(self._inline_parts)
            elif tag == "c":
                value, kind = self._cell_value()
                self._cells[self._column] = (value, self._cell_style, kind)
                self._cell_count += 1
            elem.clear()
        return True

    def _start(self, tag: str, attrib: dict[str, str]) -> None:
        if tag == "row":
            ref = attrib.get("r")
            self._row_number = int(ref) - 1 if ref else self._row_number + 1
            self._cells = {}
            self._cell_count = 0
            self._column = -1
        elif tag == "c":
            ref = attrib.get("r")
            self._column = address_to_index(ref) if ref else self._column + 1
            self._cell_type = attrib.get("t", "n")
            style_index = attrib.get("s")
            self._cell_style = self.styles.get(int(style_index) if style_index else None)
            self._value_text = None
            self._inline_parts = []
            self._in_inline = False
        elif tag == "is":
            self._in_inline = True
        elif tag == "rPh":
            self._phonetic_depth += 1

    def _cell_value(self) -> tuple[str | None, CellKind]:
        raw = self._value_text
        cell_type = self._cell_type

        if raw is None:
            return None, CellKind.BLANK

        if cell_type == "s":
            try:
                return self.shared_strings[int(raw)], CellKind.STRING
            except (ValueError, IndexError):
                logger.warning("Invalid shared string index %r in %s", raw, self.part_name)
                return "", CellKind.STRING
        if cell_type in ("inlineStr", "str"):
            return raw, CellKind.STRING
        if cell_type == "b":
            return ("true" if raw.strip() in ("1", "true") else "false"), CellKind.BOOLEAN
        if cell_type == "e":
            return raw, CellKind.ERROR
        if cell_type == "d":
            return raw, CellKind.DATE

        raw = raw.strip()
        if not raw:
            return None, CellKind.BLANK
        if self._cell_style is not None and self._cell_style.is_date:
            try:
                return _excel_date_text(float(raw), self.date1904), CellKind.DATE
            except (ValueError, OverflowError):
                logger.debug("Cannot read %r as a date in %s", raw, self.part_name)
        return raw, CellKind.NUMERIC

    def _finish_row(self) -> SheetRow:
        row = SheetRow(self._row_number, cell_count=self._cell_count)
        if self._cells:
            width = max(self._cells) + 1
            row.values = [None] * width
            row.styles = [None] * width
            row.kinds = [CellKind.BLANK] * width
            for index, (value, style, kind) in self._cells.items():
                row.values[index] = value
                row.styles[index] = style
                row.kinds[index] = kind
        self._cells = {}
        return row
