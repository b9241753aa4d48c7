"""Cell style handles and the workbook style table (``xl/styles.xml``)."""

from collections.abc import Iterable
from dataclasses import dataclass
import logging
import xml.etree.ElementTree as ET

from openpyxl.styles.numbers import BUILTIN_FORMATS, is_date_format

from xlsx_tables.exceptions import SheetParseError

logger = logging.getLogger(__name__)

STYLES_PART = "xl/styles.xml"

# Built-in ids reserved for locale specific date formats; their format codes
# are not stored in the file.
_LOCALE_DATE_FORMAT_IDS = frozenset(range(27, 37)) | frozenset(range(50, 59))


@dataclass(frozen=True)
class CellStyle:
    """The parts of a cell format (an entry of ``cellXfs``) the reader cares about."""

    index: int
    number_format_id: int
    number_format: str
    is_date: bool


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


class StyleTable:
    """Cell formats of a workbook, addressed by the ``s`` attribute of a cell."""

    def __init__(self, styles: list[CellStyle] | None = None) -> None:
        self.styles = styles or []

    def get(self, index: int | None) -> CellStyle | None:
        """Return the style at ``index``; a cell without a style uses format 0."""
        if index is None:
            index = 0
        if 0 <= index < len(self.styles):
            return self.styles[index]
        return None

    def __len__(self) -> int:
        return len(self.styles)

    @classmethod
    def parse(cls, chunks: Iterable[bytes]) -> "StyleTable":
        """
        Stream-parse ``xl/styles.xml``.

        Only ``numFmts`` and ``cellXfs`` are read; fonts, fills and borders
        are skipped.

        Raises:
            SheetParseError: If the XML is malformed.
        """
        parser = ET.XMLPullParser(events=("start", "end"))
        custom_formats: dict[int, str] = {}
        format_ids: list[int] = []
        in_cell_xfs = False

        try:
            for chunk in chunks:
                parser.feed(chunk)
                for event, elem in parser.read_events():
                    tag = _local_name(elem.tag)
                    if event == "start":
                        if tag == "cellXfs":
                            in_cell_xfs = True
                        elif tag == "xf" and in_cell_xfs:
                            format_ids.append(int(elem.attrib.get("numFmtId", "0")))
                        elif tag == "numFmt":
                            fmt_id = elem.attrib.get("numFmtId")
                            if fmt_id is not None:
                                custom_formats[int(fmt_id)] = elem.attrib.get("formatCode", "")
                    elif tag == "cellXfs":
                        in_cell_xfs = False
            parser.close()
        except ET.ParseError as e:
            logger.exception("Error parsing %s: %s", STYLES_PART, e)
            raise SheetParseError(STYLES_PART, str(e)) from e

        styles = []
        for index, fmt_id in enumerate(format_ids):
            number_format = custom_formats.get(fmt_id) or BUILTIN_FORMATS.get(fmt_id, "General")
            is_date = fmt_id in _LOCALE_DATE_FORMAT_IDS or is_date_format(number_format)
            styles.append(CellStyle(index, fmt_id, number_format, is_date))

        logger.debug(
            "Parsed %d cell formats (%d custom number formats)", len(styles), len(custom_formats)
        )
        return cls(styles)
