"""Build the table catalog from the workbook manifest (``xl/workbook.xml``)."""

from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
import xml.etree.ElementTree as ET

from xlsx_tables.exceptions import SheetParseError
from xlsx_tables.registry import TableIdRegistry

logger = logging.getLogger(__name__)

MANIFEST_PART = "xl/workbook.xml"
OFFICE_REL_NAMESPACE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
# Strict OOXML files use a different namespace for the same attribute.
STRICT_REL_NAMESPACE = "http://purl.oclc.org/ooxml/officeDocument/relationships"


@dataclass(frozen=True)
class SheetEntry:
    """A sheet listed in the manifest."""

    name: str
    relationship_id: str
    state: str = "visible"


@dataclass
class WorkbookManifest:
    """What the manifest tells us: the sheets in order, and the date system."""

    sheets: list[SheetEntry] = field(default_factory=list)
    date1904: bool = False

    @property
    def table_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _relationship_id(attrib: dict[str, str]) -> str | None:
    return attrib.get(f"{{{OFFICE_REL_NAMESPACE}}}id") or attrib.get(
        f"{{{STRICT_REL_NAMESPACE}}}id"
    )


def build_tables(manifest_chunks: Iterable[bytes], registry: TableIdRegistry) -> WorkbookManifest:
    """
    Push-parse the workbook manifest and register every sheet as a table.

    Sheets are registered in manifest order as soon as they are seen, so a
    failure half way leaves the earlier sheets registered. Entries for sheets
    that are no longer in the manifest are left alone.

    Args:
        manifest_chunks: Byte chunks of ``xl/workbook.xml``.
        registry: Shared table name -> relationship id map to fill.

    Returns:
        WorkbookManifest: The sheets found, in order, and the date system flag.

    Raises:
        SheetParseError: If the manifest is malformed.
    """
    manifest = WorkbookManifest()
    parser = ET.XMLPullParser(events=("start",))

    try:
        for chunk in manifest_chunks:
            parser.feed(chunk)
            for _, elem in parser.read_events():
                tag = _local_name(elem.tag)
                if tag == "workbookPr":
                    manifest.date1904 = elem.attrib.get("date1904", "").lower() in ("1", "true")
                elif tag == "sheet":
                    name = elem.attrib.get("name")
                    relationship_id = _relationship_id(elem.attrib)
                    if not name or not relationship_id:
                        logger.warning("Skipping sheet without name or relationship id")
                        continue
                    entry = SheetEntry(name, relationship_id, elem.attrib.get("state", "visible"))
                    registry.put(entry.name, entry.relationship_id)
                    manifest.sheets.append(entry)
        parser.close()
    except ET.ParseError as e:
        logger.exception("Error parsing %s: %s", MANIFEST_PART, e)
        raise SheetParseError(MANIFEST_PART, str(e)) from e

    logger.debug("Workbook manifest lists %d sheet(s)", len(manifest.sheets))
    return manifest
