"""Forward-only access to the parts of an XLSX container."""

from collections.abc import Generator, Iterable, Iterator
from enum import Enum
import logging
import posixpath
import xml.etree.ElementTree as ET

from stream_unzip import UnzipError, stream_unzip

from xlsx_tables.exceptions import ContainerError, SheetParseError
from xlsx_tables.resources.base import Resource
from xlsx_tables.styles import StyleTable

logger = logging.getLogger(__name__)


class XlsxPartPaths(Enum):
    """Standard part names within an XLSX ZIP archive."""

    WORKBOOK = "xl/workbook.xml"
    WORKBOOK_RELS = "xl/_rels/workbook.xml.rels"
    SHARED_STRINGS = "xl/sharedStrings.xml"
    STYLES = "xl/styles.xml"


PACKAGE_REL_NAMESPACE = "http://schemas.openxmlformats.org/package/2006/relationships"


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def parse_shared_strings(chunks: Iterable[bytes]) -> list[str]:
    """
    Stream-parse ``xl/sharedStrings.xml`` into a list indexed by string id.

    Rich text runs (several ``<t>`` inside one ``<si>``) are concatenated;
    phonetic runs (``<rPh>``) are ignored.
    """
    shared_strings: list[str] = []
    parser = ET.XMLPullParser(events=("start", "end"))
    parts: list[str] = []
    phonetic_depth = 0

    try:
        for chunk in chunks:
            parser.feed(chunk)
            for event, elem in parser.read_events():
                tag = _local_name(elem.tag)
                if event == "start":
                    if tag == "rPh":
                        phonetic_depth += 1
                    continue
                if tag == "t" and not phonetic_depth:
                    parts.append(elem.text or "")
                elif tag == "rPh":
                    phonetic_depth -= 1
                elif tag == "si":
                    shared_strings.append("".join(parts))
                    parts = []
                    elem.clear()
        parser.close()
    except ET.ParseError as e:
        logger.exception("Error parsing %s: %s", XlsxPartPaths.SHARED_STRINGS.value, e)
        raise SheetParseError(XlsxPartPaths.SHARED_STRINGS.value, str(e)) from e

    return shared_strings


def parse_relationships(data: bytes) -> dict[str, str]:
    """
    Parse ``xl/_rels/workbook.xml.rels`` into relationship id -> full part name.

    Targets are relative to ``xl/`` unless they start with ``/``.
    """
    if not data:
        return {}

    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        logger.exception("Error parsing %s: %s", XlsxPartPaths.WORKBOOK_RELS.value, e)
        raise SheetParseError(XlsxPartPaths.WORKBOOK_RELS.value, str(e)) from e

    targets: dict[str, str] = {}
    for rel in root.iter(f"{{{PACKAGE_REL_NAMESPACE}}}Relationship"):
        rel_id = rel.get("Id")
        target = rel.get("Target")
        if not rel_id or not target or rel.get("TargetMode") == "External":
            continue
        if target.startswith("/"):
            targets[rel_id] = target.lstrip("/")
        else:
            targets[rel_id] = posixpath.normpath(posixpath.join("xl", target))
    return targets


class XlsxPackage:
    """
    An opened XLSX container.

    Opening reads the container once to collect the small metadata parts:
    the workbook manifest, its relationships, the shared strings and the
    style table. Each ``part_stream`` call then reads the container again,
    forward-only, up to the end of the requested part. Nothing is seekable
    and no part is held in memory apart from the metadata.

    ``release`` must be called exactly once when the package is no longer
    needed; the package is also a context manager.
    """

    def __init__(
        self,
        resource: Resource,
        manifest: bytes,
        relationships: dict[str, str],
        shared_strings: list[str],
        styles: StyleTable,
    ) -> None:
        self.resource = resource
        self.manifest = manifest
        self.relationships = relationships
        self.shared_strings = shared_strings
        self.styles = styles
        self._open_streams: list[Generator[bytes, None, None]] = []
        self._released = False

    @classmethod
    def open(cls, resource: Resource) -> "XlsxPackage":
        """
        Open a container and load its metadata parts.

        Raises:
            ContainerError: If the archive cannot be read or has no workbook part.
            SheetParseError: If a metadata part is malformed.
        """
        manifest_chunks: list[bytes] = []
        rels_chunks: list[bytes] = []
        shared_strings: list[str] = []
        styles = StyleTable()
        found_manifest = False

        try:
            for file_name, _, chunks in stream_unzip(resource.read_chunks()):
                try:
                    file_name_str = file_name.decode("utf-8")
                except UnicodeDecodeError:
                    file_name_str = ""

                if file_name_str == XlsxPartPaths.WORKBOOK.value:
                    found_manifest = True
                    manifest_chunks.extend(chunks)
                elif file_name_str == XlsxPartPaths.WORKBOOK_RELS.value:
                    rels_chunks.extend(chunks)
                elif file_name_str == XlsxPartPaths.SHARED_STRINGS.value:
                    shared_strings = parse_shared_strings(chunks)
                elif file_name_str == XlsxPartPaths.STYLES.value:
                    styles = StyleTable.parse(chunks)
                else:
                    for _ in chunks:
                        pass
        except UnzipError as e:
            logger.exception("Error opening container %s: %s", resource.name, e)
            raise ContainerError(f"Failed to open XLSX container {resource.name}: {e}") from e

        if not found_manifest:
            raise ContainerError(
                f"XLSX container {resource.name} has no {XlsxPartPaths.WORKBOOK.value} part"
            )

        relationships = parse_relationships(b"".join(rels_chunks))
        logger.debug(
            "Opened %s: %d relationships, %d shared strings, %d cell formats",
            resource.name,
            len(relationships),
            len(shared_strings),
            len(styles),
        )
        return cls(resource, b"".join(manifest_chunks), relationships, shared_strings, styles)

    def manifest_stream(self) -> Iterator[bytes]:
        """Return the workbook manifest (``xl/workbook.xml``) as a byte stream."""
        self._check_open()
        return iter((self.manifest,))

    def part_path(self, relationship_id: str) -> str:
        """Return the part name a workbook relationship id points at."""
        try:
            return self.relationships[relationship_id]
        except KeyError:
            raise ContainerError(
                f"Relationship {relationship_id} not found in {self.resource.name}"
            ) from None

    def part_stream(self, relationship_id: str) -> Generator[bytes, None, None]:
        """
        Stream the content of the part behind a relationship id.

        Raises:
            ContainerError: If the relationship is unknown, the part is missing
                or the archive cannot be read.
        """
        self._check_open()
        path = self.part_path(relationship_id)
        stream = self._stream_part(path)
        self._open_streams.append(stream)
        return stream

    def _stream_part(self, path: str) -> Generator[bytes, None, None]:
        logger.debug("Streaming part %s of %s", path, self.resource.name)
        found = False
        try:
            for file_name, _, chunks in stream_unzip(self.resource.read_chunks()):
                if file_name.decode("utf-8", errors="replace") == path:
                    found = True
                    yield from chunks
                    break
                for _ in chunks:
                    pass
        except UnzipError as e:
            logger.exception("Error reading part %s: %s", path, e)
            raise ContainerError(f"Failed to read part {path}: {e}") from e

        if not found:
            raise ContainerError(f"Part {path} not found in {self.resource.name}")

    def _check_open(self) -> None:
        if self._released:
            raise ContainerError(f"XLSX container {self.resource.name} has been released")

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Close outstanding part streams. Only the first call has an effect."""
        if self._released:
            return
        self._released = True
        streams, self._open_streams = self._open_streams, []
        for stream in streams:
            stream.close()
        logger.debug("Released container %s", self.resource.name)

    def __enter__(self) -> "XlsxPackage":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
