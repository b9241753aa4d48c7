"""Tests for XlsxPackage and the metadata part parsers."""

from contextlib import closing
import io
import zipfile

import pytest

from xlsx_tables.exceptions import ContainerError, SheetParseError
from xlsx_tables.package import XlsxPackage, parse_relationships, parse_shared_strings
from xlsx_tables.resources import InMemoryResource

RELS = b"""<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="worksheet" Target="worksheets/sheet1.xml"/>
  <Relationship Id="rId2" Type="worksheet" Target="/xl/worksheets/sheet2.xml"/>
  <Relationship Id="rId3" Type="hyperlink" Target="https://example.com" TargetMode="External"/>
  <Relationship Id="rId4" Type="styles" Target="../xl/styles.xml"/>
</Relationships>"""


def _zip(parts: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in parts.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def test_parse_relationships() -> None:
    """Test targets are resolved against xl/ and external links skipped."""
    assert parse_relationships(RELS) == {
        "rId1": "xl/worksheets/sheet1.xml",
        "rId2": "xl/worksheets/sheet2.xml",
        "rId4": "xl/styles.xml",
    }
    assert parse_relationships(b"") == {}


def test_parse_relationships_malformed() -> None:
    with pytest.raises(SheetParseError, match="workbook.xml.rels"):
        parse_relationships(b"<Relationships><Relationship")


def test_parse_shared_strings_rich_text_and_phonetic() -> None:
    """Test rich text runs are joined and phonetic runs ignored."""
    data = (
        b'<sst xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">'
        b"<si><t>plain</t></si>"
        b"<si><r><t>bold </t></r><r><t>text</t></r></si>"
        b"<si><t>kanji</t><rPh sb=\"0\" eb=\"1\"><t>kana</t></rPh></si>"
        b"<si><t/></si>"
        b"</sst>"
    )
    chunks = [data[i : i + 7] for i in range(0, len(data), 7)]

    assert parse_shared_strings(chunks) == ["plain", "bold text", "kanji", ""]


def test_parse_shared_strings_malformed() -> None:
    with pytest.raises(SheetParseError, match="sharedStrings.xml"):
        parse_shared_strings([b"<sst><si><t>open"])


def test_open_workbook(xlsx_bytes) -> None:
    """Test opening an openpyxl workbook loads the manifest and relationships."""
    data = xlsx_bytes({"People": [["name", "age"], ["Ada", 36]]})

    with XlsxPackage.open(InMemoryResource(data, chunk_size=512)) as package:
        assert b"People" in package.manifest
        assert len(package.styles) >= 1
        assert "xl/worksheets/sheet1.xml" in package.relationships.values()
        assert b"".join(package.manifest_stream()) == package.manifest


def test_open_loads_shared_strings(shared_strings_xlsx) -> None:
    """Test the shared string table is read while opening, rich runs joined."""
    with XlsxPackage.open(InMemoryResource(shared_strings_xlsx, chunk_size=64)) as package:
        assert package.shared_strings == ["id", "name", "Ada Lovelace", "Alan Turing"]
        assert package.relationships["rId2"] == "xl/sharedStrings.xml"
        assert len(package.styles) == 0


def test_part_stream(xlsx_bytes) -> None:
    """Test a part can be streamed by relationship id, more than once."""
    data = xlsx_bytes({"People": [["name"], ["Ada"]]})

    with XlsxPackage.open(InMemoryResource(data)) as package:
        rid = next(
            rid for rid, path in package.relationships.items() if path.endswith("sheet1.xml")
        )
        first = b"".join(package.part_stream(rid))
        with closing(package.part_stream(rid)) as chunks:
            second = b"".join(chunks)

    assert b"<sheetData>" in first
    assert first == second


def test_part_stream_unknown_relationship(xlsx_bytes) -> None:
    with XlsxPackage.open(InMemoryResource(xlsx_bytes({"S": [[1]]}))) as package:
        with pytest.raises(ContainerError, match="Relationship rId99 not found"):
            package.part_stream("rId99")


def test_part_stream_missing_part() -> None:
    """Test a relationship pointing at a missing part raises ContainerError."""
    data = _zip(
        {
            "xl/workbook.xml": b"<workbook/>",
            "xl/_rels/workbook.xml.rels": RELS,
        }
    )

    with XlsxPackage.open(InMemoryResource(data)) as package:
        with pytest.raises(ContainerError, match="not found"):
            list(package.part_stream("rId1"))


def test_open_not_a_zip() -> None:
    with pytest.raises(ContainerError, match="Failed to open XLSX container"):
        XlsxPackage.open(InMemoryResource(b"this is not a zip archive" * 10))


def test_open_without_workbook_part() -> None:
    data = _zip({"docProps/app.xml": b"<Properties/>"})

    with pytest.raises(ContainerError, match="has no xl/workbook.xml part"):
        XlsxPackage.open(InMemoryResource(data))


def test_release_is_idempotent(xlsx_bytes) -> None:
    """Test release closes open streams and blocks further use."""
    package = XlsxPackage.open(InMemoryResource(xlsx_bytes({"S": [[1], [2]]})))
    rid = next(iter(package.relationships))
    stream = package.part_stream(rid)
    next(stream, None)

    package.release()
    package.release()

    assert package.released
    assert next(stream, None) is None
    with pytest.raises(ContainerError, match="has been released"):
        package.manifest_stream()
    with pytest.raises(ContainerError, match="has been released"):
        package.part_stream(rid)
