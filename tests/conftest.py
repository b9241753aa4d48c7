"""Shared workbook builders."""

from collections.abc import Callable, Iterator, Sequence
import io
from pathlib import Path
import tempfile
from typing import Any
import zipfile

import openpyxl
import pytest

Sheets = dict[str, Sequence[Sequence[Any]]]


def workbook_bytes(sheets: Sheets) -> bytes:
    """Build an XLSX container with one sheet per entry, rows appended in order."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_file() -> Iterator[Callable[[Sheets], str]]:
    """Write workbooks to temporary .xlsx files, removed after the test."""
    paths: list[str] = []

    def build(sheets: Sheets) -> str:
        with tempfile.NamedTemporaryFile(mode="wb", delete=False, suffix=".xlsx") as f:
            f.write(workbook_bytes(sheets))
            paths.append(f.name)
        return f.name

    try:
        yield build
    finally:
        for path in paths:
            Path(path).unlink(missing_ok=True)


@pytest.fixture
def xlsx_bytes() -> Callable[[Sheets], bytes]:
    """Build workbooks in memory."""
    return workbook_bytes


MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

SHARED_STRINGS_PARTS = {
    "xl/workbook.xml": (
        f'<workbook xmlns="{MAIN_NS}" xmlns:r="{REL_NS}">'
        '<sheets><sheet name="People" sheetId="1" r:id="rId1"/></sheets></workbook>'
    ),
    "xl/_rels/workbook.xml.rels": (
        f'<Relationships xmlns="{PACKAGE_REL_NS}">'
        '<Relationship Id="rId1" Type="worksheet" Target="worksheets/sheet1.xml"/>'
        '<Relationship Id="rId2" Type="sharedStrings" Target="sharedStrings.xml"/>'
        "</Relationships>"
    ),
    "xl/sharedStrings.xml": (
        f'<sst xmlns="{MAIN_NS}" count="5" uniqueCount="4">'
        "<si><t>id</t></si>"
        "<si><t>name</t></si>"
        "<si><r><t>Ada </t></r><r><t>Lovelace</t></r></si>"
        "<si><t>Alan Turing</t></si>"
        "</sst>"
    ),
    "xl/worksheets/sheet1.xml": (
        f'<worksheet xmlns="{MAIN_NS}"><sheetData>'
        '<row r="1"><c r="A1" t="s"><v>0</v></c><c r="B1" t="s"><v>1</v></c></row>'
        '<row r="2"><c r="A2"><v>1</v></c><c r="B2" t="s"><v>2</v></c></row>'
        '<row r="3"><c r="A3"><v>2</v></c><c r="B3" t="s"><v>3</v></c></row>'
        "</sheetData></worksheet>"
    ),
}


def zip_parts(parts: dict[str, str | bytes]) -> bytes:
    """Zip parts into a container, in the given order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in parts.items():
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def shared_strings_xlsx() -> bytes:
    """A workbook whose text cells all reference ``xl/sharedStrings.xml``."""
    return zip_parts(dict(SHARED_STRINGS_PARTS))
