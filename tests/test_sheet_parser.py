"""Tests for XlsxSheetParser."""

import pytest

from xlsx_tables.configuration import ExcelConfiguration
from xlsx_tables.exceptions import ContainerError, SheetParseError
from xlsx_tables.sheet_parser import (
    CellKind,
    ParseOutcome,
    ParserState,
    SheetRow,
    XlsxSheetParser,
    address_to_index,
)
from xlsx_tables.styles import CellStyle, StyleTable

NS = 'xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main"'
STYLES = StyleTable(
    [
        CellStyle(0, 0, "General", False),
        CellStyle(1, 14, "mm-dd-yy", True),
        CellStyle(2, 22, "m/d/yy h:mm", True),
    ]
)


def _sheet(rows: str) -> bytes:
    return f"<worksheet {NS}><sheetData>{rows}</sheetData></worksheet>".encode()


def _chunks(data: bytes, size: int = 13) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


def _parse(
    data: bytes,
    shared_strings: list[str] | None = None,
    configuration: ExcelConfiguration | None = None,
    date1904: bool = False,
) -> tuple[list[SheetRow], XlsxSheetParser, ParseOutcome]:
    rows: list[SheetRow] = []

    def collect(row: SheetRow) -> bool:
        rows.append(row)
        return True

    parser = XlsxSheetParser(
        collect,
        shared_strings or [],
        STYLES,
        configuration or ExcelConfiguration(),
        date1904=date1904,
    )
    outcome = parser.parse(_chunks(data))
    return rows, parser, outcome


def test_address_to_index() -> None:
    assert address_to_index("A1") == 0
    assert address_to_index("B7") == 1
    assert address_to_index("Z1") == 25
    assert address_to_index("AA10") == 26
    assert address_to_index("ab3") == 27


def test_parse_cell_types() -> None:
    """Test every cell type is turned into text and a kind."""
    data = _sheet(
        '<row r="1">'
        '<c r="A1" t="s"><v>1</v></c>'
        '<c r="B1" t="inlineStr"><is><r><t>in</t></r><r><t>line</t></r></is></c>'
        '<c r="C1" t="str"><f>A1&amp;"!"</f><v>text!</v></c>'
        '<c r="D1" t="b"><v>1</v></c>'
        '<c r="E1" t="b"><v>0</v></c>'
        '<c r="F1" t="e"><v>#N/A</v></c>'
        '<c r="G1" t="d"><v>2024-03-01T00:00:00</v></c>'
        '<c r="H1"><v>42</v></c>'
        '<c r="I1" t="n"><v>4.5</v></c>'
        '<c r="J1" s="1"/>'
        "</row>"
    )

    rows, parser, outcome = _parse(data, shared_strings=["zero", "one"])

    assert outcome is ParseOutcome.COMPLETE
    assert parser.state is ParserState.COMPLETE
    assert len(rows) == 1
    row = rows[0]
    assert row.row_number == 0
    assert row.cell_count == 10
    assert row.values == [
        "one",
        "inline",
        "text!",
        "true",
        "false",
        "#N/A",
        "2024-03-01T00:00:00",
        "42",
        "4.5",
        None,
    ]
    assert row.kinds == [
        CellKind.STRING,
        CellKind.STRING,
        CellKind.STRING,
        CellKind.BOOLEAN,
        CellKind.BOOLEAN,
        CellKind.ERROR,
        CellKind.DATE,
        CellKind.NUMERIC,
        CellKind.NUMERIC,
        CellKind.BLANK,
    ]
    assert row.styles[9] is STYLES.get(1)
    assert row.styles[0] is STYLES.get(0)


def test_parse_date_formatted_numbers() -> None:
    """Test numbers under a date format become ISO-8601 text."""
    data = _sheet(
        '<row r="1"><c r="A1" s="1"><v>45306</v></c><c r="B1" s="2"><v>45306.5</v></c></row>'
    )

    rows, _, _ = _parse(data)

    assert rows[0].values == ["2024-01-15", "2024-01-15T12:00:00"]
    assert rows[0].kinds == [CellKind.DATE, CellKind.DATE]


def test_parse_date_1904_calendar() -> None:
    data = _sheet('<row r="1"><c r="A1" s="1"><v>1</v></c></row>')

    rows, _, _ = _parse(data, date1904=True)

    assert rows[0].values == ["1904-01-02"]


def test_parse_sparse_cells_and_rows() -> None:
    """Test gaps inside a row are filled and row numbers follow r."""
    data = _sheet(
        '<row r="2"><c r="B2"><v>1</v></c><c r="D2"><v>2</v></c></row>'
        '<row r="5"><c r="A5"><v>3</v></c></row>'
        "<row><c><v>4</v></c><c><v>5</v></c></row>"
    )

    rows, _, _ = _parse(data)

    assert [row.row_number for row in rows] == [1, 4, 5]
    assert rows[0].values == [None, "1", None, "2"]
    assert rows[0].kinds[0] is CellKind.BLANK
    assert rows[0].width == 4
    assert rows[2].values == ["4", "5"]


def test_parse_skips_empty_lines() -> None:
    data = _sheet(
        '<row r="1"><c r="A1"><v>1</v></c></row>'
        '<row r="2"/>'
        '<row r="3"><c r="A3"><v>3</v></c></row>'
    )

    rows, _, _ = _parse(data)
    assert [row.row_number for row in rows] == [0, 2]

    rows, _, _ = _parse(data, configuration=ExcelConfiguration(skip_empty_lines=False))
    assert [row.row_number for row in rows] == [0, 1, 2]
    assert rows[1].cell_count == 0
    assert rows[1].values == []


def test_parse_invalid_shared_string_index() -> None:
    data = _sheet('<row r="1"><c r="A1" t="s"><v>7</v></c></row>')

    rows, _, _ = _parse(data, shared_strings=["only"])

    assert rows[0].values == [""]


def test_parse_stops_when_callback_returns_false() -> None:
    """Test the stop signal ends the parse without an exception."""
    data = _sheet(
        "".join(f'<row r="{n}"><c r="A{n}"><v>{n}</v></c></row>' for n in range(1, 101))
    )
    seen: list[int] = []

    def take_three(row: SheetRow) -> bool:
        seen.append(row.row_number)
        return len(seen) < 3

    parser = XlsxSheetParser(take_three, [], STYLES, ExcelConfiguration())
    outcome = parser.parse(_chunks(data))

    assert outcome is ParseOutcome.STOPPED
    assert parser.state is ParserState.STOPPED
    assert seen == [0, 1, 2]


def test_parse_malformed_xml() -> None:
    data = _sheet('<row r="1"><c r="A1"><v>1</v></c></row>')[:-20]
    part = "xl/worksheets/sheet1.xml"
    parser = XlsxSheetParser(lambda row: True, [], STYLES, ExcelConfiguration(), part_name=part)

    with pytest.raises(SheetParseError, match=f"Failed to parse {part}") as excinfo:
        parser.parse(_chunks(data))

    assert excinfo.value.part == part
    assert parser.state is ParserState.FAILED


def test_parse_propagates_stream_errors() -> None:
    """Test a failing chunk source fails the parser with its own error."""

    def broken_chunks():
        yield b"<worksheet><sheetData>"
        raise ContainerError("connection lost")

    parser = XlsxSheetParser(lambda row: True, [], STYLES, ExcelConfiguration())

    with pytest.raises(ContainerError, match="connection lost"):
        parser.parse(broken_chunks())
    assert parser.state is ParserState.FAILED


def test_parser_is_single_use() -> None:
    parser = XlsxSheetParser(lambda row: True, [], STYLES, ExcelConfiguration())
    parser.parse([_sheet("")])

    with pytest.raises(RuntimeError, match="already been used"):
        parser.parse([_sheet("")])


def test_parser_state_while_parsing() -> None:
    """Test the parser reports PARSING from the first row callback on."""
    states: list[ParserState] = []
    parser: XlsxSheetParser

    def record(row: SheetRow) -> bool:
        states.append(parser.state)
        return True

    parser = XlsxSheetParser(record, [], STYLES, ExcelConfiguration())
    assert parser.state is ParserState.NOT_STARTED

    parser.parse(_chunks(_sheet('<row r="1"><c r="A1"><v>1</v></c></row>')))

    assert states == [ParserState.PARSING]
    assert parser.state is ParserState.COMPLETE


def test_parser_state_with_empty_stream() -> None:
    parser = XlsxSheetParser(lambda row: True, [], STYLES, ExcelConfiguration())

    with pytest.raises(SheetParseError):
        parser.parse([])

    assert parser.state is ParserState.FAILED
