"""Tests for the command-line interface."""

from pathlib import Path
import tempfile

from typer.testing import CliRunner

from xlsx_tables.cli import app

runner = CliRunner()


def test_cli_tables(xlsx_file) -> None:
    path = xlsx_file({"Sales": [["a"]], "Costs": [["b"]]})

    result = runner.invoke(app, ["tables", path])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["Sales", "Costs"]


def test_cli_schema(xlsx_file) -> None:
    path = xlsx_file({"Scores": [["id", "name"], [1, "Ann"]]})

    result = runner.invoke(app, ["schema", path])

    assert result.exit_code == 0
    assert "Scores:" in result.output
    assert "  0\tid\tINTEGER" in result.output
    assert "  1\tname\tSTRING" in result.output


def test_cli_schema_without_header(xlsx_file) -> None:
    path = xlsx_file({"S": [[1, "x"]]})

    result = runner.invoke(app, ["schema", path, "--column-name-line", "0", "--no-detect-types"])

    assert result.exit_code == 0
    assert "  0\tA\tSTRING" in result.output
    assert "  1\tB\tSTRING" in result.output


def test_cli_rows_to_stdout(xlsx_file) -> None:
    """Test streaming the first table as CSV."""
    path = xlsx_file({"S": [["A", "B", "C"], [1, 2, 3]], "T": [["x"]]})

    result = runner.invoke(app, ["rows", path])

    assert result.exit_code == 0
    assert "A,B,C" in result.output
    assert "1,2,3" in result.output


def test_cli_rows_table_columns_and_cap(xlsx_file) -> None:
    path = xlsx_file({"S": [["x"]], "T": [["a", "b"], [1, 2], [3, 4], [5, 6]]})

    result = runner.invoke(
        app, ["rows", path, "--table", "T", "-c", "b", "-c", "a", "--max-rows", "2", "--no-header"]
    )

    assert result.exit_code == 0
    assert result.output.splitlines() == ["2,1", "4,3"]


def test_cli_rows_with_output_file(xlsx_file) -> None:
    """Test CLI with output file option."""
    path = xlsx_file({"S": [["Header1", "Header2"], [1, 2]]})
    with tempfile.NamedTemporaryFile(suffix=".csv", delete=False) as out:
        csv_path = out.name

    try:
        result = runner.invoke(app, ["rows", path, "--output", csv_path])

        assert result.exit_code == 0
        assert f"1 row(s) written to: {csv_path}" in result.output
        content = Path(csv_path).read_text()
        assert "Header1,Header2" in content
        assert "1,2" in content
    finally:
        Path(csv_path).unlink()


def test_cli_unknown_table(xlsx_file) -> None:
    path = xlsx_file({"S": [["a"]]})

    result = runner.invoke(app, ["rows", path, "--table", "Missing"])

    assert result.exit_code == 1
    assert "Error" in result.output
    assert "Missing" in result.output


def test_cli_unknown_column(xlsx_file) -> None:
    path = xlsx_file({"S": [["a"], [1]]})

    result = runner.invoke(app, ["rows", path, "-c", "zzz"])

    assert result.exit_code == 1
    assert "Column 'zzz' not found" in result.output


def test_cli_with_nonexistent_file() -> None:
    """Test CLI with nonexistent file."""
    result = runner.invoke(app, ["tables", "/nonexistent/file.xlsx"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_cli_with_invalid_file() -> None:
    """Test CLI with a file that is not an XLSX container."""
    with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as tmp:
        tmp.write(b"this is not a zip archive")
        bad_path = tmp.name

    try:
        result = runner.invoke(app, ["schema", bad_path])
        assert result.exit_code == 1
        assert "Error" in result.output
    finally:
        Path(bad_path).unlink()


def test_cli_help() -> None:
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "tables" in result.output
    assert "rows" in result.output
