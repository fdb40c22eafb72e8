"""Tests for source table loading and schema validation."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from gamededupe.ingest import (
    SHARED_COLUMNS,
    SchemaError,
    check_columns,
    load_source,
    load_sources,
    read_rows,
    record_from_row,
)

# ---------------------------------------------------------------------------
# Column checks
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_check_columns_accepts_shared_schema() -> None:
    """Test a header with every shared column passes."""
    check_columns("mobygames", [*SHARED_COLUMNS, "publisher"])


@pytest.mark.unit
def test_check_columns_names_source_and_column() -> None:
    """Test a missing shared column aborts naming the source and column."""
    with pytest.raises(SchemaError) as exc_info:
        check_columns("igdb", ["title", "first_release_year", "all_release_year"])

    error = exc_info.value
    assert error.source == "igdb"
    assert error.column == "platform"
    assert "source 'igdb'" in str(error)
    assert "missing shared column 'platform'" in str(error)


@pytest.mark.unit
def test_schema_error_is_value_error() -> None:
    """Test SchemaError can be handled as ValueError."""
    assert issubclass(SchemaError, ValueError)


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_record_from_row_parses_composites() -> None:
    """Test composite cells and years are parsed."""
    row = {
        "title": "  Pitfall!  ",
        "platform": "Atari 2600;;Intellivision",
        "first_release_year": None,
        "all_release_year": "1983;;1982",
        "publisher": "Activision",
    }

    record = record_from_row("mobygames", 4, row, ["publisher"])

    assert record.index == 4
    assert record.title == "Pitfall!"
    assert record.platforms == ("Atari 2600", "Intellivision")
    assert record.first_release_year == 1982
    assert record.release_years == (1982, 1983)
    assert record.details == {"publisher": "Activision"}


@pytest.mark.unit
def test_record_from_row_uses_index_column() -> None:
    """Test the index column wins over row position."""
    row = {"index": "17", "title": "Zaxxon", "platform": None}

    record = record_from_row("igdb", 0, row, [])

    assert record.index == 17
    assert record.first_release_year is None
    assert record.platforms == ()


@pytest.mark.unit
def test_record_from_row_blank_title_is_none() -> None:
    """Test whitespace-only titles become missing."""
    record = record_from_row("igdb", 0, {"title": "   ", "platform": "NES"}, [])

    assert record.title is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("row", "column"),
    [
        ({"title": 123, "platform": "NES"}, "title"),
        ({"title": "Qix", "platform": {"name": "NES"}}, "platform"),
        ({"title": "Qix", "platform": "NES", "first_release_year": [1982]}, "first_release_year"),
    ],
)
def test_record_from_row_rejects_bad_types(row: dict[str, Any], column: str) -> None:
    """Test structurally invalid cells raise SchemaError with the row position."""
    with pytest.raises(SchemaError) as exc_info:
        record_from_row("mobygames", 7, row, [])

    assert exc_info.value.row == 7
    assert exc_info.value.column == column
    assert "row 7" in str(exc_info.value)


@pytest.mark.unit
def test_record_from_row_rejects_bad_index() -> None:
    """Test a non-integer index is a schema error."""
    with pytest.raises(SchemaError, match="invalid index"):
        record_from_row("igdb", 2, {"index": "abc", "title": "Qix", "platform": None}, [])


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_load_jsonl_source(catalog_sources: list[Path]) -> None:
    """Test a JSON Lines source loads with positional indices."""
    table = load_source(catalog_sources[0])

    assert table.name == "mobygames"
    assert len(table) == 3
    assert [r.index for r in table.records] == [0, 1, 2]
    assert table.exclusive_columns == ("publisher",)
    assert table.lookup(1).platforms == ("Atari 2600", "Intellivision")
    assert table.lookup(2).first_release_year is None
    assert table.lookup(99) is None


@pytest.mark.unit
def test_load_csv_source(catalog_sources: list[Path]) -> None:
    """Test a CSV source keeps its index column and blanks become missing."""
    table = load_source(catalog_sources[1])

    assert table.name == "igdb"
    assert [r.index for r in table.records] == [10, 11, 12]
    assert table.exclusive_columns == ("developer",)
    blank = table.lookup(12)
    assert blank.title is None
    assert blank.first_release_year == 1983
    assert blank.release_years == ()
    assert blank.details == {"developer": None}


@pytest.mark.unit
def test_load_source_missing_column(write_csv_table: Callable[..., Path]) -> None:
    """Test a table without a shared column is rejected before any row."""
    path = write_csv_table("broken", [{"title": "Qix", "platform": "Arcade"}])

    with pytest.raises(SchemaError, match="missing shared column 'first_release_year'"):
        load_source(path)


@pytest.mark.unit
def test_load_source_duplicate_index(write_jsonl_table: Callable[..., Path]) -> None:
    """Test a repeated index column value is rejected."""
    row = {
        "index": 1,
        "title": "Qix",
        "platform": "Arcade",
        "first_release_year": 1981,
        "all_release_year": "1981",
    }
    path = write_jsonl_table("dupes", [row, {**row, "title": "Qix II"}])

    with pytest.raises(SchemaError, match="duplicate index 1"):
        load_source(path)


@pytest.mark.unit
def test_load_source_name_override(catalog_sources: list[Path]) -> None:
    """Test an explicit name replaces the file stem."""
    assert load_source(catalog_sources[0], name="moby").name == "moby"


@pytest.mark.unit
def test_load_sources_rejects_duplicate_names(catalog_sources: list[Path], tmp_path: Path) -> None:
    """Test two files with the same stem cannot both be loaded."""
    other = tmp_path / "copy"
    other.mkdir()
    clone = other / "mobygames.jsonl"
    clone.write_text(catalog_sources[0].read_text())

    with pytest.raises(ValueError, match="Duplicate source name 'mobygames'"):
        load_sources([catalog_sources[0], clone])


@pytest.mark.unit
def test_read_rows_unsupported_suffix(tmp_path: Path) -> None:
    """Test unsupported formats are rejected."""
    path = tmp_path / "games.xlsx"
    path.write_text("")

    with pytest.raises(ValueError, match="Unsupported source format"):
        read_rows(path)


@pytest.mark.unit
def test_read_rows_missing_file(tmp_path: Path) -> None:
    """Test a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        read_rows(tmp_path / "nope.csv")


@pytest.mark.unit
def test_read_rows_jsonl_header_union(tmp_path: Path) -> None:
    """Test the JSONL header is the union of row keys in first-seen order."""
    path = tmp_path / "t.jsonl"
    path.write_text(json.dumps({"title": "A"}) + "\n" + json.dumps({"platform": "B"}) + "\n")

    header, rows = read_rows(path)

    assert header == ["title", "platform"]
    assert len(rows) == 2
