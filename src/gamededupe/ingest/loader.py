"""Load per-source tables into SourceRecords.

Accepted formats: JSON Lines (``.jsonl``) and CSV (``.csv``). The source
name defaults to the file stem. Rows carry a stable per-source index: the
``index`` column when present, else the row position.
"""

import csv
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gamededupe.ingest.schema import (
    INDEX_COLUMN,
    SHARED_COLUMNS,
    SchemaError,
    check_columns,
    validate_row,
)
from gamededupe.models import SourceRecord, split_composite
from gamededupe.normalize import parse_year, parse_years
from gamededupe.utils import read_jsonl

__all__ = [
    "SUPPORTED_SUFFIXES",
    "SourceTable",
    "load_source",
    "load_sources",
    "read_rows",
    "record_from_row",
]

SUPPORTED_SUFFIXES = (".jsonl", ".csv")


@dataclass(frozen=True)
class SourceTable:
    """All records of one source.

    Attributes
    ----------
    name : str
        Source name.
    columns : tuple[str, ...]
        Header in file order.
    records : tuple[SourceRecord, ...]
        Records in file order.
    path : Path | None
        File the table was read from.
    """

    name: str
    columns: tuple[str, ...]
    records: tuple[SourceRecord, ...]
    path: Path | None = None
    _by_index: dict[int, SourceRecord] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_index: dict[int, SourceRecord] = {}
        for record in self.records:
            if record.index in by_index:
                raise SchemaError(self.name, f"duplicate index {record.index}", INDEX_COLUMN)
            by_index[record.index] = record
        object.__setattr__(self, "_by_index", by_index)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def exclusive_columns(self) -> tuple[str, ...]:
        """Columns this source carries beyond the shared schema."""
        return tuple(c for c in self.columns if c not in SHARED_COLUMNS and c != INDEX_COLUMN)

    def lookup(self, index: int) -> SourceRecord | None:
        return self._by_index.get(index)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def read_rows(path: Path) -> tuple[list[str], list[dict[str, Any]]]:
    """Read a table file into a header and a list of row dicts.

    Empty CSV cells become None. For JSON Lines the header is the union of
    row keys in first-seen order.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the suffix is unsupported or a JSON line is not an object.
    """
    if not path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        with path.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            rows = [{k: _blank_to_none(v) for k, v in row.items()} for row in reader]
            return list(reader.fieldnames or []), rows

    if suffix == ".jsonl":
        rows = read_jsonl(path)
        header: dict[str, None] = {}
        for row in rows:
            header.update(dict.fromkeys(row))
        return list(header), rows

    raise ValueError(f"Unsupported source format '{suffix}' (expected one of {SUPPORTED_SUFFIXES})")


def _parse_index(source: str, position: int, value: Any) -> int:
    if value is None:
        return position
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise SchemaError(source, f"invalid index {value!r}", INDEX_COLUMN, position) from exc


def record_from_row(
    source: str,
    position: int,
    row: dict[str, Any],
    exclusive: Iterable[str],
) -> SourceRecord:
    """Validate one row and build its SourceRecord.

    Parameters
    ----------
    source : str
        Source name.
    position : int
        Zero-based row position; the index when no index column exists.
    row : dict[str, Any]
        Raw row.
    exclusive : Iterable[str]
        Detail columns to carry in ``details``.

    Returns
    -------
    SourceRecord
        Parsed record; unparseable years become None.

    Raises
    ------
    SchemaError
        If a cell has a structurally invalid type.
    """
    row = {**dict.fromkeys(SHARED_COLUMNS), **row}
    validate_row(source, position, row)

    title = row.get("title")
    years = parse_years(row.get("all_release_year"))
    first_year = parse_year(row.get("first_release_year"))
    if first_year is None and years:
        first_year = years[0]

    return SourceRecord(
        source=source,
        index=_parse_index(source, position, row.get(INDEX_COLUMN)),
        title=title.strip() if isinstance(title, str) and title.strip() else None,
        platforms=split_composite(row.get("platform")),
        first_release_year=first_year,
        release_years=years,
        details={column: row.get(column) for column in exclusive},
    )


def load_source(path: Path, name: str | None = None) -> SourceTable:
    """Load and validate one source table.

    Parameters
    ----------
    path : Path
        ``.jsonl`` or ``.csv`` file.
    name : str | None, optional
        Source name; defaults to the file stem.

    Returns
    -------
    SourceTable
        Loaded table.

    Raises
    ------
    SchemaError
        If a shared column is missing or a row is malformed.
    """
    source = name or path.stem
    columns, rows = read_rows(path)
    check_columns(source, columns)

    exclusive = [c for c in columns if c not in SHARED_COLUMNS and c != INDEX_COLUMN]
    records = tuple(
        record_from_row(source, position, row, exclusive) for position, row in enumerate(rows)
    )
    return SourceTable(name=source, columns=tuple(columns), records=records, path=path)


def load_sources(paths: Iterable[Path]) -> list[SourceTable]:
    """Load several sources, keeping their given order.

    Raises
    ------
    ValueError
        If two files resolve to the same source name.
    """
    tables: list[SourceTable] = []
    seen: set[str] = set()
    for path in paths:
        table = load_source(path)
        if table.name in seen:
            raise ValueError(f"Duplicate source name '{table.name}' ({path})")
        seen.add(table.name)
        tables.append(table)
    return tables
