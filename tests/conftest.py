"""Pytest configuration and fixtures for test suite."""

import csv
import json
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from gamededupe.models import MergedRecord, PopulationRecord, SourceRecord  # noqa: E402
from gamededupe.rollup import from_source  # noqa: E402


@pytest.fixture
def make_source_record() -> Callable[..., SourceRecord]:
    """Factory for source records with minimal boilerplate."""

    def _factory(
        title: str | None = "Pitfall!",
        *,
        source: str = "mobygames",
        index: int = 0,
        platforms: Sequence[str] = ("Atari 2600",),
        year: int | None = 1982,
        release_years: Sequence[int] | None = None,
        details: dict[str, Any] | None = None,
    ) -> SourceRecord:
        years = tuple(release_years) if release_years is not None else ((year,) if year else ())
        return SourceRecord(
            source=source,
            index=index,
            title=title,
            platforms=tuple(platforms),
            first_release_year=year,
            release_years=years,
            details=details or {},
        )

    return _factory


@pytest.fixture
def make_row(make_source_record: Callable[..., SourceRecord]) -> Callable[..., MergedRecord]:
    """Factory for single-contributor merged rows."""

    def _factory(title: str = "Pitfall!", **kwargs: Any) -> MergedRecord:
        row = from_source(make_source_record(title, **kwargs))
        assert row is not None
        return row

    return _factory


@pytest.fixture
def make_population(
    make_row: Callable[..., MergedRecord],
) -> Callable[[Sequence[tuple[str, int | None]]], list[PopulationRecord]]:
    """Factory for population records from (title, year) pairs."""

    def _factory(entries: Sequence[tuple[str, int | None]]) -> list[PopulationRecord]:
        population = []
        for pid, (title, year) in enumerate(entries):
            row = make_row(title, index=pid, year=year)
            population.append(
                PopulationRecord(
                    pid=pid,
                    record=row,
                    source_index={"mobygames": pid},
                    details={"mobygames": {"title": title}},
                )
            )
        return population

    return _factory


@pytest.fixture
def write_jsonl_table(tmp_path: Path) -> Callable[[str, list[dict[str, Any]]], Path]:
    """Write rows as ``<name>.jsonl`` under tmp_path."""

    def _write(name: str, rows: list[dict[str, Any]]) -> Path:
        path = tmp_path / f"{name}.jsonl"
        with path.open("w", encoding="utf-8") as f:
            for row in rows:
                f.write(json.dumps(row) + "\n")
        return path

    return _write


@pytest.fixture
def write_csv_table(tmp_path: Path) -> Callable[[str, list[dict[str, Any]]], Path]:
    """Write rows as ``<name>.csv`` under tmp_path; header from the first row."""

    def _write(name: str, rows: list[dict[str, Any]]) -> Path:
        path = tmp_path / f"{name}.csv"
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(rows[0]))
            writer.writeheader()
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def catalog_sources(
    write_jsonl_table: Callable[[str, list[dict[str, Any]]], Path],
    write_csv_table: Callable[[str, list[dict[str, Any]]], Path],
) -> list[Path]:
    """Two small overlapping catalogs in both supported formats."""
    moby = write_jsonl_table(
        "mobygames",
        [
            {
                "title": "Air Raid",
                "platform": "Atari 2600",
                "first_release_year": 1982,
                "all_release_year": "1982",
                "publisher": "Men-A-Vision",
            },
            {
                "title": "Pitfall!",
                "platform": "Atari 2600;;Intellivision",
                "first_release_year": 1982,
                "all_release_year": "1982;;1983",
                "publisher": "Activision",
            },
            {
                "title": "Zaxxon",
                "platform": "Arcade",
                "first_release_year": None,
                "all_release_year": None,
                "publisher": "Sega",
            },
        ],
    )
    igdb = write_csv_table(
        "igdb",
        [
            {
                "index": "10",
                "title": "Air Raid!",
                "platform": "Atari 2600",
                "first_release_year": "1982",
                "all_release_year": "1982",
                "developer": "Men-A-Vision",
            },
            {
                "index": "11",
                "title": "PITFALL!",
                "platform": "Atari 2600",
                "first_release_year": "1982",
                "all_release_year": "1982",
                "developer": "David Crane",
            },
            {
                "index": "12",
                "title": "",
                "platform": "Atari 2600",
                "first_release_year": "1983",
                "all_release_year": "",
                "developer": "",
            },
        ],
    )
    return [moby, igdb]
