"""Tests for the exact rollup engine."""

from collections.abc import Callable

import pytest

from gamededupe.models import MergedRecord, SourceRecord
from gamededupe.rollup import (
    choose_title,
    from_source,
    min_year,
    rollup,
    rollup_sources,
    sort_elements,
)


@pytest.mark.unit
def test_sort_elements_merges_composites() -> None:
    """Test composite values are flattened, deduplicated and sorted."""
    result = sort_elements(["nes;;atari 2600", ("snes", "nes"), None])

    assert result == ("atari 2600", "nes", "snes")


@pytest.mark.unit
def test_sort_elements_missing_only() -> None:
    """Test a group with only missing values yields None."""
    assert sort_elements([None, None]) is None
    assert sort_elements([]) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "values",
    [["b;;a", "c"], [("z",), None, "y;;z"], [None], ["only"]],
)
def test_sort_elements_idempotent(values: list) -> None:
    """Test applying sort_elements twice equals applying it once."""
    once = sort_elements(values)
    assert sort_elements([once]) == once


@pytest.mark.unit
def test_min_year() -> None:
    """Test minimum ignores missing years; all missing stays unknown."""
    assert min_year([1984, None, 1982]) == 1982
    assert min_year([None, None]) is None


@pytest.mark.unit
def test_choose_title_uses_precedence_then_length() -> None:
    """Test canonical title comes from the highest-precedence source."""
    titles = {"igdb": ("Pitfall! Pitfall Harry's Jungle Adventure",), "mobygames": ("Pitfall!",)}

    assert choose_title(titles, ["mobygames", "igdb"]) == "Pitfall!"
    assert choose_title(titles, ["igdb", "mobygames"]).startswith("Pitfall! Pitfall Harry")
    assert choose_title({"a": ("Abc", "Abd")}) == "Abc"


@pytest.mark.unit
def test_from_source_lifts_record(make_source_record: Callable[..., SourceRecord]) -> None:
    """Test a source record becomes a single-contributor merged record."""
    record = make_source_record(
        "Pitfall!", index=3, platforms=("Atari 2600", "NES"), year=1982, release_years=(1983,)
    )

    row = from_source(record)

    assert row is not None
    assert row.key == "pitfall!"
    assert row.title == "Pitfall!"
    assert row.platforms == ("atari 2600", "nes")
    assert row.platform_display == ("Atari 2600", "NES")
    assert row.release_years == (1982, 1983)
    assert row.source_indices == {"mobygames": (3,)}


@pytest.mark.unit
def test_from_source_empty_title(make_source_record: Callable[..., SourceRecord]) -> None:
    """Test records without a title key are not lifted."""
    assert from_source(make_source_record(":::")) is None
    assert from_source(make_source_record(None)) is None


@pytest.mark.unit
def test_merged_record_requires_contributors() -> None:
    """Test a merged record can never be empty of contributors."""
    with pytest.raises(ValueError, match="no contributing records"):
        MergedRecord(
            key="k",
            title="K",
            titles={},
            platforms=(),
            first_release_year=None,
            release_years=(),
            source_indices={"mobygames": ()},
        )


@pytest.mark.unit
def test_rollup_groups_by_key(make_row: Callable[..., MergedRecord]) -> None:
    """Test rows sharing a key merge; output is sorted by key."""
    rows = [
        make_row("Zaxxon", index=0, year=1982),
        make_row("PITFALL!", index=1, year=1983, platforms=("NES",), source="igdb"),
        make_row("Pitfall!", index=2, year=1982),
    ]

    merged = rollup(rows, ["mobygames", "igdb"])

    assert [r.key for r in merged] == ["pitfall!", "zaxxon"]
    pitfall = merged[0]
    assert pitfall.title == "Pitfall!"
    assert pitfall.titles == {"mobygames": ("Pitfall!",), "igdb": ("PITFALL!",)}
    assert pitfall.platforms == ("atari 2600", "nes")
    assert pitfall.first_release_year == 1982
    assert pitfall.release_years == (1982, 1983)
    assert pitfall.source_indices == {"igdb": (1,), "mobygames": (2,)}
    assert pitfall.contributor_count == 2


@pytest.mark.unit
def test_rollup_unknown_year_stays_unknown(make_row: Callable[..., MergedRecord]) -> None:
    """Test a group whose years are all missing keeps an unknown year."""
    merged = rollup(
        [make_row("Zaxxon", index=0, year=None), make_row("zaxxon", index=1, year=None)]
    )

    assert len(merged) == 1
    assert merged[0].first_release_year is None
    assert merged[0].source_indices == {"mobygames": (0, 1)}


@pytest.mark.unit
def test_rollup_is_stable_on_rolled_rows(make_row: Callable[..., MergedRecord]) -> None:
    """Test rolling up an already rolled-up table changes nothing."""
    once = rollup([make_row("Pitfall!", index=0), make_row("pitfall!", index=1, source="igdb")])

    assert rollup(once) == once


@pytest.mark.unit
def test_rollup_keeps_first_observed_platform_spelling(
    make_row: Callable[..., MergedRecord],
) -> None:
    """Test platform display names come from the first contributor that spelled them."""
    rows = [
        make_row("Pitfall!", index=0, platforms=("ATARI 2600", "Intellivision")),
        make_row("PITFALL!", index=1, platforms=("Atari 2600",), source="igdb"),
    ]

    merged = rollup(rows)

    assert merged[0].platforms == ("atari 2600", "intellivision")
    assert merged[0].platform_display == ("ATARI 2600", "Intellivision")


@pytest.mark.unit
def test_rollup_sources_reports_unkeyed(make_source_record: Callable[..., SourceRecord]) -> None:
    """Test records with empty keys are returned separately, never merged."""
    records = [
        make_source_record("Pitfall!", index=0),
        make_source_record("", index=1),
        make_source_record("--", index=2),
    ]

    rows, unkeyed = rollup_sources(records)

    assert [r.key for r in rows] == ["pitfall!"]
    assert [r.index for r in unkeyed] == [1, 2]
