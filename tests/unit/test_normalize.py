"""Tests for field normalization."""

import pytest

from gamededupe.normalize import (
    flatten,
    flatten_many,
    is_numeric_key,
    parse_year,
    parse_years,
    skeleton,
    strip_accents,
)

# ---------------------------------------------------------------------------
# flatten
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Pitfall!", "pitfall!"),
        ("  Pokémon:  Red/Blue ", "pokemon red blue"),
        ("Tom Clancy's Rainbow Six", "tom clancy s rainbow six"),
        ("Spider-Man™ (2000)", "spider man 2000"),
        ("SimCity® 2000", "simcity 2000"),
        ("ＦＵＬＬＷＩＤＴＨ", "fullwidth"),
        ("Q*bert", "q*bert"),
    ],
)
def test_flatten_examples(raw: str, expected: str) -> None:
    """Test flatten folds case, accents and connector punctuation."""
    assert flatten(raw) == expected


@pytest.mark.unit
@pytest.mark.parametrize("raw", [None, "", "   ", ":-/", "()", "™"])
def test_flatten_empty_inputs(raw: str | None) -> None:
    """Test inputs with nothing comparable flatten to empty string."""
    assert flatten(raw) == ""


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw", ["Air Raid!", "The Legend of Zelda: A Link to the Past", "Ōkami", "R-Type III"]
)
def test_flatten_idempotent(raw: str) -> None:
    """Test normalizing an already-normalized key is a no-op."""
    once = flatten(raw)
    assert flatten(once) == once


@pytest.mark.unit
def test_flatten_keeps_distinctive_punctuation() -> None:
    """Test near-variants differing by '!' stay distinct keys."""
    assert flatten("Air Raid") != flatten("Air Raid!")


@pytest.mark.unit
def test_strip_accents() -> None:
    """Test diacritics are removed."""
    assert strip_accents("Pokémon Ōkami") == "Pokemon Okami"


# ---------------------------------------------------------------------------
# flatten_many / skeleton / numeric keys
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_flatten_many_splits_sorts_and_dedupes() -> None:
    """Test composite values are split, flattened, deduplicated and sorted."""
    result = flatten_many(["NES;;Atari 2600", "atari 2600", None, ";;"])

    assert result == ("atari 2600", "nes")


@pytest.mark.unit
def test_flatten_many_all_separator_input() -> None:
    """Test all-separator input yields no keys."""
    assert flatten_many(";; ;;") == ()


@pytest.mark.unit
def test_skeleton_ignores_spacing_and_punctuation() -> None:
    """Test skeleton equality detects punctuation-only differences."""
    assert skeleton("air raid") == skeleton("air raid!") == "airraid"
    assert skeleton("pac man") == skeleton("pacman")
    assert skeleton("zaxxon") != skeleton("zaxxon ii")


@pytest.mark.unit
@pytest.mark.parametrize(
    ("key", "expected"),
    [("1942", True), ("19 42", True), ("1942 ii", False), ("", False), ("   ", False)],
)
def test_is_numeric_key(key: str, expected: bool) -> None:
    """Test purely numeric keys are detected."""
    assert is_numeric_key(key) is expected


# ---------------------------------------------------------------------------
# Years
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1982, 1982),
        (1982.0, 1982),
        ("1982", 1982),
        ("Nov 1982", 1982),
        (float("nan"), None),
        (None, None),
        ("TBA", None),
        (1850, None),
        (True, None),
    ],
)
def test_parse_year(value: object, expected: int | None) -> None:
    """Test year parsing returns None for anything unparseable."""
    assert parse_year(value) == expected


@pytest.mark.unit
def test_parse_years_composite() -> None:
    """Test composite year lists parse to sorted distinct ints."""
    assert parse_years("1983;;1982;;1983;;unknown") == (1982, 1983)
    assert parse_years([1984, "1982"]) == (1982, 1984)
    assert parse_years(None) == ()
