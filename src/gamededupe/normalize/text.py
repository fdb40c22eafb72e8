"""Comparison-safe ("flat") projections of free-text fields.

Flat keys are used purely for equality and similarity comparisons and are
never displayed. All functions here are pure and deterministic.
"""

import re
import unicodedata
from collections.abc import Iterable
from typing import Any

from gamededupe.models.composite import split_composite

__all__ = [
    "flatten",
    "flatten_many",
    "is_numeric_key",
    "skeleton",
    "strip_accents",
]

# Connector punctuation only. "!", "?", "+", "&", "#" and "*" survive into
# the key and are judged later by the fuzzy matcher and resolver.
CONNECTOR_PUNCT_RE = re.compile(r"[:;,.'\"`´‘’“”\-–—_/\\()\[\]{}]+")
# Marks stripped before NFKC, which would otherwise expand "™" into "TM".
TRADEMARK_RE = re.compile(r"[™℠®©]")
NON_ALNUM_RE = re.compile(r"[\W_]+")
NUMERIC_KEY_RE = re.compile(r"^[0-9 ]+$")


def strip_accents(text: str) -> str:
    """Remove diacritical marks for cross-locale matching.

    Parameters
    ----------
    text : str
        Input text with potential diacritics.

    Returns
    -------
    str
        Text with diacritical marks removed.
    """
    nfd = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in nfd if unicodedata.category(c) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def flatten(text: str | None) -> str:
    """Normalize a raw text field into a flat comparison key.

    Applies NFKC, casefold, accent stripping, connector punctuation
    removal and whitespace collapsing.

    Parameters
    ----------
    text : str | None
        Raw text (title or single platform name).

    Returns
    -------
    str
        Flat key; empty string when nothing comparable remains.

    Examples
    --------
    >>> flatten("  Pokémon:  Red/Blue ")
    'pokemon red blue'
    >>> flatten("Air Raid!")
    'air raid!'
    """
    if not text:
        return ""
    text = TRADEMARK_RE.sub(" ", text)
    text = unicodedata.normalize("NFKC", text)
    text = text.casefold()
    text = strip_accents(text)
    text = CONNECTOR_PUNCT_RE.sub(" ", text)
    return " ".join(text.split())


def flatten_many(values: Iterable[Any] | Any) -> tuple[str, ...]:
    """Flatten a multi-valued field.

    Each element (itself possibly a separator-joined composite) is split,
    flattened independently, then the keys are deduplicated and sorted.
    Elements that flatten to an empty key are dropped.

    Parameters
    ----------
    values : Iterable[Any] | Any
        Composite string, iterable of strings, or None.

    Returns
    -------
    tuple[str, ...]
        Sorted distinct non-empty flat keys.
    """
    keys = {flatten(part) for part in split_composite(values)}
    keys.discard("")
    return tuple(sorted(keys))


def skeleton(key: str) -> str:
    """Alphanumeric-only projection of a key.

    Two keys with equal skeletons differ only in case, punctuation or
    spacing.
    """
    return NON_ALNUM_RE.sub("", flatten(key))


def is_numeric_key(key: str) -> bool:
    """Return True for year-like or ID-like keys made only of digits."""
    return bool(NUMERIC_KEY_RE.match(key)) and bool(key.strip())
