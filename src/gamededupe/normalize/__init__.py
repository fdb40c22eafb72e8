"""Field normalization for matching keys and release years."""

from gamededupe.normalize.text import (
    flatten,
    flatten_many,
    is_numeric_key,
    skeleton,
    strip_accents,
)
from gamededupe.normalize.year import parse_year, parse_years

__all__ = [
    "flatten",
    "flatten_many",
    "is_numeric_key",
    "parse_year",
    "parse_years",
    "skeleton",
    "strip_accents",
]
