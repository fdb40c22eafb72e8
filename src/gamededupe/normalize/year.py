"""Release year parsing."""

import re
from typing import Any

from gamededupe.models.composite import split_composite

YEAR_RE = re.compile(r"\b(19|20)\d{2}\b")


def parse_year(value: Any) -> int | None:
    """Extract a four-digit release year.

    Accepts ints, floats read from CSV (``1982.0``) and free text such
    as ``"Nov 1982"``. Anything else is a missing value.

    Parameters
    ----------
    value : Any
        Raw year cell.

    Returns
    -------
    int | None
        Year, or None when no plausible year is present.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1900 <= value <= 2099 else None
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        return parse_year(int(value)) if value.is_integer() else None

    match = YEAR_RE.search(str(value))
    return int(match.group(0)) if match else None


def parse_years(value: Any) -> tuple[int, ...]:
    """Parse a composite list of years into sorted distinct ints."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        parts: tuple[Any, ...] = (value,)
    elif isinstance(value, list):
        parts = tuple(value)
    else:
        parts = split_composite(value)

    years = {year for year in (parse_year(p) for p in parts) if year is not None}
    return tuple(sorted(years))
