"""Composite field encoding at the tabular boundary.

In memory, multi-valued fields (platforms, titles, release years) are
ordered tuples. Source tables and review exports store them as a single
string joined by a reserved separator; these helpers are the only place
that separator is interpreted.
"""

from collections.abc import Iterable
from typing import Any

__all__ = ["SEPARATOR", "split_composite", "join_composite"]

SEPARATOR = ";;"


def split_composite(value: Any) -> tuple[str, ...]:
    """Split a raw composite value into its stripped, non-empty parts.

    Parameters
    ----------
    value : Any
        A separator-joined string, an iterable of strings, or None.

    Returns
    -------
    tuple[str, ...]
        Parts in original order (duplicates preserved). Empty for
        None, empty strings and all-separator input.
    """
    if value is None:
        return ()

    if isinstance(value, str):
        parts: Iterable[Any] = value.split(SEPARATOR)
    elif isinstance(value, Iterable):
        parts = (piece for item in value for piece in split_composite(item))
    else:
        parts = [str(value)]

    return tuple(p.strip() for p in map(str, parts) if p and p.strip())


def join_composite(values: Iterable[Any] | None) -> str | None:
    """Join parts with the reserved separator.

    Returns None for a missing or empty collection so that a missing
    composite stays distinguishable from a real value.
    """
    if values is None:
        return None
    parts = [str(v) for v in values if v is not None and str(v) != ""]
    if not parts:
        return None
    return SEPARATOR.join(parts)
