"""Exact rollup of records sharing a normalized title key.

Rollup is the grouping step re-run after every key rewrite: rows sharing a
key collapse into one MergedRecord whose multi-valued fields are the
sorted, deduplicated union of the group's values.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import Any

from gamededupe.models import MergedRecord, SourceRecord, split_composite
from gamededupe.normalize import flatten, flatten_many

__all__ = [
    "choose_title",
    "from_source",
    "min_year",
    "platform_names",
    "rollup",
    "rollup_sources",
    "sort_elements",
]


def sort_elements(values: Iterable[Any]) -> tuple[str, ...] | None:
    """Merge composite values into one sorted, deduplicated composite.

    Every non-missing value (itself possibly a composite of sub-values)
    is flattened into its parts; the parts are deduplicated and sorted
    lexicographically.

    Parameters
    ----------
    values : Iterable[Any]
        Group values: strings, separator-joined strings, tuples, or None.

    Returns
    -------
    tuple[str, ...] | None
        Sorted distinct parts, or None when every value is missing.

    Notes
    -----
    Idempotent: ``sort_elements([sort_elements(v)]) == sort_elements(v)``.
    """
    parts: set[str] = set()
    for value in values:
        if value is None:
            continue
        parts.update(split_composite(value))

    if not parts:
        return None
    return tuple(sorted(parts))


def min_year(values: Iterable[int | None]) -> int | None:
    """Minimum over non-missing years; None marks an unknown year."""
    known = [v for v in values if v is not None]
    return min(known) if known else None


def _union_sorted(groups: Iterable[Iterable[Any]]) -> tuple[Any, ...]:
    merged: set[Any] = set()
    for group in groups:
        merged.update(group)
    return tuple(sorted(merged))


def platform_names(values: Iterable[Any]) -> dict[str, str]:
    """Map each platform key to the first raw spelling that produced it."""
    names: dict[str, str] = {}
    for raw in split_composite(values):
        key = flatten(raw)
        if key:
            names.setdefault(key, raw.strip())
    return names


def _source_rank(source: str, precedence: Sequence[str]) -> tuple[int, str]:
    try:
        return (precedence.index(source), source)
    except ValueError:
        return (len(precedence), source)


def choose_title(titles: dict[str, tuple[str, ...]], precedence: Sequence[str] = ()) -> str:
    """Pick the canonical display title.

    The highest-precedence source present wins; within it the longest
    title (most complete form), ties broken lexicographically. Sources
    absent from ``precedence`` rank after it, alphabetically.

    Parameters
    ----------
    titles : dict[str, tuple[str, ...]]
        Distinct raw titles per source.
    precedence : Sequence[str], optional
        Source names in decreasing precedence.

    Returns
    -------
    str
        Canonical title ("" only if no source carries a title).
    """
    for source in sorted(titles, key=lambda s: _source_rank(s, precedence)):
        candidates = titles[source]
        if candidates:
            return min(candidates, key=lambda t: (-len(t), t))
    return ""


def from_source(record: SourceRecord, precedence: Sequence[str] = ()) -> MergedRecord | None:
    """Lift a source record into a single-contributor merged record.

    Returns None when the title normalizes to an empty key; such records
    must not be grouped under a shared empty key.
    """
    key = flatten(record.title)
    if not key:
        return None

    titles = {record.source: split_composite(record.title)}
    years = set(record.release_years)
    if record.first_release_year is not None:
        years.add(record.first_release_year)

    return MergedRecord(
        key=key,
        title=choose_title(titles, precedence),
        titles=titles,
        platforms=flatten_many(record.platforms),
        first_release_year=record.first_release_year,
        release_years=tuple(sorted(years)),
        source_indices={record.source: (record.index,)},
        platform_names=platform_names(record.platforms),
    )


def _merge_group(group: list[MergedRecord], precedence: Sequence[str]) -> MergedRecord:
    titles_by_source: dict[str, list[tuple[str, ...]]] = defaultdict(list)
    indices_by_source: dict[str, list[tuple[int, ...]]] = defaultdict(list)
    names: dict[str, str] = {}

    for row in group:
        for source, titles in row.titles.items():
            titles_by_source[source].append(titles)
        for source, indices in row.source_indices.items():
            indices_by_source[source].append(indices)
        for key, name in row.platform_names.items():
            names.setdefault(key, name)

    titles = {
        source: sort_elements(values) or () for source, values in titles_by_source.items()
    }

    return MergedRecord(
        key=group[0].key,
        title=choose_title(titles, precedence),
        titles=titles,
        platforms=sort_elements(row.platforms for row in group) or (),
        first_release_year=min_year(row.first_release_year for row in group),
        release_years=_union_sorted(row.release_years for row in group),
        source_indices={
            source: _union_sorted(values) for source, values in indices_by_source.items()
        },
        platform_names=names,
    )


def rollup(rows: Iterable[MergedRecord], precedence: Sequence[str] = ()) -> list[MergedRecord]:
    """Group rows by key and merge each group.

    Parameters
    ----------
    rows : Iterable[MergedRecord]
        Rows to roll up; keys may repeat.
    precedence : Sequence[str], optional
        Source precedence for the canonical title.

    Returns
    -------
    list[MergedRecord]
        One row per distinct key, sorted by key.
    """
    groups: dict[str, list[MergedRecord]] = defaultdict(list)
    for row in rows:
        groups[row.key].append(row)

    return [_merge_group(groups[key], precedence) for key in sorted(groups)]


def rollup_sources(
    records: Iterable[SourceRecord],
    precedence: Sequence[str] = (),
) -> tuple[list[MergedRecord], list[SourceRecord]]:
    """Roll up the union of source records.

    Parameters
    ----------
    records : Iterable[SourceRecord]
        Schema-aligned records from every source.
    precedence : Sequence[str], optional
        Source precedence for the canonical title.

    Returns
    -------
    tuple[list[MergedRecord], list[SourceRecord]]
        Rolled-up rows and the records whose title produced no key.
    """
    lifted: list[MergedRecord] = []
    unkeyed: list[SourceRecord] = []

    for record in records:
        row = from_source(record, precedence)
        if row is None:
            unkeyed.append(record)
        else:
            lifted.append(row)

    return rollup(lifted, precedence), unkeyed
