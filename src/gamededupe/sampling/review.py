"""Review table: sample records prepared for manual duplicate checks."""

import csv
import random
from collections.abc import Collection, Iterable, Sequence
from dataclasses import replace
from pathlib import Path

from gamededupe.ingest import read_rows
from gamededupe.models import SEPARATOR, PopulationRecord, join_composite, split_composite
from gamededupe.normalize import parse_year
from gamededupe.sampling.models import SampleRecord
from gamededupe.utils import read_jsonl

__all__ = [
    "DEFAULT_PLACEHOLDER",
    "REVIEW_COLUMNS",
    "assign_reviewers",
    "build_sample_records",
    "choose_target_platform",
    "copy_string",
    "load_sample",
    "mark_duplicates",
    "write_review_table",
]

DEFAULT_PLACEHOLDER = "NA"

REVIEW_COLUMNS = (
    "pid",
    "year",
    "title",
    "platforms",
    "target_platform",
    "reviewer",
    "copy_string",
    "is_sampled",
    "is_duplicate",
    "replacement_needed",
)

_TRUE_FLAGS = frozenset({"1", "true", "yes", "y", "x"})


def choose_target_platform(platforms: Sequence[str], rng: random.Random) -> str | None:
    """Pick one platform to review a multi-platform record on."""
    if not platforms:
        return None
    return rng.choice(sorted(platforms))


def assign_reviewers(n: int, reviewers: Sequence[str], rng: random.Random) -> list[str | None]:
    """Round-robin over a shuffled reviewer list.

    Loads differ by at most one record. Returns ``[None] * n`` when no
    reviewers are configured.
    """
    if not reviewers:
        return [None] * n
    order = list(reviewers)
    rng.shuffle(order)
    return [order[i % len(order)] for i in range(n)]


def copy_string(
    title: str | None,
    year: int | None,
    platform: str | None,
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> str:
    """Join title, year and platform for pasting into search forms.

    >>> copy_string("Air Raid", None, "Atari 2600")
    'Air Raid;;NA;;Atari 2600'
    """
    parts = [placeholder if v is None or str(v) == "" else str(v) for v in (title, year, platform)]
    return SEPARATOR.join(parts)


def build_sample_records(
    population: Sequence[PopulationRecord],
    indices: Iterable[int],
    reviewers: Sequence[str] = (),
    seed: int | None = None,
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> list[SampleRecord]:
    """Build review rows for the sampled population indices.

    Parameters
    ----------
    population : Sequence[PopulationRecord]
        Merged population, indexed by position.
    indices : Iterable[int]
        Sampled positions.
    reviewers : Sequence[str], optional
        Reviewer names, assigned round-robin.
    seed : int | None, optional
        Seed for platform choice and reviewer order.
    placeholder : str, optional
        Token replacing missing values in the copy string.

    Returns
    -------
    list[SampleRecord]
        Rows in index order, all sampled and none flagged.
    """
    rng = random.Random(seed)
    positions = sorted(indices)
    assigned = assign_reviewers(len(positions), reviewers, rng)

    records: list[SampleRecord] = []
    for position, reviewer in zip(positions, assigned, strict=True):
        item = population[position]
        platforms = item.record.platform_display
        target = choose_target_platform(platforms, rng)
        records.append(
            SampleRecord(
                pid=item.pid,
                year=item.year,
                title=item.record.title,
                platforms=platforms,
                reviewer=reviewer,
                target_platform=target,
                copy_string=copy_string(item.record.title, item.year, target, placeholder),
            )
        )
    return records


def mark_duplicates(
    records: Iterable[SampleRecord],
    duplicate_pids: Collection[int],
) -> list[SampleRecord]:
    """Flag confirmed duplicates; they now need a replacement."""
    flagged = set(duplicate_pids)
    return [
        replace(r, is_duplicate=True, replacement_needed=True) if r.pid in flagged else r
        for r in records
    ]


def write_review_table(records: Iterable[SampleRecord], path: Path) -> int:
    """Write the copy-ready review CSV.

    Platforms are joined with the reserved separator; missing values are
    left empty. Returns the number of rows written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=REVIEW_COLUMNS)
        writer.writeheader()
        for record in records:
            row = record.to_dict()
            row["platforms"] = join_composite(record.platforms)
            writer.writerow({column: row[column] for column in REVIEW_COLUMNS})
            count += 1
    return count


def _flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return value is not None and str(value).strip().lower() in _TRUE_FLAGS


def _text(value: object) -> str | None:
    return str(value) if value not in (None, "") else None


def _from_review_row(row: dict[str, object]) -> SampleRecord:
    return SampleRecord(
        pid=int(str(row["pid"])),
        year=parse_year(row.get("year")),
        title=str(row.get("title") or ""),
        platforms=split_composite(row.get("platforms")),
        is_sampled=_flag(row.get("is_sampled", True)),
        is_duplicate=_flag(row.get("is_duplicate")),
        replacement_needed=_flag(row.get("replacement_needed")),
        reviewer=_text(row.get("reviewer")),
        target_platform=_text(row.get("target_platform")),
        copy_string=_text(row.get("copy_string")),
    )


def load_sample(path: Path) -> list[SampleRecord]:
    """Read a sample back, from ``sample.jsonl`` or an edited review CSV.

    In the CSV, flags are true for "1", "true", "yes", "y" or "x"
    (any case); blank cells are false.

    Raises
    ------
    ValueError
        If the file is neither ``.jsonl`` nor ``.csv``.
    """
    if path.suffix.lower() == ".jsonl":
        return [SampleRecord.from_dict(row) for row in read_jsonl(path)]
    if path.suffix.lower() == ".csv":
        _, rows = read_rows(path)
        return [_from_review_row(row) for row in rows]
    raise ValueError(f"Unsupported sample format '{path.suffix}' (expected .jsonl or .csv)")
