"""Attach source-specific details to the final merged records.

Each merged record keeps, per source, the sorted list of contributing
indices. The join keeps only the first (smallest) one: a known lossy
simplification. Every record where more than one index was discarded is
counted and logged as an ``ambiguous_merge`` event.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from gamededupe.audit.logger import AuditLogger
from gamededupe.ingest import SourceTable
from gamededupe.models import MergedRecord, PopulationRecord, SourceRecord

__all__ = ["JoinResult", "join_sources", "source_details"]


@dataclass(frozen=True)
class JoinResult:
    """Joined population and join counters.

    Attributes
    ----------
    population : list[PopulationRecord]
        One record per merged row, ``pid`` equal to its position.
    ambiguous_merges : int
        (record, source) pairs resolved by the first-index tie-break.
    missing_joins : int
        (record, source) pairs left with null details.
    """

    population: list[PopulationRecord]
    ambiguous_merges: int = 0
    missing_joins: int = 0


def source_details(record: SourceRecord) -> dict[str, Any]:
    """Per-source raw columns carried onto the population record."""
    return {
        "title": record.title,
        "platforms": list(record.platforms),
        "first_release_year": record.first_release_year,
        "release_years": list(record.release_years),
        **record.details,
    }


def join_sources(
    rows: Sequence[MergedRecord],
    tables: Sequence[SourceTable] | Mapping[str, SourceTable],
    logger: AuditLogger | None = None,
) -> JoinResult:
    """Left-join source details onto merged rows.

    Parameters
    ----------
    rows : Sequence[MergedRecord]
        Final rolled-up rows, in population order.
    tables : Sequence[SourceTable] | Mapping[str, SourceTable]
        Source tables; every table name becomes a key of
        ``source_index`` and ``details``.
    logger : AuditLogger | None, optional
        Receives ``ambiguous_merge`` and ``missing_join`` events.

    Returns
    -------
    JoinResult
        Population records (never fewer than ``rows``) and counters.
    """
    by_name = dict(tables) if isinstance(tables, Mapping) else {t.name: t for t in tables}
    population: list[PopulationRecord] = []
    ambiguous = 0
    missing = 0

    for pid, row in enumerate(rows):
        source_index: dict[str, int | None] = {}
        details: dict[str, dict[str, Any] | None] = {}

        for name, table in by_name.items():
            indices = row.source_indices.get(name, ())
            if not indices:
                source_index[name] = None
                details[name] = None
                continue

            index = indices[0]
            if len(indices) > 1:
                ambiguous += 1
                if logger:
                    logger.ambiguous_merge(name, row.key, index, list(indices[1:]))

            record = table.lookup(index)
            if record is None:
                missing += 1
                if logger:
                    logger.missing_join(name, row.key, index)
                source_index[name] = index
                details[name] = None
                continue

            source_index[name] = index
            details[name] = source_details(record)

        population.append(
            PopulationRecord(pid=pid, record=row, source_index=source_index, details=details)
        )

    return JoinResult(population=population, ambiguous_merges=ambiguous, missing_joins=missing)
