"""Year-stratified sampling and the duplicate replacement protocol.

Strata smaller than the target size are taken whole instead of raising
or being dropped. All randomness flows from an explicit seed through a
local ``random.Random``.
"""

import random
from collections.abc import Callable, Collection, Hashable, Sequence
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any

from gamededupe.audit.logger import AuditLogger
from gamededupe.sampling.models import Stratum

__all__ = [
    "DEFAULT_SEED",
    "DEFAULT_TARGET_SIZE",
    "ReplacementResult",
    "build_strata",
    "replace_duplicates",
    "stratified_sample",
]

DEFAULT_TARGET_SIZE = 60
DEFAULT_SEED = 1982

by_year: Callable[[Any], Hashable] = attrgetter("year")


@dataclass(frozen=True)
class ReplacementResult:
    """Outcome of one replacement round.

    Attributes
    ----------
    sampled : list[int]
        Sample after removing duplicates and adding replacements, sorted.
    added : list[int]
        Replacement draws, sorted.
    removed : list[int]
        Confirmed duplicates removed from the sample, sorted.
    shortfall : dict[int | None, int]
        Per stratum, duplicates that could not be replaced.
    """

    sampled: list[int]
    added: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
    shortfall: dict[int | None, int] = field(default_factory=dict)

    @property
    def total_shortfall(self) -> int:
        return sum(self.shortfall.values())


def build_strata(
    population: Sequence[Any],
    strata_key: Callable[[Any], Hashable] = by_year,
) -> list[Stratum]:
    """Partition population positions by ``strata_key``.

    Returns
    -------
    list[Stratum]
        Known keys ascending, the None stratum last. Members keep
        population order; no record is dropped.
    """
    groups: dict[Any, list[int]] = {}
    for position, item in enumerate(population):
        groups.setdefault(strata_key(item), []).append(position)

    known = sorted(k for k in groups if k is not None)
    strata = [Stratum(year=k, members=tuple(groups[k])) for k in known]
    if None in groups:
        strata.append(Stratum(year=None, members=tuple(groups[None])))
    return strata


def _draw(members: Sequence[int], size: int, rng: random.Random) -> list[int]:
    if len(members) <= size:
        return list(members)
    return rng.sample(list(members), size)


def stratified_sample(
    population: Sequence[Any],
    strata_key: Callable[[Any], Hashable] = by_year,
    target_size: int = DEFAULT_TARGET_SIZE,
    seed: int | None = DEFAULT_SEED,
) -> list[int]:
    """Draw up to ``target_size`` members per stratum.

    Strata with at most ``target_size`` members are taken whole; larger
    ones contribute exactly ``target_size`` members drawn uniformly
    without replacement.

    Parameters
    ----------
    population : Sequence[Any]
        Records to sample from.
    strata_key : Callable[[Any], Hashable], optional
        Stratum of a record; ``record.year`` by default.
    target_size : int, optional
        Per-stratum sample size.
    seed : int | None, optional
        Seed of the local generator; the same seed yields the same set.

    Returns
    -------
    list[int]
        Sorted population positions; ``len == sum(min(len(s), target_size))``.

    Raises
    ------
    ValueError
        If ``target_size`` is negative.
    """
    if target_size < 0:
        raise ValueError(f"target_size must be >= 0, got {target_size}")

    rng = random.Random(seed)
    selected: list[int] = []
    for stratum in build_strata(population, strata_key):
        selected.extend(_draw(stratum.members, target_size, rng))
    return sorted(selected)


def replace_duplicates(
    strata: Sequence[Stratum],
    sampled: Collection[int],
    duplicates: Collection[int],
    seed: int | None = DEFAULT_SEED,
    logger: AuditLogger | None = None,
) -> ReplacementResult:
    """Swap confirmed duplicates out of the sample, stratum by stratum.

    Replacements are drawn only from members of the same stratum that are
    neither sampled nor flagged as duplicates. When a stratum runs out,
    it shrinks: the gap is counted in ``shortfall`` and logged as
    ``stratum_exhausted``.

    Parameters
    ----------
    strata : Sequence[Stratum]
        Strata of the population (see ``build_strata``).
    sampled : Collection[int]
        Current sample.
    duplicates : Collection[int]
        Every population index confirmed as a duplicate so far.
    seed : int | None, optional
        Seed of the local generator.
    logger : AuditLogger | None, optional
        Audit logger.

    Returns
    -------
    ReplacementResult
        New sample and round counters. Inputs are not modified.
    """
    rng = random.Random(seed)
    current = set(sampled)
    flagged = set(duplicates)
    added: list[int] = []
    removed: list[int] = []
    shortfall: dict[int | None, int] = {}

    for stratum in strata:
        dropped = [m for m in stratum.members if m in current and m in flagged]
        if not dropped:
            continue

        eligible = [m for m in stratum.members if m not in current and m not in flagged]
        draws = _draw(eligible, len(dropped), rng)

        removed.extend(dropped)
        added.extend(draws)
        missing = len(dropped) - len(draws)
        if missing:
            shortfall[stratum.year] = missing
            if logger:
                logger.stratum_exhausted(stratum.label, missing)

    new_sample = (current - set(removed)) | set(added)
    return ReplacementResult(
        sampled=sorted(new_sample),
        added=sorted(added),
        removed=sorted(removed),
        shortfall=shortfall,
    )
