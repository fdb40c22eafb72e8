"""Apply accepted match clusters to the rolled-up table.

Accepted clusters of each field are collapsed with union-find; every
member key is rewritten to its component's canonical representative and
the table is rolled up again so rows that now share a key merge.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from gamededupe.matching import ClusterStatus, MatchCluster, MatchField
from gamededupe.merge.union_find import UnionFind
from gamededupe.models import MergedRecord
from gamededupe.rollup import rollup, sort_elements

__all__ = [
    "MergeOutcome",
    "apply_clusters",
    "canonical_map",
    "platform_weights",
    "title_weights",
]


@dataclass(frozen=True)
class MergeOutcome:
    """Result of applying clusters.

    Attributes
    ----------
    rows : list[MergedRecord]
        Rolled-up table after rewriting.
    keys_rewritten : int
        Rows whose title key changed.
    platforms_rewritten : int
        Platform elements rewritten, summed over rows.
    rows_before : int
        Row count before the merge.
    rows_after : int
        Row count after the merge.
    """

    rows: list[MergedRecord]
    keys_rewritten: int
    platforms_rewritten: int
    rows_before: int
    rows_after: int

    @property
    def changed(self) -> bool:
        return bool(self.keys_rewritten or self.platforms_rewritten)


def title_weights(rows: Sequence[MergedRecord]) -> tuple[dict[str, int], dict[str, int]]:
    """Completeness and first-observed position of every title key."""
    weights: dict[str, int] = {}
    first_seen: dict[str, int] = {}
    for position, row in enumerate(rows):
        weights[row.key] = weights.get(row.key, 0) + row.contributor_count
        first_seen.setdefault(row.key, position)
    return weights, first_seen


def platform_weights(rows: Sequence[MergedRecord]) -> tuple[dict[str, int], dict[str, int]]:
    """Row count and first-observed position of every platform key."""
    weights: dict[str, int] = {}
    first_seen: dict[str, int] = {}
    position = 0
    for row in rows:
        for platform in row.platforms:
            weights[platform] = weights.get(platform, 0) + 1
            if platform not in first_seen:
                first_seen[platform] = position
                position += 1
    return weights, first_seen


def _platform_display(rows: Sequence[MergedRecord]) -> dict[str, str]:
    display: dict[str, str] = {}
    for row in rows:
        for key, name in row.platform_names.items():
            display.setdefault(key, name)
    return display


def canonical_map(
    clusters: Iterable[MatchCluster],
    weights: dict[str, int],
    first_seen: dict[str, int],
) -> dict[str, str]:
    """Map every non-canonical member key to its representative.

    Parameters
    ----------
    clusters : Iterable[MatchCluster]
        Clusters of one field; overlapping clusters are unioned.
    weights : dict[str, int]
        Completeness per key; the heaviest member is canonical.
    first_seen : dict[str, int]
        Position of first observation. On a weight tie the longest key
        (most complete form) wins, then the earliest observed.

    Returns
    -------
    dict[str, str]
        ``{member: canonical}`` for members that must be rewritten.
    """
    uf = UnionFind()
    for cluster in clusters:
        uf.union_all(cluster.members)

    unseen = len(first_seen)
    mapping: dict[str, str] = {}
    for component in uf.components():
        canonical = min(
            component,
            key=lambda k: (-weights.get(k, 0), -len(k), first_seen.get(k, unseen), k),
        )
        for key in component:
            if key != canonical:
                mapping[key] = canonical
    return mapping


def apply_clusters(
    rows: Sequence[MergedRecord],
    clusters: Iterable[MatchCluster],
    precedence: Sequence[str] = (),
) -> MergeOutcome:
    """Rewrite member keys to their canonical form and roll up again.

    Only ACCEPTED clusters are applied. Re-applying the same clusters to
    the returned rows is a no-op: rewritten members no longer occur, and
    the canonical key only gained weight.

    Parameters
    ----------
    rows : Sequence[MergedRecord]
        Rolled-up table.
    clusters : Iterable[MatchCluster]
        Resolved clusters of either field.
    precedence : Sequence[str], optional
        Source precedence for canonical titles in the re-rollup.

    Returns
    -------
    MergeOutcome
        Merged rows and rewrite counters.
    """
    accepted = [c for c in clusters if c.status == ClusterStatus.ACCEPTED]
    title_clusters = [c for c in accepted if c.field == MatchField.TITLE]
    platform_clusters = [c for c in accepted if c.field == MatchField.PLATFORM]

    title_map = canonical_map(title_clusters, *title_weights(rows))
    platform_map = canonical_map(platform_clusters, *platform_weights(rows))
    display = _platform_display(rows)

    keys_rewritten = 0
    platforms_rewritten = 0
    rewritten: list[MergedRecord] = []

    for row in rows:
        key = title_map.get(row.key, row.key)
        platforms = row.platforms
        names = row.platform_names
        hits = sum(1 for p in platforms if p in platform_map)

        if key != row.key:
            keys_rewritten += 1
        if hits:
            platforms_rewritten += hits
            platforms = sort_elements(platform_map.get(p, p) for p in platforms) or ()
            names = {p: display.get(p, row.platform_names.get(p, p)) for p in platforms}

        if key != row.key or hits:
            row = replace(row, key=key, platforms=platforms, platform_names=names)
        rewritten.append(row)

    merged = rollup(rewritten, precedence)
    return MergeOutcome(
        rows=merged,
        keys_rewritten=keys_rewritten,
        platforms_rewritten=platforms_rewritten,
        rows_before=len(rows),
        rows_after=len(merged),
    )
