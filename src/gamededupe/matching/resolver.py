"""Auto-accept rules for fuzzy match clusters.

A cluster is accepted only when every candidate looks like a spelling
variant of the anchor rather than a coincidence. Anything else is left
unresolved for manual review and is never merged automatically.

Manual accept groups do not depend on the fuzzy matcher: each becomes an
accepted cluster of its own, even when its keys are too far apart to be
proposed, or share a proposed cluster with a rejected candidate.
"""

import os
from collections import Counter
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field

from rapidfuzz.distance import OSA, Levenshtein

from gamededupe.audit.logger import AuditLogger
from gamededupe.matching.models import (
    ACCEPT_REASONS,
    ClusterStatus,
    MatchCandidate,
    MatchCluster,
    MatchField,
    ReasonCode,
    compute_cluster_id,
)
from gamededupe.matching.overrides import ReviewOverrides
from gamededupe.normalize import skeleton

__all__ = [
    "ResolverRules",
    "Resolution",
    "judge_pair",
    "override_clusters",
    "resolve_clusters",
]


@dataclass(frozen=True)
class ResolverRules:
    """Fixed rule set parameters.

    Attributes
    ----------
    max_candidates : int
        Largest candidate count a cluster may have to be auto-accepted.
    max_edits : int
        Largest edit distance (adjacent transposition = 1 edit) accepted
        as a spelling variant.
    boundary_window : int
        Characters of the shorter key that may lie outside the common
        prefix or suffix for an edit to count as near a boundary.
    """

    max_candidates: int = 2
    max_edits: int = 1
    boundary_window: int = 3


@dataclass(frozen=True)
class Resolution:
    """Resolver output.

    Attributes
    ----------
    clusters : tuple[MatchCluster, ...]
        Every cluster with its decision, kept for manual inspection.
    accepted_ids : frozenset[str]
        Cluster ids that are safe to auto-apply.
    """

    clusters: tuple[MatchCluster, ...]
    accepted_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def accepted(self) -> list[MatchCluster]:
        """Clusters safe to merge automatically."""
        return [c for c in self.clusters if c.cluster_id in self.accepted_ids]

    @property
    def unresolved(self) -> list[MatchCluster]:
        """Clusters left for manual review."""
        return [c for c in self.clusters if c.cluster_id not in self.accepted_ids]


def _token_divergence(key_a: str, key_b: str) -> int:
    tokens_a = Counter(key_a.split())
    tokens_b = Counter(key_b.split())
    return max(sum((tokens_a - tokens_b).values()), sum((tokens_b - tokens_a).values()))


def _edit_near_boundary(key_a: str, key_b: str, window: int) -> bool:
    prefix = len(os.path.commonprefix([key_a, key_b]))
    suffix = len(os.path.commonprefix([key_a[::-1], key_b[::-1]]))
    return max(prefix, suffix) >= min(len(key_a), len(key_b)) - window


def judge_pair(
    anchor: str,
    candidate: str,
    candidate_count: int,
    rules: ResolverRules,
    overrides: ReviewOverrides | None = None,
) -> ReasonCode:
    """Decide one anchor/candidate pair.

    Rules are applied in order; the first that fires decides.

    Parameters
    ----------
    anchor : str
        Cluster anchor key.
    candidate : str
        Candidate key.
    candidate_count : int
        Number of candidates in the cluster.
    rules : ResolverRules
        Rule parameters.
    overrides : ReviewOverrides | None, optional
        Manual decisions, consulted first.

    Returns
    -------
    ReasonCode
        Accepting codes are listed in ``ACCEPT_REASONS``.
    """
    if overrides is not None:
        if overrides.is_rejected(anchor, candidate):
            return ReasonCode.MANUAL_REJECT
        if overrides.is_accepted(anchor, candidate):
            return ReasonCode.MANUAL_ACCEPT

    anchor_skeleton = skeleton(anchor)
    if anchor_skeleton and anchor_skeleton == skeleton(candidate):
        return ReasonCode.PUNCTUATION_ONLY

    if candidate_count > rules.max_candidates:
        return ReasonCode.TOO_MANY_CANDIDATES

    if _token_divergence(anchor, candidate) > 1:
        return ReasonCode.MULTI_TOKEN_DIVERGENCE

    if OSA.distance(anchor, candidate) <= rules.max_edits and _edit_near_boundary(
        anchor, candidate, rules.boundary_window
    ):
        return ReasonCode.SPELLING_VARIANT

    return ReasonCode.HIGH_RELATIVE_DISTANCE


def override_clusters(
    overrides: ReviewOverrides,
    partitions: Mapping[MatchField, Collection[str]],
    logger: AuditLogger | None = None,
) -> list[MatchCluster]:
    """Turn manual accept groups into ACCEPTED clusters.

    A group is matched against the keys of each field; every field holding
    at least two of its keys yields one cluster. Keys that end up in no
    cluster (absent from the table, or alone in their field) are logged as
    ``override_unmatched``.

    Parameters
    ----------
    overrides : ReviewOverrides
        Manual decisions; only accept groups are used.
    partitions : Mapping[MatchField, Collection[str]]
        Keys present in the table, per field.
    logger : AuditLogger | None, optional
        Audit logger.

    Returns
    -------
    list[MatchCluster]
        One accepted cluster per group and field, anchored on the
        smallest key.
    """
    known = {f: set(keys) for f, keys in partitions.items()}
    clusters: list[MatchCluster] = []

    for group in overrides.accept:
        applied: set[str] = set()
        for match_field, keys in known.items():
            members = sorted(group & keys)
            if len(members) < 2:
                continue
            anchor, *rest = members
            cluster = MatchCluster(
                cluster_id=compute_cluster_id(f"manual:{match_field.value}", members),
                field=match_field,
                anchor=anchor,
                candidates=tuple(
                    MatchCandidate(key=k, distance=Levenshtein.normalized_distance(anchor, k))
                    for k in rest
                ),
            )
            reasons = [ReasonCode.MANUAL_ACCEPT.value] * len(rest)
            clusters.append(cluster.resolved(ClusterStatus.ACCEPTED, reasons))
            applied.update(members)

        unmatched = sorted(group - applied)
        if unmatched and logger:
            logger.override_unmatched(sorted(group), unmatched)

    return clusters


def resolve_clusters(
    clusters: Iterable[MatchCluster],
    rules: ResolverRules | None = None,
    overrides: ReviewOverrides | None = None,
    logger: AuditLogger | None = None,
    partitions: Mapping[MatchField, Collection[str]] | None = None,
) -> Resolution:
    """Apply the auto-accept rules to every cluster.

    Parameters
    ----------
    clusters : Iterable[MatchCluster]
        PENDING clusters from the fuzzy matcher.
    rules : ResolverRules | None, optional
        Rule parameters; defaults when None.
    overrides : ReviewOverrides | None, optional
        Manual decisions.
    logger : AuditLogger | None, optional
        Audit logger; unresolved clusters are logged individually.
    partitions : Mapping[MatchField, Collection[str]] | None, optional
        Keys present in the table, per field. When given together with
        ``overrides``, manual accept groups are added as accepted clusters
        (see ``override_clusters``) unless an accepted proposed cluster
        already covers them.

    Returns
    -------
    Resolution
        All clusters with decisions, plus the accepted index.
    """
    rules = rules or ResolverRules()
    resolved: list[MatchCluster] = []
    accepted_ids: set[str] = set()

    for cluster in clusters:
        reasons = [
            judge_pair(cluster.anchor, c.key, len(cluster.candidates), rules, overrides)
            for c in cluster.candidates
        ]

        if reasons and all(r in ACCEPT_REASONS for r in reasons):
            status = ClusterStatus.ACCEPTED
            accepted_ids.add(cluster.cluster_id)
        else:
            status = ClusterStatus.REJECTED
            if logger:
                logger.cluster_unresolved(
                    cluster.cluster_id,
                    cluster.field.value,
                    list(cluster.members),
                    [r.value for r in reasons],
                )

        resolved.append(cluster.resolved(status, [r.value for r in reasons]))

    if overrides is not None and partitions is not None:
        covered = [(c.field, set(c.members)) for c in resolved if c.cluster_id in accepted_ids]
        for manual in override_clusters(overrides, partitions, logger):
            members = set(manual.members)
            if any(f == manual.field and members <= m for f, m in covered):
                continue
            resolved.append(manual)
            accepted_ids.add(manual.cluster_id)

    return Resolution(clusters=tuple(resolved), accepted_ids=frozenset(accepted_ids))
