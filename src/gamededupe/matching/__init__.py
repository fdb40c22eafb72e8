"""Fuzzy matching of normalized keys and resolution of match clusters.

Clusters are proposed by edit-distance comparison (``fuzzy``), then either
auto-accepted by a fixed rule set or left for manual review (``resolver``).
Manually curated decisions enter through ``ReviewOverrides``.
"""

from gamededupe.matching.fuzzy import (
    MatchSettings,
    eligible_keys,
    find_match_clusters,
    match_partitions,
)
from gamededupe.matching.models import (
    ClusterStatus,
    MatchCandidate,
    MatchCluster,
    MatchField,
    ReasonCode,
    compute_cluster_id,
)
from gamededupe.matching.overrides import ReviewOverrides
from gamededupe.matching.resolver import (
    Resolution,
    ResolverRules,
    judge_pair,
    override_clusters,
    resolve_clusters,
)

__all__ = [
    "ClusterStatus",
    "MatchCandidate",
    "MatchCluster",
    "MatchField",
    "MatchSettings",
    "ReasonCode",
    "Resolution",
    "ResolverRules",
    "ReviewOverrides",
    "compute_cluster_id",
    "eligible_keys",
    "find_match_clusters",
    "judge_pair",
    "match_partitions",
    "override_clusters",
    "resolve_clusters",
]
