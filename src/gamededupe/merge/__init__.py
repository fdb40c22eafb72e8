"""Cluster merge application and cross-source join."""

from gamededupe.merge.applier import (
    MergeOutcome,
    apply_clusters,
    canonical_map,
    platform_weights,
    title_weights,
)
from gamededupe.merge.joiner import JoinResult, join_sources, source_details
from gamededupe.merge.union_find import UnionFind

__all__ = [
    "JoinResult",
    "MergeOutcome",
    "UnionFind",
    "apply_clusters",
    "canonical_map",
    "join_sources",
    "platform_weights",
    "source_details",
    "title_weights",
]
