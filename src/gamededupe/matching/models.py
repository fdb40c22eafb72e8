"""Data models for fuzzy match clusters and their resolution."""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any


class ClusterStatus(StrEnum):
    """Resolution state of a match cluster.

    Attributes
    ----------
    PENDING : str
        Proposed by the fuzzy matcher, not yet resolved.
    ACCEPTED : str
        Confirmed duplicates, safe to merge automatically.
    REJECTED : str
        Not auto-accepted; left for manual review and never merged.
    """

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class MatchField(StrEnum):
    """Field a cluster was built from."""

    TITLE = "title"
    PLATFORM = "platform"


class ReasonCode(StrEnum):
    """Reason codes attached to each candidate decision.

    Attributes
    ----------
    MANUAL_ACCEPT : str
        Pair listed together in an accept group of the overrides.
    MANUAL_REJECT : str
        Pair listed together in a reject group of the overrides.
    PUNCTUATION_ONLY : str
        Keys differ only in case, punctuation or spacing.
    SPELLING_VARIANT : str
        Single edit (insertion, deletion, substitution or transposition)
        near a key boundary.
    TOO_MANY_CANDIDATES : str
        Cluster too large to be a simple spelling variant.
    MULTI_TOKEN_DIVERGENCE : str
        More than one token differs between the keys.
    HIGH_RELATIVE_DISTANCE : str
        Edit distance too high, or edit not near a boundary.
    """

    MANUAL_ACCEPT = "manual_accept"
    MANUAL_REJECT = "manual_reject"
    PUNCTUATION_ONLY = "punctuation_only"
    SPELLING_VARIANT = "spelling_variant"
    TOO_MANY_CANDIDATES = "too_many_candidates"
    MULTI_TOKEN_DIVERGENCE = "multi_token_divergence"
    HIGH_RELATIVE_DISTANCE = "high_relative_distance"


ACCEPT_REASONS: frozenset[ReasonCode] = frozenset(
    {ReasonCode.MANUAL_ACCEPT, ReasonCode.PUNCTUATION_ONLY, ReasonCode.SPELLING_VARIANT}
)


@dataclass(frozen=True)
class MatchCandidate:
    """A key matched to a cluster anchor.

    Attributes
    ----------
    key : str
        Candidate normalized key.
    distance : float
        Normalized edit distance to the anchor (0.0 = identical).
    """

    key: str
    distance: float


@dataclass(frozen=True)
class MatchCluster:
    """A proposed set of keys believed to denote the same game.

    Attributes
    ----------
    cluster_id : str
        Deterministic identifier derived from field and members.
    field : MatchField
        Field the keys come from.
    anchor : str
        Key the candidates were compared against.
    candidates : tuple[MatchCandidate, ...]
        Matched keys with their distances, sorted by key.
    status : ClusterStatus
        Resolution state.
    reasons : tuple[str, ...]
        Per-candidate reason codes, aligned with ``candidates``.
    """

    cluster_id: str
    field: MatchField
    anchor: str
    candidates: tuple[MatchCandidate, ...]
    status: ClusterStatus = ClusterStatus.PENDING
    reasons: tuple[str, ...] = ()

    @property
    def members(self) -> tuple[str, ...]:
        """Anchor followed by candidate keys."""
        return (self.anchor, *(c.key for c in self.candidates))

    def resolved(self, status: ClusterStatus, reasons: Sequence[str]) -> "MatchCluster":
        """Return a copy carrying a resolution decision."""
        return replace(self, status=status, reasons=tuple(reasons))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns
        -------
        dict[str, Any]
            Dictionary representation.
        """
        return {
            "cluster_id": self.cluster_id,
            "field": self.field.value,
            "anchor": self.anchor,
            "candidates": [{"key": c.key, "distance": c.distance} for c in self.candidates],
            "status": self.status.value,
            "reasons": list(self.reasons),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MatchCluster":
        """Deserialize cluster from dictionary.

        Parameters
        ----------
        data : dict[str, Any]
            Dictionary produced by ``to_dict``.

        Returns
        -------
        MatchCluster
            Reconstructed cluster.
        """
        return MatchCluster(
            cluster_id=data["cluster_id"],
            field=MatchField(data["field"]),
            anchor=data["anchor"],
            candidates=tuple(
                MatchCandidate(key=c["key"], distance=c["distance"]) for c in data["candidates"]
            ),
            status=ClusterStatus(data.get("status", ClusterStatus.PENDING.value)),
            reasons=tuple(data.get("reasons", [])),
        )


def compute_cluster_id(field: MatchField | str, keys: Sequence[str]) -> str:
    """Compute deterministic cluster ID from field and member keys.

    Parameters
    ----------
    field : MatchField | str
        Field the keys belong to.
    keys : Sequence[str]
        Member keys in any order.

    Returns
    -------
    str
        Cluster ID in format "c:{sha256_prefix}".
    """
    content = "\n".join([str(field), *sorted(keys)])
    hash_digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"c:{hash_digest[:12]}"
