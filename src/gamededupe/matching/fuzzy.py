"""Fuzzy match engine over normalized keys.

Keys are compared pairwise with the normalized Levenshtein distance
(edit distance divided by the longer key's length). Each key joins at most
one cluster: once an anchor's candidates are found, anchor and candidates
are consumed and take no further part in matching.

Every function here is pure. Title keys and platform keys (or any shards
of a key set) can be matched independently and concatenated.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

from gamededupe.matching.models import (
    MatchCandidate,
    MatchCluster,
    MatchField,
    compute_cluster_id,
)
from gamededupe.normalize import is_numeric_key

__all__ = [
    "MatchSettings",
    "eligible_keys",
    "find_match_clusters",
    "length_gap_exceeds",
    "match_partitions",
]

DEFAULT_TITLE_THRESHOLD = 0.15
DEFAULT_PLATFORM_THRESHOLD = 0.2
DEFAULT_MIN_LENGTH = 4


@dataclass(frozen=True)
class MatchSettings:
    """Tunable fuzzy match parameters for one field.

    Attributes
    ----------
    threshold : float
        Maximum normalized distance for a candidate pair.
    min_length : int
        Keys shorter than this are never fuzzy compared.
    """

    threshold: float = DEFAULT_TITLE_THRESHOLD
    min_length: int = DEFAULT_MIN_LENGTH

    def __post_init__(self) -> None:
        """Validate ranges."""
        if not 0.0 <= self.threshold < 1.0:
            raise ValueError(f"threshold must be in [0, 1), got {self.threshold}")
        if self.min_length < 1:
            raise ValueError(f"min_length must be >= 1, got {self.min_length}")


def eligible_keys(keys: Iterable[str], min_length: int) -> list[str]:
    """Filter keys that may take part in fuzzy comparison.

    Drops empty keys, keys shorter than ``min_length`` and purely
    numeric keys; deduplicates and sorts the rest.
    """
    return sorted(
        {key for key in keys if key and len(key) >= min_length and not is_numeric_key(key)}
    )


def length_gap_exceeds(len_a: int, len_b: int, threshold: float) -> bool:
    """Return True when the length difference alone exceeds the threshold.

    The edit distance is at least the length difference, so such pairs
    are non-matches without computing the distance.
    """
    longest = max(len_a, len_b)
    if longest == 0:
        return False
    return (longest - min(len_a, len_b)) / longest > threshold


def find_match_clusters(
    keys: Iterable[str],
    settings: MatchSettings,
    field: MatchField = MatchField.TITLE,
) -> list[MatchCluster]:
    """Find near-duplicate clusters among keys.

    Parameters
    ----------
    keys : Iterable[str]
        Normalized keys (duplicates and ineligible keys are ignored).
    settings : MatchSettings
        Threshold and minimum length.
    field : MatchField, optional
        Field label recorded on the clusters.

    Returns
    -------
    list[MatchCluster]
        PENDING clusters, each an anchor plus its candidates, in anchor
        order.
    """
    pool = eligible_keys(keys, settings.min_length)
    consumed: set[str] = set()
    clusters: list[MatchCluster] = []

    for i, anchor in enumerate(pool):
        if anchor in consumed:
            continue

        candidates: list[MatchCandidate] = []
        for other in pool[i + 1 :]:
            if other in consumed:
                continue
            if length_gap_exceeds(len(anchor), len(other), settings.threshold):
                continue

            distance = Levenshtein.normalized_distance(
                anchor, other, score_cutoff=settings.threshold
            )
            if distance <= settings.threshold:
                candidates.append(MatchCandidate(key=other, distance=round(distance, 6)))

        if not candidates:
            continue

        consumed.add(anchor)
        consumed.update(c.key for c in candidates)

        members = [anchor, *(c.key for c in candidates)]
        clusters.append(
            MatchCluster(
                cluster_id=compute_cluster_id(field, members),
                field=field,
                anchor=anchor,
                candidates=tuple(candidates),
            )
        )

    return clusters


def match_partitions(
    partitions: Mapping[MatchField, Iterable[str]],
    settings: Mapping[MatchField, MatchSettings],
) -> list[MatchCluster]:
    """Match each partition independently and combine the results.

    Parameters
    ----------
    partitions : Mapping[MatchField, Iterable[str]]
        Keys per field.
    settings : Mapping[MatchField, MatchSettings]
        Settings per field.

    Returns
    -------
    list[MatchCluster]
        All clusters, sorted by cluster_id.
    """
    clusters: list[MatchCluster] = []
    for field in sorted(partitions):
        clusters.extend(find_match_clusters(partitions[field], settings[field], field))

    clusters.sort(key=lambda c: c.cluster_id)
    return clusters
