"""Tests for the fuzzy match engine."""

import pytest

from gamededupe.matching import (
    ClusterStatus,
    MatchField,
    MatchSettings,
    compute_cluster_id,
    eligible_keys,
    find_match_clusters,
    match_partitions,
)
from gamededupe.matching.fuzzy import length_gap_exceeds

# ---------------------------------------------------------------------------
# Settings and eligibility
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_settings_defaults() -> None:
    """Test default title settings."""
    settings = MatchSettings()

    assert settings.threshold == 0.15
    assert settings.min_length == 4


@pytest.mark.unit
@pytest.mark.parametrize(("threshold", "min_length"), [(1.0, 4), (-0.1, 4), (0.15, 0)])
def test_settings_validation(threshold: float, min_length: int) -> None:
    """Test out-of-range settings are rejected."""
    with pytest.raises(ValueError):
        MatchSettings(threshold=threshold, min_length=min_length)


@pytest.mark.unit
def test_eligible_keys_filters_short_numeric_and_empty() -> None:
    """Test short, numeric and empty keys never take part in matching."""
    keys = ["air raid", "pong", "qix", "1942", "19 43", "", "air raid"]

    assert eligible_keys(keys, 4) == ["air raid", "pong"]
    assert eligible_keys(keys, 5) == ["air raid"]


@pytest.mark.unit
def test_length_gap_exceeds() -> None:
    """Test the length pre-filter."""
    assert length_gap_exceeds(10, 8, 0.15) is True
    assert length_gap_exceeds(9, 8, 0.15) is False
    assert length_gap_exceeds(0, 0, 0.15) is False


# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_near_variant_titles_cluster() -> None:
    """Test 'air raid' and 'air raid!' form one cluster."""
    clusters = find_match_clusters(["air raid", "air raid!", "pitfall!", "zaxxon"], MatchSettings())

    assert len(clusters) == 1
    cluster = clusters[0]
    assert cluster.anchor == "air raid"
    assert [c.key for c in cluster.candidates] == ["air raid!"]
    assert cluster.candidates[0].distance == pytest.approx(1 / 9, abs=1e-6)
    assert cluster.status == ClusterStatus.PENDING
    assert cluster.field == MatchField.TITLE


@pytest.mark.unit
def test_distinct_titles_do_not_cluster() -> None:
    """Test unrelated keys produce no clusters."""
    assert find_match_clusters(["pitfall!", "zaxxon", "river raid"], MatchSettings()) == []


@pytest.mark.unit
def test_numeric_keys_never_cluster() -> None:
    """Test year-like keys are excluded even when one edit apart."""
    settings = MatchSettings(threshold=0.3, min_length=4)

    assert find_match_clusters(["1942", "1943"], settings) == []


@pytest.mark.unit
def test_min_length_excludes_short_keys() -> None:
    """Test keys below the minimum length are never compared."""
    keys = ["pong", "pang"]

    assert find_match_clusters(keys, MatchSettings(threshold=0.3, min_length=5)) == []
    assert len(find_match_clusters(keys, MatchSettings(threshold=0.3, min_length=4))) == 1


@pytest.mark.unit
def test_consumed_keys_join_at_most_one_cluster() -> None:
    """Test a key consumed as a candidate is not compared again."""
    keys = ["abcdefghij", "abcdefghik", "abcdefghkk"]

    clusters = find_match_clusters(keys, MatchSettings())

    assert len(clusters) == 1
    assert clusters[0].members == ("abcdefghij", "abcdefghik")
    seen = [key for cluster in clusters for key in cluster.members]
    assert len(seen) == len(set(seen))


@pytest.mark.unit
def test_clusters_are_deterministic() -> None:
    """Test input order does not change the clusters produced."""
    keys = ["air raid!", "zaxxon", "air raid", "river raid", "river raid!"]

    first = find_match_clusters(keys, MatchSettings())
    second = find_match_clusters(list(reversed(keys)), MatchSettings())

    assert first == second
    assert [c.anchor for c in first] == ["air raid", "river raid"]


@pytest.mark.unit
def test_compute_cluster_id_ignores_member_order() -> None:
    """Test cluster ids depend on field and member set only."""
    a = compute_cluster_id(MatchField.TITLE, ["air raid", "air raid!"])
    b = compute_cluster_id(MatchField.TITLE, ["air raid!", "air raid"])
    c = compute_cluster_id(MatchField.PLATFORM, ["air raid", "air raid!"])

    assert a == b
    assert a != c
    assert a.startswith("c:")


@pytest.mark.unit
def test_match_partitions_matches_fields_independently() -> None:
    """Test titles and platforms are matched with their own settings."""
    clusters = match_partitions(
        {
            MatchField.TITLE: ["air raid", "air raid!"],
            MatchField.PLATFORM: ["atari 2600", "atari 2601", "arcade"],
        },
        {
            MatchField.TITLE: MatchSettings(0.15, 4),
            MatchField.PLATFORM: MatchSettings(0.2, 4),
        },
    )

    assert {c.field for c in clusters} == {MatchField.TITLE, MatchField.PLATFORM}
    assert [c.cluster_id for c in clusters] == sorted(c.cluster_id for c in clusters)
    platform = next(c for c in clusters if c.field == MatchField.PLATFORM)
    assert platform.members == ("atari 2600", "atari 2601")
