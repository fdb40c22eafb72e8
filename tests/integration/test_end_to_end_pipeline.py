"""Integration tests for the merge, sample, replace and estimate workflow."""

import csv
import json
from pathlib import Path

import pytest

from gamededupe.audit import RunContext
from gamededupe.engine import (
    PipelineConfig,
    SamplingConfig,
    load_population,
    run_estimate,
    run_pipeline,
    run_replacement,
    run_sampling,
)
from gamededupe.sampling import load_sample, mark_duplicates
from gamededupe.utils import read_jsonl, write_jsonl


def merge(sources: list[Path], config: PipelineConfig):
    run = RunContext.start(config.output_dir, parameters=config.to_dict())
    result = run_pipeline(sources, config=config, run=run)
    run.finish(status="success" if result.success else "failed")
    return result


@pytest.mark.integration
def test_merge_pipeline_counts_and_population(catalog_sources: list[Path], tmp_path: Path) -> None:
    """Test the six merge stages on two overlapping catalogs."""
    output_dir = tmp_path / "out"

    result = merge(catalog_sources, PipelineConfig(output_dir=output_dir))

    assert result.success, result.error_message
    assert result.total_records == 6
    assert result.records_without_key == 1
    assert result.rows_after_rollup == 4
    assert result.clusters_found == 1
    assert result.clusters_accepted == 1
    assert result.clusters_unresolved == 0
    assert result.population_size == 3
    assert result.ambiguous_merges == 0

    population = load_population(Path(result.output_files["population"]))
    by_key = {p.record.key: p for p in population}
    assert set(by_key) == {"air raid!", "pitfall!", "zaxxon"}

    air_raid = by_key["air raid!"]
    assert air_raid.record.title == "Air Raid"
    assert air_raid.source_index == {"mobygames": 0, "igdb": 10}
    assert air_raid.details["igdb"]["developer"] == "Men-A-Vision"

    pitfall = by_key["pitfall!"]
    assert pitfall.record.platforms == ("atari 2600", "intellivision")
    assert pitfall.record.platform_display == ("Atari 2600", "Intellivision")
    assert pitfall.record.release_years == (1982, 1983)
    assert pitfall.record.titles == {"mobygames": ("Pitfall!",), "igdb": ("PITFALL!",)}

    zaxxon = by_key["zaxxon"]
    assert zaxxon.year is None
    assert zaxxon.source_index["igdb"] is None
    assert zaxxon.details["igdb"] is None


@pytest.mark.integration
def test_merge_pipeline_audit_trail(catalog_sources: list[Path], tmp_path: Path) -> None:
    """Test the run manifest and event log describe every stage."""
    output_dir = tmp_path / "out"

    merge(catalog_sources, PipelineConfig(output_dir=output_dir))

    manifest = json.loads((output_dir / "run.json").read_text())
    assert manifest["status"] == "success"
    assert [s["name"] for s in manifest["stages"]] == [
        "stage1_load",
        "stage2_rollup",
        "stage3_fuzzy_match",
        "stage4_resolve",
        "stage5_merge",
        "stage6_join",
    ]
    assert [s["name"] for s in manifest["inputs"]["sources"]] == ["mobygames", "igdb"]
    assert manifest["inputs"]["total_rows"] == 6
    assert {a["path"] for a in manifest["artifacts"]} == {
        "artifacts/match_clusters.jsonl",
        "review/unresolved_clusters.jsonl",
        "artifacts/population.jsonl",
        "events.jsonl",
    }

    events = read_jsonl(output_dir / "events.jsonl")
    skipped = [e for e in events if e["event"] == "record_skipped"]
    assert [e["ref"] for e in skipped] == ["igdb:12"]
    assert all(e["run_id"] == manifest["run_id"] for e in events)


@pytest.mark.integration
def test_merge_pipeline_uses_stage_cache(catalog_sources: list[Path], tmp_path: Path) -> None:
    """Test a second run with unchanged inputs reuses the fuzzy stage."""
    cache_dir = tmp_path / "cache"

    first = merge(catalog_sources, PipelineConfig(output_dir=tmp_path / "a", cache_dir=cache_dir))
    second = merge(catalog_sources, PipelineConfig(output_dir=tmp_path / "b", cache_dir=cache_dir))
    changed = merge(
        catalog_sources,
        PipelineConfig(output_dir=tmp_path / "c", cache_dir=cache_dir, title_threshold=0.05),
    )

    assert not first.cache_hit
    assert second.cache_hit
    assert not changed.cache_hit
    assert (tmp_path / "a" / "artifacts" / "population.jsonl").read_text() == (
        tmp_path / "b" / "artifacts" / "population.jsonl"
    ).read_text()

    events = read_jsonl(tmp_path / "b" / "events.jsonl")
    assert "cache_hit" in [e["event"] for e in events]


@pytest.mark.integration
def test_merge_pipeline_overrides_reject_cluster(
    catalog_sources: list[Path], tmp_path: Path
) -> None:
    """Test a manual reject leaves the near-variant titles apart."""
    overrides = tmp_path / "overrides.json"
    overrides.write_text(json.dumps({"reject": [["Air Raid", "Air Raid!"]]}))
    output_dir = tmp_path / "out"

    result = merge(
        catalog_sources, PipelineConfig(output_dir=output_dir, overrides_path=overrides)
    )

    assert result.success
    assert result.clusters_accepted == 0
    assert result.clusters_unresolved == 1
    assert result.population_size == 4
    unresolved = read_jsonl(output_dir / "review" / "unresolved_clusters.jsonl")
    assert unresolved[0]["reasons"] == ["manual_reject"]


@pytest.mark.integration
def test_merge_pipeline_overrides_accept_unproposed_pair(
    catalog_sources: list[Path], tmp_path: Path
) -> None:
    """Test a manual accept merges titles the fuzzy matcher never paired."""
    overrides = tmp_path / "overrides.json"
    overrides.write_text(json.dumps({"accept": [["Pitfall!", "Zaxxon", "Xevious"]]}))
    output_dir = tmp_path / "out"

    result = merge(
        catalog_sources, PipelineConfig(output_dir=output_dir, overrides_path=overrides)
    )

    assert result.success, result.error_message
    assert result.clusters_accepted == 2
    assert result.population_size == 2
    population = load_population(Path(result.output_files["population"]))
    assert {p.record.key for p in population} == {"air raid!", "pitfall!"}

    events = read_jsonl(output_dir / "events.jsonl")
    unmatched = [e for e in events if e["event"] == "override_unmatched"]
    assert [e["data"]["unmatched"] for e in unmatched] == [["xevious"]]
    manifest = json.loads((output_dir / "run.json").read_text())
    resolve = next(s for s in manifest["stages"] if s["name"] == "stage4_resolve")
    assert resolve["counters"]["manual_clusters"] == 1


@pytest.mark.integration
def test_merge_pipeline_is_deterministic(catalog_sources: list[Path], tmp_path: Path) -> None:
    """Test identical inputs and settings give identical populations."""
    merge(catalog_sources, PipelineConfig(output_dir=tmp_path / "a"))
    merge(catalog_sources, PipelineConfig(output_dir=tmp_path / "b"))

    first = (tmp_path / "a" / "artifacts" / "population.jsonl").read_bytes()
    second = (tmp_path / "b" / "artifacts" / "population.jsonl").read_bytes()
    assert first == second


@pytest.mark.integration
def test_merge_pipeline_without_sources(tmp_path: Path) -> None:
    """Test an empty source list fails cleanly."""
    result = run_pipeline([], PipelineConfig(output_dir=tmp_path / "out"))

    assert not result.success
    assert result.error_message == "No source tables given"


@pytest.mark.integration
def test_sample_review_replace_estimate(catalog_sources: list[Path], tmp_path: Path) -> None:
    """Test the full review loop from merge to duplicate-rate estimate."""
    merged = merge(catalog_sources, PipelineConfig(output_dir=tmp_path / "merge"))
    population_path = Path(merged.output_files["population"])

    sample_config = SamplingConfig(target_size=1, seed=3, output_dir=tmp_path / "sample")
    run = RunContext.start(sample_config.output_dir, parameters=sample_config.to_dict())
    sampled = run_sampling(population_path, sample_config, run)
    run.finish()

    assert sampled.success, sampled.error_message
    assert sampled.strata == 2
    assert sampled.sample_size == 2
    events = read_jsonl(sample_config.output_dir / "events.jsonl")
    summary = next(e for e in events if e["event"] == "strata_summary")
    assert summary["data"]["1982"] == {"size": 2, "sampled": 1}
    assert summary["data"]["unknown"] == {"size": 1, "sampled": 1}

    sample_path = Path(sampled.output_files["sample"])
    records = load_sample(sample_path)
    in_1982 = next(r for r in records if r.year == 1982)
    write_jsonl([r.to_dict() for r in mark_duplicates(records, [in_1982.pid])], sample_path)

    replace_config = SamplingConfig(seed=3, output_dir=tmp_path / "replace")
    replaced = run_replacement(population_path, sample_path, replace_config)

    assert replaced.success, replaced.error_message
    assert replaced.removed == 1
    assert replaced.added == 1
    assert replaced.sample_size == 2
    assert replaced.shortfall == 0

    final = load_sample(Path(replaced.output_files["sample"]))
    assert len(final) == 3
    assert sum(r.is_sampled for r in final) == 2
    new = next(r for r in final if r.pid not in {x.pid for x in records})
    assert new.year == 1982

    with Path(replaced.output_files["review_table"]).open(encoding="utf-8", newline="") as f:
        review_rows = list(csv.DictReader(f))
    targets = {row["target_platform"] for row in review_rows}
    assert targets <= {"Atari 2600", "Intellivision", "Arcade"}
    assert all(row["copy_string"].endswith(row["target_platform"]) for row in review_rows)

    estimate = run_estimate(Path(replaced.output_files["sample"]), merged.population_size)
    assert estimate.duplicates == 1
    assert estimate.sample_size == 3
    assert estimate.population_size == 3

    sample_file = Path(replaced.output_files["sample"])
    assert run_estimate(sample_file, 3, config=SamplingConfig(z=1.0)).z == 1.0
    assert run_estimate(sample_file, 3, z=2.58, config=SamplingConfig(z=1.0)).z == 2.58
