"""Pipeline runners.

Merge pipeline (``run_pipeline``):
    Stage 1: Load and validate source tables
    Stage 2: Exact rollup by normalized title
    Stage 3: Fuzzy matching of title and platform keys (cached)
    Stage 4: Match resolution (auto-accept rules + manual overrides)
    Stage 5: Cluster merge and re-rollup
    Stage 6: Cross-source join into the population table

Sampling (``run_sampling``, ``run_replacement``) and the duplicate-rate
audit (``run_estimate``) operate on the population table afterwards.

Runners accumulate partial results; any failure is caught here, logged as
a ``pipeline_error`` event and returned as an unsuccessful result.
"""

import traceback
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import replace
from itertools import chain
from pathlib import Path

from gamededupe.audit import InputsInfo, RunContext, SourceInfo
from gamededupe.audit.logger import AuditLogger
from gamededupe.engine.cache import StageCache
from gamededupe.engine.config import (
    PipelineConfig,
    PipelineResult,
    SamplingConfig,
    SamplingResult,
)
from gamededupe.ingest import SourceTable, load_sources
from gamededupe.matching import (
    MatchCluster,
    MatchField,
    Resolution,
    ReviewOverrides,
    match_partitions,
    resolve_clusters,
)
from gamededupe.merge import JoinResult, MergeOutcome, apply_clusters, join_sources
from gamededupe.models import MergedRecord, PopulationRecord
from gamededupe.rollup import rollup_sources
from gamededupe.sampling import (
    DEFAULT_Z,
    DuplicateRateEstimate,
    SampleRecord,
    Stratum,
    build_sample_records,
    build_strata,
    estimate_duplicate_rate,
    load_sample,
    replace_duplicates,
    stratified_sample,
    write_review_table,
)
from gamededupe.utils import calculate_file_sha256, read_jsonl, write_jsonl

__all__ = [
    "load_population",
    "run_estimate",
    "run_pipeline",
    "run_replacement",
    "run_sampling",
]

FUZZY_STAGE = "stage3_fuzzy_match"

POPULATION_FILE = Path("artifacts") / "population.jsonl"
CLUSTERS_FILE = Path("artifacts") / "match_clusters.jsonl"
UNRESOLVED_FILE = Path("review") / "unresolved_clusters.jsonl"
SAMPLE_FILE = Path("artifacts") / "sample.jsonl"
REVIEW_TABLE_FILE = Path("review") / "sample_review.csv"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _logger(run: RunContext | None) -> AuditLogger | None:
    return run.audit_logger if run is not None else None


def _begin(run: RunContext | None, stage: str, expected_records: int | None = None) -> None:
    if run is not None:
        run.start_stage(stage, expected_records=expected_records)


def _end(run: RunContext | None, stage: str, counters: dict[str, int]) -> None:
    if run is not None:
        run.finish_stage(stage, counters=counters)


def _write(
    run: RunContext | None,
    rows: Iterable[dict],
    path: Path,
    stage: str,
) -> int:
    count = write_jsonl(rows, path)
    if run is not None:
        run.register_artifact(path, stage=stage, record_count=count)
    return count


def _fail(run: RunContext | None, stage: str | None, exc: Exception) -> str:
    error_msg = f"{type(exc).__name__}: {exc}"
    logger = _logger(run)
    if logger:
        logger.event(
            "pipeline_error",
            stage="pipeline",
            data={"error": error_msg, "failed_stage": stage, "traceback": traceback.format_exc()},
            level="ERROR",
        )
    if run is not None:
        run.record_error(exc, stage=stage)
    return error_msg


def _ensure_output_dirs(output_dir: Path) -> None:
    for name in ("artifacts", "review"):
        (output_dir / name).mkdir(parents=True, exist_ok=True)


def load_population(path: Path) -> list[PopulationRecord]:
    """Read a population artifact.

    Raises
    ------
    ValueError
        If pids are not the positions 0..N-1 in file order.
    """
    population = [PopulationRecord.from_dict(row) for row in read_jsonl(path)]
    for position, item in enumerate(population):
        if item.pid != position:
            raise ValueError(f"{path}: pid {item.pid} found at position {position}")
    return population


# ---------------------------------------------------------------------------
# Merge pipeline stages
# ---------------------------------------------------------------------------


def _stage1_load_sources(paths: Sequence[Path], run: RunContext | None) -> list[SourceTable]:
    """Stage 1: Load source tables; a schema mismatch aborts the run."""
    stage = "stage1_load"
    _begin(run, stage)

    tables = load_sources(paths)
    total = sum(len(t) for t in tables)

    if run is not None:
        run.set_inputs(
            InputsInfo(
                sources=[
                    SourceInfo(
                        name=t.name,
                        file=t.path.name if t.path else t.name,
                        sha256=calculate_file_sha256(t.path) if t.path else "",
                        rows=len(t),
                        columns=list(t.columns),
                    )
                    for t in tables
                ],
                total_rows=total,
            )
        )

    _end(run, stage, {"sources": len(tables), "records": total})
    return tables


def _stage2_rollup(
    tables: Sequence[SourceTable],
    precedence: Sequence[str],
    run: RunContext | None,
) -> tuple[list[MergedRecord], int]:
    """Stage 2: Exact rollup of all sources by normalized title."""
    stage = "stage2_rollup"
    records = list(chain.from_iterable(t.records for t in tables))
    _begin(run, stage, expected_records=len(records))

    rows, unkeyed = rollup_sources(records, precedence)

    logger = _logger(run)
    if logger:
        for record in unkeyed:
            logger.record_skipped(record.source, record.index, reason="empty_title_key")

    _end(
        run,
        stage,
        {"records_in": len(records), "records_without_key": len(unkeyed), "rows_out": len(rows)},
    )
    return rows, len(unkeyed)


def _fuzzy_partitions(rows: Sequence[MergedRecord]) -> dict[MatchField, list[str]]:
    platforms = sorted({p for row in rows for p in row.platforms})
    return {
        MatchField.TITLE: sorted({row.key for row in rows}),
        MatchField.PLATFORM: platforms,
    }


def _stage3_fuzzy_match(
    rows: Sequence[MergedRecord],
    config: PipelineConfig,
    run: RunContext | None,
) -> tuple[list[MatchCluster], bool]:
    """Stage 3: Propose match clusters, served from the stage cache when possible."""
    _begin(run, FUZZY_STAGE)
    logger = _logger(run)

    partitions = _fuzzy_partitions(rows)
    settings = {
        MatchField.TITLE: config.title_settings(),
        MatchField.PLATFORM: config.platform_settings(),
    }

    cache = StageCache(config.cache_dir) if config.cache_dir is not None else None
    key = None
    cached = None
    if cache is not None:
        key = StageCache.key(
            FUZZY_STAGE,
            {
                "partitions": {f.value: keys for f, keys in partitions.items()},
                "settings": {
                    f.value: {"threshold": s.threshold, "min_length": s.min_length}
                    for f, s in settings.items()
                },
            },
        )
        cached = cache.get(FUZZY_STAGE, key)
        if logger:
            logger.cache_lookup(FUZZY_STAGE, key, hit=cached is not None)

    if cached is not None:
        clusters = [MatchCluster.from_dict(c) for c in cached]
    else:
        clusters = match_partitions(partitions, settings)
        if cache is not None and key is not None:
            cache.put(FUZZY_STAGE, key, [c.to_dict() for c in clusters])

    _end(
        run,
        FUZZY_STAGE,
        {
            "title_keys": len(partitions[MatchField.TITLE]),
            "platform_keys": len(partitions[MatchField.PLATFORM]),
            "clusters": len(clusters),
            "cache_hit": int(cached is not None),
        },
    )
    return clusters, cached is not None


def _stage4_resolve(
    clusters: Sequence[MatchCluster],
    rows: Sequence[MergedRecord],
    config: PipelineConfig,
    output_dir: Path,
    run: RunContext | None,
) -> Resolution:
    """Stage 4: Auto-accept safe clusters; write the rest out for review."""
    stage = "stage4_resolve"
    _begin(run, stage, expected_records=len(clusters))

    overrides = None
    if config.overrides_path is not None:
        overrides = ReviewOverrides.from_file(config.overrides_path)

    resolution = resolve_clusters(
        clusters,
        config.resolver_rules(),
        overrides,
        _logger(run),
        partitions=_fuzzy_partitions(rows),
    )

    _write(run, (c.to_dict() for c in resolution.clusters), output_dir / CLUSTERS_FILE, stage)
    _write(run, (c.to_dict() for c in resolution.unresolved), output_dir / UNRESOLVED_FILE, stage)

    _end(
        run,
        stage,
        {
            "clusters": len(resolution.clusters),
            "accepted": len(resolution.accepted_ids),
            "unresolved": len(resolution.unresolved),
            "overrides": len(overrides) if overrides is not None else 0,
            "manual_clusters": len(resolution.clusters) - len(clusters),
        },
    )
    return resolution


def _stage5_apply(
    rows: Sequence[MergedRecord],
    resolution: Resolution,
    precedence: Sequence[str],
    run: RunContext | None,
) -> MergeOutcome:
    """Stage 5: Collapse accepted clusters and roll up again."""
    stage = "stage5_merge"
    _begin(run, stage, expected_records=len(rows))

    outcome = apply_clusters(rows, resolution.accepted, precedence)

    _end(
        run,
        stage,
        {
            "rows_in": outcome.rows_before,
            "rows_out": outcome.rows_after,
            "keys_rewritten": outcome.keys_rewritten,
            "platforms_rewritten": outcome.platforms_rewritten,
        },
    )
    return outcome


def _stage6_join(
    rows: Sequence[MergedRecord],
    tables: Sequence[SourceTable],
    output_dir: Path,
    run: RunContext | None,
) -> JoinResult:
    """Stage 6: Attach source details and write the population table."""
    stage = "stage6_join"
    _begin(run, stage, expected_records=len(rows))

    joined = join_sources(rows, tables, _logger(run))
    _write(run, (p.to_dict() for p in joined.population), output_dir / POPULATION_FILE, stage)

    _end(
        run,
        stage,
        {
            "population": len(joined.population),
            "ambiguous_merges": joined.ambiguous_merges,
            "missing_joins": joined.missing_joins,
        },
    )
    return joined


def run_pipeline(
    source_paths: Sequence[Path | str],
    config: PipelineConfig | None = None,
    run: RunContext | None = None,
) -> PipelineResult:
    """Merge the given source tables into a deduplicated population.

    Parameters
    ----------
    source_paths : Sequence[Path | str]
        One ``.jsonl`` or ``.csv`` file per source; the file stem is the
        source name.
    config : PipelineConfig | None, optional
        Pipeline configuration; defaults when None.
    run : RunContext | None, optional
        Audit context receiving events, stage timings and artifacts.

    Returns
    -------
    PipelineResult
        Counters and artifact paths; ``success=False`` with a message on
        any failure.

    Examples
    --------
        >>> from gamededupe.engine import PipelineConfig, run_pipeline
        >>> result = run_pipeline(["mobygames.csv", "igdb.jsonl"], PipelineConfig(output_dir="out"))
        >>> result.population_size
        1234
    """
    config = config or PipelineConfig()
    paths = [Path(p) for p in source_paths]
    output_dir = config.output_dir
    result = PipelineResult(success=False)

    if not paths:
        result.error_message = "No source tables given"
        return result

    stage = None
    try:
        _ensure_output_dirs(output_dir)

        stage = "stage1_load"
        tables = _stage1_load_sources(paths, run)
        result.total_records = sum(len(t) for t in tables)
        precedence = config.source_precedence or [t.name for t in tables]

        stage = "stage2_rollup"
        rows, result.records_without_key = _stage2_rollup(tables, precedence, run)
        result.rows_after_rollup = len(rows)

        stage = FUZZY_STAGE
        clusters, result.cache_hit = _stage3_fuzzy_match(rows, config, run)
        result.clusters_found = len(clusters)

        stage = "stage4_resolve"
        resolution = _stage4_resolve(clusters, rows, config, output_dir, run)
        result.clusters_accepted = len(resolution.accepted_ids)
        result.clusters_unresolved = len(resolution.unresolved)
        result.output_files["match_clusters"] = str(output_dir / CLUSTERS_FILE)
        result.output_files["unresolved_clusters"] = str(output_dir / UNRESOLVED_FILE)

        stage = "stage5_merge"
        outcome = _stage5_apply(rows, resolution, precedence, run)

        stage = "stage6_join"
        joined = _stage6_join(outcome.rows, tables, output_dir, run)
        result.population_size = len(joined.population)
        result.ambiguous_merges = joined.ambiguous_merges
        result.output_files["population"] = str(output_dir / POPULATION_FILE)

        result.success = True
        return result

    except Exception as e:
        result.error_message = _fail(run, stage, e)
        return result


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


def _write_sample(
    records: Sequence[SampleRecord],
    output_dir: Path,
    run: RunContext | None,
    stage: str,
) -> dict[str, str]:
    ordered = sorted(records, key=lambda r: r.pid)
    _write(run, (r.to_dict() for r in ordered), output_dir / SAMPLE_FILE, stage)

    table_path = output_dir / REVIEW_TABLE_FILE
    count = write_review_table(ordered, table_path)
    if run is not None:
        run.register_artifact(table_path, stage=stage, record_count=count)

    return {"sample": str(output_dir / SAMPLE_FILE), "review_table": str(table_path)}


def _log_strata(run: RunContext | None, strata: Sequence[Stratum], drawn: Iterable[int]) -> None:
    logger = _logger(run)
    if not logger:
        return
    selected = set(drawn)
    logger.strata_summary(
        {
            s.label: {"size": len(s), "sampled": sum(1 for m in s.members if m in selected)}
            for s in strata
        }
    )


def run_sampling(
    population_path: Path | str,
    config: SamplingConfig | None = None,
    run: RunContext | None = None,
) -> SamplingResult:
    """Draw the year-stratified review sample from a population table.

    Parameters
    ----------
    population_path : Path | str
        ``population.jsonl`` written by the merge pipeline.
    config : SamplingConfig | None, optional
        Sampling configuration; defaults when None.
    run : RunContext | None, optional
        Audit context.

    Returns
    -------
    SamplingResult
        Sample counters and artifact paths.
    """
    config = config or SamplingConfig()
    result = SamplingResult(success=False)
    stage = "sample"

    try:
        _ensure_output_dirs(config.output_dir)
        population = load_population(Path(population_path))
        result.population_size = len(population)
        _begin(run, stage, expected_records=len(population))

        strata = build_strata(population)
        indices = stratified_sample(population, target_size=config.target_size, seed=config.seed)
        records = build_sample_records(
            population,
            indices,
            reviewers=config.reviewers or (),
            seed=config.seed,
            placeholder=config.placeholder,
        )
        result.output_files = _write_sample(records, config.output_dir, run, stage)
        _log_strata(run, strata, indices)

        result.strata = len(strata)
        result.sample_size = len(records)
        _end(
            run,
            stage,
            {"population": len(population), "strata": len(strata), "sampled": len(records)},
        )

        result.success = True
        return result

    except Exception as e:
        result.error_message = _fail(run, stage, e)
        return result


def _unreplaced(
    removed: Sequence[int],
    population: Sequence[PopulationRecord],
    shortfall: dict[int | None, int],
) -> set[int]:
    by_year: dict[int | None, list[int]] = defaultdict(list)
    for pid in removed:
        by_year[population[pid].year].append(pid)

    left: set[int] = set()
    for year, missing in shortfall.items():
        if missing:
            left.update(sorted(by_year[year])[-missing:])
    return left


def run_replacement(
    population_path: Path | str,
    sample_path: Path | str,
    config: SamplingConfig | None = None,
    run: RunContext | None = None,
) -> SamplingResult:
    """Replace reviewed duplicates in a sample.

    Records flagged ``is_duplicate`` in the sample are taken out of it
    (kept in the file with ``is_sampled=False``) and replaced by fresh
    draws from the same stratum. Duplicates that could not be replaced
    keep ``replacement_needed=True``.

    Parameters
    ----------
    population_path : Path | str
        Population the sample was drawn from.
    sample_path : Path | str
        Reviewed ``sample.jsonl`` or edited ``sample_review.csv``.
    config : SamplingConfig | None, optional
        Sampling configuration (seed, reviewers, placeholder, output).
    run : RunContext | None, optional
        Audit context.

    Returns
    -------
    SamplingResult
        Counters of the replacement round.
    """
    config = config or SamplingConfig()
    result = SamplingResult(success=False)
    stage = "replace"

    try:
        _ensure_output_dirs(config.output_dir)
        population = load_population(Path(population_path))
        records = load_sample(Path(sample_path))
        result.population_size = len(population)
        _begin(run, stage, expected_records=len(records))

        strata = build_strata(population)
        replacement = replace_duplicates(
            strata,
            sampled=[r.pid for r in records if r.is_sampled],
            duplicates=[r.pid for r in records if r.is_duplicate],
            seed=config.seed,
            logger=_logger(run),
        )

        removed = set(replacement.removed)
        unreplaced = _unreplaced(replacement.removed, population, replacement.shortfall)
        updated = [
            replace(r, is_sampled=False, replacement_needed=r.pid in unreplaced)
            if r.pid in removed
            else r
            for r in records
        ]
        updated.extend(
            build_sample_records(
                population,
                replacement.added,
                reviewers=config.reviewers or (),
                seed=config.seed,
                placeholder=config.placeholder,
            )
        )
        result.output_files = _write_sample(updated, config.output_dir, run, stage)

        result.strata = len(strata)
        result.sample_size = len(replacement.sampled)
        result.added = len(replacement.added)
        result.removed = len(replacement.removed)
        result.shortfall = replacement.total_shortfall
        _end(
            run,
            stage,
            {
                "removed": result.removed,
                "added": result.added,
                "shortfall": result.shortfall,
                "sampled": result.sample_size,
            },
        )

        result.success = True
        return result

    except Exception as e:
        result.error_message = _fail(run, stage, e)
        return result


def run_estimate(
    sample_path: Path | str,
    population_size: int,
    z: float | None = None,
    config: SamplingConfig | None = None,
) -> DuplicateRateEstimate:
    """Estimate the residual duplicate rate from a reviewed sample.

    Every record in the sample file counts as reviewed; ``is_duplicate``
    flags are the confirmed duplicates. An explicit ``z`` wins over
    ``config.z``; with neither, the 95% critical value is used.

    Raises
    ------
    ValueError
        If the sample is empty.
    """
    records = load_sample(Path(sample_path))
    duplicates = sum(1 for r in records if r.is_duplicate)
    if z is None:
        z = config.z if config is not None else DEFAULT_Z
    return estimate_duplicate_rate(duplicates, len(records), population_size, z)
