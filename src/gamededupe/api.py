"""High-level convenience functions.

Thin wrappers around the runners that raise instead of returning an
unsuccessful result:

- ``merge_sources``: source tables → population table
- ``draw_sample``: population table → review sample
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gamededupe.engine.config import PipelineResult, SamplingResult

__all__ = ["PipelineError", "draw_sample", "merge_sources"]


class PipelineError(Exception):
    """Raised when a pipeline run fails."""

    def __init__(self, message: str, output_dir: str | None = None) -> None:
        super().__init__(message)
        self.output_dir = output_dir


def merge_sources(
    sources: Sequence[str | Path],
    *,
    output_dir: str | Path = "out",
    title_threshold: float = 0.15,
    platform_threshold: float = 0.2,
    overrides_path: str | Path | None = None,
    cache_dir: str | Path | None = None,
) -> PipelineResult:
    """Merge source tables into a deduplicated population.

    Parameters
    ----------
    sources : Sequence[str | Path]
        One ``.jsonl`` or ``.csv`` file per source.
    output_dir : str | Path, optional
        Directory for artifacts, by default "out".
    title_threshold : float, optional
        Maximum normalized edit distance for titles, by default 0.15.
    platform_threshold : float, optional
        Maximum normalized edit distance for platforms, by default 0.2.
    overrides_path : str | Path | None, optional
        JSON file of manual accept/reject groups.
    cache_dir : str | Path | None, optional
        Stage cache directory; no caching when None.

    Returns
    -------
    PipelineResult
        Counters and artifact paths (``result.output_files["population"]``).

    Raises
    ------
    PipelineError
        If any stage fails.

    Examples
    --------
        >>> from gamededupe import merge_sources
        >>> result = merge_sources(["mobygames.csv", "igdb.jsonl"], output_dir="out")
        >>> print(result.population_size, result.clusters_unresolved)
    """
    from gamededupe.engine import PipelineConfig, run_pipeline

    config = PipelineConfig(
        title_threshold=title_threshold,
        platform_threshold=platform_threshold,
        overrides_path=Path(overrides_path) if overrides_path is not None else None,
        cache_dir=Path(cache_dir) if cache_dir is not None else None,
        output_dir=Path(output_dir),
    )
    result = run_pipeline([Path(s) for s in sources], config=config)
    if not result.success:
        raise PipelineError(f"Merge failed: {result.error_message}", output_dir=str(output_dir))
    return result


def draw_sample(
    population_path: str | Path,
    *,
    output_dir: str | Path = "out",
    target_size: int = 60,
    seed: int = 1982,
    reviewers: Sequence[str] | None = None,
) -> SamplingResult:
    """Draw a year-stratified review sample.

    Raises
    ------
    PipelineError
        If the population cannot be read or sampled.
    """
    from gamededupe.engine import SamplingConfig, run_sampling

    config = SamplingConfig(
        target_size=target_size,
        seed=seed,
        reviewers=list(reviewers) if reviewers else None,
        output_dir=Path(output_dir),
    )
    result = run_sampling(Path(population_path), config=config)
    if not result.success:
        raise PipelineError(f"Sampling failed: {result.error_message}", output_dir=str(output_dir))
    return result
