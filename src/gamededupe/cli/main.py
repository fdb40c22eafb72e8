"""Command-line interface for gamededupe.

Commands follow the batch workflow: ``merge`` source tables into a
population, ``sample`` it for review, ``replace`` reviewed duplicates, and
``estimate`` the residual duplicate rate.
"""

import importlib.metadata
import json
import sys
from pathlib import Path
from typing import Any

import click

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("gamededupe")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development


def _split_list(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _fail(message: str, verbose: bool = False) -> None:
    click.secho(f"✗ {message}", fg="red", err=True)
    if verbose:
        import traceback

        click.echo(traceback.format_exc(), err=True)
    sys.exit(1)


def _report(output_files: dict[str, str], verbose: bool) -> None:
    if verbose:
        click.echo("\nOutputs:", err=True)
        for name, path in output_files.items():
            click.echo(f"  {name}: {path}", err=True)


def _sampling_config(config_file: str | None, **options: Any) -> Any:
    from gamededupe.engine import SamplingConfig

    if config_file:
        return SamplingConfig.from_file(Path(config_file), **options)
    return SamplingConfig(**{k: v for k, v in options.items() if v is not None})


output_dir_option = click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    default=None,
    help="Output directory for artifacts and audit trail (default: out)",
)
config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON config file; command-line options take precedence",
)
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")


@click.group()
@click.version_option(version=__version__, prog_name="gamededupe")
def cli() -> None:
    """Deduplicate, merge and sample video-game catalog records.

    Use 'gamededupe COMMAND --help' for command-specific help.
    """


@cli.command()
@click.argument("sources", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@output_dir_option
@click.option("--title-threshold", type=float, default=None, help="Title distance (default: 0.15)")
@click.option(
    "--platform-threshold", type=float, default=None, help="Platform distance (default: 0.2)"
)
@click.option(
    "--min-length", "min_key_length", type=int, default=None, help="Minimum key length (default: 4)"
)
@click.option(
    "--max-candidates",
    "max_auto_candidates",
    type=int,
    default=None,
    help="Largest auto-accepted cluster, in candidates (default: 2)",
)
@click.option(
    "--overrides",
    "overrides_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file of manual accept/reject groups",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Stage cache directory (default: no cache)",
)
@click.option(
    "--precedence",
    type=str,
    default=None,
    help="Comma-separated source names, highest precedence first (default: argument order)",
)
@config_option
@verbose_option
def merge(
    sources: tuple[str, ...],
    output_dir: str | None,
    title_threshold: float | None,
    platform_threshold: float | None,
    min_key_length: int | None,
    max_auto_candidates: int | None,
    overrides_path: str | None,
    cache_dir: str | None,
    precedence: str | None,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Merge SOURCES into a deduplicated population table.

    Each source is a .jsonl or .csv file with the shared columns title,
    platform, first_release_year and all_release_year; the file name
    (without suffix) is the source name.

    Examples
    --------
        gamededupe merge mobygames.csv igdb.jsonl -o out
        gamededupe merge *.csv --overrides reviewed.json --cache-dir .cache
    """
    from gamededupe.audit import RunContext
    from gamededupe.engine import PipelineConfig, run_pipeline

    try:
        options: dict[str, Any] = {
            "title_threshold": title_threshold,
            "platform_threshold": platform_threshold,
            "min_key_length": min_key_length,
            "max_auto_candidates": max_auto_candidates,
            "overrides_path": overrides_path,
            "cache_dir": cache_dir,
            "source_precedence": _split_list(precedence),
            "output_dir": output_dir,
        }
        if config_file:
            config = PipelineConfig.from_file(Path(config_file), **options)
        else:
            config = PipelineConfig(**{k: v for k, v in options.items() if v is not None})
    except (OSError, ValueError, TypeError) as e:
        _fail(f"Invalid configuration: {e}")
        return

    if verbose:
        click.echo("Starting merge pipeline...", err=True)
        click.echo(f"  Sources: {', '.join(sources)}", err=True)
        click.echo(f"  Output: {config.output_dir}", err=True)
        click.echo(f"  θ_title: {config.title_threshold}", err=True)
        click.echo(f"  θ_platform: {config.platform_threshold}", err=True)

    run = RunContext.start(config.output_dir, parameters=config.to_dict())
    result = run_pipeline([Path(s) for s in sources], config=config, run=run)
    run.finish(
        status="success" if result.success else "failed",
        records_processed=result.total_records,
    )

    if not result.success:
        _fail(f"Pipeline failed: {result.error_message}")

    if verbose:
        click.echo("\nResults:", err=True)
        click.echo(f"  Source records: {result.total_records}", err=True)
        click.echo(f"  Records without title key: {result.records_without_key}", err=True)
        click.echo(f"  Rows after rollup: {result.rows_after_rollup}", err=True)
        click.echo(f"  Match clusters: {result.clusters_found}", err=True)
        click.echo(f"  Ambiguous merges: {result.ambiguous_merges}", err=True)
        click.echo(f"  Fuzzy stage cached: {result.cache_hit}", err=True)
    _report(result.output_files, verbose)

    click.secho(
        f"✓ Merged {result.total_records} records into {result.population_size} games "
        f"({result.clusters_accepted} clusters auto-merged, "
        f"{result.clusters_unresolved} for review)",
        fg="green",
    )


@cli.command()
@click.argument("population", type=click.Path(exists=True, dir_okay=False))
@output_dir_option
@click.option("--target-size", type=int, default=None, help="Records per year (default: 60)")
@click.option("--seed", type=int, default=None, help="Random seed (default: 1982)")
@click.option("--reviewers", type=str, default=None, help="Comma-separated reviewer names")
@click.option("--placeholder", type=str, default=None, help="Missing-value token (default: NA)")
@config_option
@verbose_option
def sample(
    population: str,
    output_dir: str | None,
    target_size: int | None,
    seed: int | None,
    reviewers: str | None,
    placeholder: str | None,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Draw a year-stratified review sample from POPULATION.

    POPULATION is the population.jsonl written by 'gamededupe merge'.

    Examples
    --------
        gamededupe sample out/artifacts/population.jsonl -o sample --reviewers ana,bo
    """
    from gamededupe.audit import RunContext
    from gamededupe.engine import run_sampling

    try:
        config = _sampling_config(
            config_file,
            target_size=target_size,
            seed=seed,
            reviewers=_split_list(reviewers),
            placeholder=placeholder,
            output_dir=output_dir,
        )
    except (OSError, ValueError, TypeError) as e:
        _fail(f"Invalid configuration: {e}")
        return

    run = RunContext.start(config.output_dir, parameters=config.to_dict())
    result = run_sampling(Path(population), config=config, run=run)
    run.finish(
        status="success" if result.success else "failed",
        records_processed=result.population_size,
    )

    if not result.success:
        _fail(f"Sampling failed: {result.error_message}")

    _report(result.output_files, verbose)
    click.secho(
        f"✓ Sampled {result.sample_size} of {result.population_size} games "
        f"across {result.strata} strata",
        fg="green",
    )


@cli.command()
@click.argument("population", type=click.Path(exists=True, dir_okay=False))
@click.argument("sample_path", metavar="SAMPLE", type=click.Path(exists=True, dir_okay=False))
@output_dir_option
@click.option("--seed", type=int, default=None, help="Random seed (default: 1982)")
@click.option("--reviewers", type=str, default=None, help="Comma-separated reviewer names")
@click.option("--placeholder", type=str, default=None, help="Missing-value token (default: NA)")
@config_option
@verbose_option
def replace(
    population: str,
    sample_path: str,
    output_dir: str | None,
    seed: int | None,
    reviewers: str | None,
    placeholder: str | None,
    config_file: str | None,
    verbose: bool,
) -> None:
    """Replace duplicates flagged in SAMPLE with fresh draws from POPULATION.

    SAMPLE is a reviewed sample.jsonl or sample_review.csv; records whose
    is_duplicate flag is set are replaced within their release year.

    Examples
    --------
        gamededupe replace out/artifacts/population.jsonl reviewed.csv -o sample2
    """
    from gamededupe.audit import RunContext
    from gamededupe.engine import run_replacement

    try:
        config = _sampling_config(
            config_file,
            seed=seed,
            reviewers=_split_list(reviewers),
            placeholder=placeholder,
            output_dir=output_dir,
        )
    except (OSError, ValueError, TypeError) as e:
        _fail(f"Invalid configuration: {e}")
        return

    run = RunContext.start(config.output_dir, parameters=config.to_dict())
    result = run_replacement(Path(population), Path(sample_path), config=config, run=run)
    run.finish(status="success" if result.success else "failed")

    if not result.success:
        _fail(f"Replacement failed: {result.error_message}")

    _report(result.output_files, verbose)
    message = (
        f"✓ Replaced {result.added} of {result.removed} duplicates "
        f"(sample size {result.sample_size})"
    )
    if result.shortfall:
        click.secho(f"{message}; {result.shortfall} could not be replaced", fg="yellow")
    else:
        click.secho(message, fg="green")


@cli.command()
@click.argument("sample_path", metavar="SAMPLE", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--population-size",
    type=click.IntRange(min=0),
    required=True,
    help="Number of records in the merged population",
)
@click.option("--z", type=float, default=None, help="Critical value (default: 1.96)")
@click.option("--json", "as_json", is_flag=True, help="Print the estimate as JSON")
@config_option
def estimate(
    sample_path: str,
    population_size: int,
    z: float | None,
    as_json: bool,
    config_file: str | None,
) -> None:
    """Estimate the residual duplicate rate from a reviewed SAMPLE.

    Examples
    --------
        gamededupe estimate reviewed.csv --population-size 48211
        gamededupe estimate reviewed.csv --population-size 48211 --config run.json
    """
    from gamededupe.engine import run_estimate

    try:
        config = _sampling_config(config_file, z=z)
        result = run_estimate(Path(sample_path), population_size, config=config)
    except (OSError, ValueError) as e:
        _fail(f"Error: {e}")
        return

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        return

    click.echo(
        f"Duplicate rate: {result.rate:.4f} ± {result.margin:.4f} "
        f"[{result.lower:.4f}, {result.upper:.4f}] "
        f"({result.duplicates}/{result.sample_size}, z={result.z})"
    )
    click.echo(
        f"Estimated duplicates in population: {result.population_estimate:.0f} "
        f"[{result.population_lower:.0f}, {result.population_upper:.0f}] "
        f"of {result.population_size}"
    )


if __name__ == "__main__":
    cli()
