"""Pipeline configuration and result dataclasses."""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from gamededupe.matching import MatchSettings, ResolverRules
from gamededupe.matching.fuzzy import (
    DEFAULT_MIN_LENGTH,
    DEFAULT_PLATFORM_THRESHOLD,
    DEFAULT_TITLE_THRESHOLD,
)
from gamededupe.sampling import DEFAULT_PLACEHOLDER, DEFAULT_SEED, DEFAULT_TARGET_SIZE, DEFAULT_Z

__all__ = ["PipelineConfig", "PipelineResult", "SamplingConfig", "SamplingResult", "load_section"]


def load_section(path: Path, section: str) -> dict[str, Any]:
    """Read one section of a JSON config file.

    The file is either a flat object of settings or an object with
    "pipeline" and/or "sampling" sections.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file or the section is not a JSON object.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")

    if "pipeline" in data or "sampling" in data:
        data = data.get(section, {})
        if not isinstance(data, dict):
            raise ValueError(f"Config section '{section}' must be a JSON object: {path}")
    return data


def _check_keys(cls: type, data: dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} setting(s): {', '.join(unknown)}")


@dataclass
class PipelineConfig:
    """Configuration of the merge pipeline.

    Attributes
    ----------
    title_threshold : float
        Maximum normalized edit distance for title candidates.
    platform_threshold : float
        Maximum normalized edit distance for platform candidates.
    min_key_length : int
        Keys shorter than this never enter fuzzy matching.
    max_auto_candidates : int
        Largest cluster (in candidates) that may be auto-accepted.
    max_auto_edits : int
        Largest edit count accepted as a spelling variant.
    boundary_window : int
        Characters outside the shared prefix/suffix an edit may span.
    source_precedence : list[str] | None
        Sources in decreasing precedence for canonical titles; None uses
        the order the sources were given.
    overrides_path : Path | None
        JSON file of manual accept/reject groups.
    cache_dir : Path | None
        Stage cache directory; None disables caching.
    output_dir : Path
        Run output directory.
    """

    title_threshold: float = DEFAULT_TITLE_THRESHOLD
    platform_threshold: float = DEFAULT_PLATFORM_THRESHOLD
    min_key_length: int = DEFAULT_MIN_LENGTH
    max_auto_candidates: int = 2
    max_auto_edits: int = 1
    boundary_window: int = 3
    source_precedence: list[str] | None = None
    overrides_path: Path | None = None
    cache_dir: Path | None = None
    output_dir: Path = Path("out")

    def __post_init__(self) -> None:
        """Coerce paths and validate ranges."""
        for name in ("title_threshold", "platform_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value < 1.0:
                raise ValueError(f"{name} must be in [0, 1), got {value}")

        if self.min_key_length < 1:
            raise ValueError(f"min_key_length must be >= 1, got {self.min_key_length}")
        if self.max_auto_candidates < 1:
            raise ValueError(f"max_auto_candidates must be >= 1, got {self.max_auto_candidates}")
        if self.max_auto_edits < 0:
            raise ValueError(f"max_auto_edits must be >= 0, got {self.max_auto_edits}")
        if self.boundary_window < 0:
            raise ValueError(f"boundary_window must be >= 0, got {self.boundary_window}")

        if self.source_precedence is not None:
            self.source_precedence = list(self.source_precedence)
        if self.overrides_path is not None:
            self.overrides_path = Path(self.overrides_path)
        if self.cache_dir is not None:
            self.cache_dir = Path(self.cache_dir)
        self.output_dir = Path(self.output_dir)

    @classmethod
    def from_file(cls, path: Path, **overrides: Any) -> "PipelineConfig":
        """Load settings from JSON; keyword arguments that are not None win."""
        data = load_section(path, "pipeline")
        _check_keys(cls, data)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def title_settings(self) -> MatchSettings:
        return MatchSettings(threshold=self.title_threshold, min_length=self.min_key_length)

    def platform_settings(self) -> MatchSettings:
        return MatchSettings(threshold=self.platform_threshold, min_length=self.min_key_length)

    def resolver_rules(self) -> ResolverRules:
        return ResolverRules(
            max_candidates=self.max_auto_candidates,
            max_edits=self.max_auto_edits,
            boundary_window=self.boundary_window,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        data = asdict(self)
        for name in ("overrides_path", "cache_dir", "output_dir"):
            value = getattr(self, name)
            data[name] = str(value) if value is not None else None
        return data


@dataclass
class SamplingConfig:
    """Configuration of sampling and replacement.

    Attributes
    ----------
    target_size : int
        Records drawn per release-year stratum.
    seed : int
        Seed of every random draw of the run.
    z : float
        Critical value of the duplicate-rate interval.
    reviewers : list[str] | None
        Reviewer names, assigned round-robin.
    placeholder : str
        Token for missing values in copy strings.
    output_dir : Path
        Run output directory.
    """

    target_size: int = DEFAULT_TARGET_SIZE
    seed: int = DEFAULT_SEED
    z: float = DEFAULT_Z
    reviewers: list[str] | None = None
    placeholder: str = DEFAULT_PLACEHOLDER
    output_dir: Path = Path("out")

    def __post_init__(self) -> None:
        if self.target_size < 0:
            raise ValueError(f"target_size must be >= 0, got {self.target_size}")
        if self.z <= 0:
            raise ValueError(f"z must be positive, got {self.z}")
        if not self.placeholder:
            raise ValueError("placeholder must be a non-empty string")
        if self.reviewers is not None:
            self.reviewers = [r for r in self.reviewers if r]
        self.output_dir = Path(self.output_dir)

    @classmethod
    def from_file(cls, path: Path, **overrides: Any) -> "SamplingConfig":
        """Load settings from JSON; keyword arguments that are not None win."""
        data = load_section(path, "sampling")
        _check_keys(cls, data)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["output_dir"] = str(self.output_dir)
        return data


@dataclass
class PipelineResult:
    """Results of a merge pipeline run.

    Attributes
    ----------
    success : bool
        Whether every stage completed.
    total_records : int
        Source records loaded.
    records_without_key : int
        Records whose title produced no key (reported, not merged).
    rows_after_rollup : int
        Distinct keys after the exact rollup.
    clusters_found : int
        Fuzzy clusters proposed (titles and platforms).
    clusters_accepted : int
        Clusters auto-applied.
    clusters_unresolved : int
        Clusters left for manual review.
    population_size : int
        Merged population records written.
    ambiguous_merges : int
        (record, source) pairs resolved by the first-index tie-break.
    cache_hit : bool
        Whether fuzzy matching was served from the stage cache.
    output_files : dict[str, str]
        Artifact name to file path.
    error_message : str | None
        Error description if failed.
    """

    success: bool
    total_records: int = 0
    records_without_key: int = 0
    rows_after_rollup: int = 0
    clusters_found: int = 0
    clusters_accepted: int = 0
    clusters_unresolved: int = 0
    population_size: int = 0
    ambiguous_merges: int = 0
    cache_hit: bool = False
    output_files: dict[str, str] = field(default_factory=dict)
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SamplingResult:
    """Results of a sampling or replacement run.

    Attributes
    ----------
    success : bool
        Whether the run completed.
    population_size : int
        Population records read.
    strata : int
        Number of strata, unknown-year stratum included.
    sample_size : int
        Records currently sampled.
    added : int
        Replacements drawn (replacement runs only).
    removed : int
        Duplicates removed (replacement runs only).
    shortfall : int
        Duplicates that could not be replaced.
    output_files : dict[str, str]
        Artifact name to file path.
    error_message : str | None
        Error description if failed.
    """

    success: bool
    population_size: int = 0
    strata: int = 0
    sample_size: int = 0
    added: int = 0
    removed: int = 0
    shortfall: int = 0
    output_files: dict[str, str] = field(default_factory=dict)
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
