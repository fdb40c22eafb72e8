"""Record data models for gamededupe.

This module defines the three record shapes that flow through the merge
pipeline: per-source input records, merged (rolled-up) records and the
finalized population records produced by the cross-source join.
"""

from dataclasses import dataclass, field
from typing import Any

SCHEMA_VERSION = "1.0.0"


@dataclass(frozen=True)
class SourceRecord:
    """One game entry as scraped from one source database.

    Attributes
    ----------
    source : str
        Source name (e.g. 'mobygames').
    index : int
        Stable per-source row index, used to join details back.
    title : str | None
        Raw title as published by the source.
    platforms : tuple[str, ...]
        Raw platform names in source order.
    first_release_year : int | None
        Earliest release year reported by the source.
    release_years : tuple[int, ...]
        All release years reported by the source.
    details : dict[str, Any]
        Source-exclusive columns (publisher, developer, ...).
    """

    source: str
    index: int
    title: str | None
    platforms: tuple[str, ...] = ()
    first_release_year: int | None = None
    release_years: tuple[int, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": self.source,
            "index": self.index,
            "title": self.title,
            "platforms": list(self.platforms),
            "first_release_year": self.first_release_year,
            "release_years": list(self.release_years),
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class MergedRecord:
    """Canonical entity for one distinct game.

    Attributes
    ----------
    key : str
        Normalized title key shared by every contributor.
    title : str
        Canonical display title (see ``rollup.choose_title``).
    titles : dict[str, tuple[str, ...]]
        Sorted distinct raw titles per source.
    platforms : tuple[str, ...]
        Sorted distinct normalized platform keys.
    first_release_year : int | None
        Minimum first release year across contributors, None if unknown.
    release_years : tuple[int, ...]
        Sorted distinct release years across contributors.
    source_indices : dict[str, tuple[int, ...]]
        Sorted contributing record indices per source.
    platform_names : dict[str, str]
        First-observed raw spelling of each platform key, for display.
    """

    key: str
    title: str
    titles: dict[str, tuple[str, ...]]
    platforms: tuple[str, ...]
    first_release_year: int | None
    release_years: tuple[int, ...]
    source_indices: dict[str, tuple[int, ...]]
    platform_names: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Reject records without contributors."""
        if not any(self.source_indices.values()):
            raise ValueError(f"MergedRecord '{self.key}' has no contributing records")

    @property
    def contributor_count(self) -> int:
        """Total number of contributing source records."""
        return sum(len(indices) for indices in self.source_indices.values())

    @property
    def platform_display(self) -> tuple[str, ...]:
        """Display names aligned with ``platforms``; the key stands in when none was kept."""
        return tuple(self.platform_names.get(key, key) for key in self.platforms)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns
        -------
        dict[str, Any]
            Dictionary representation with sorted source keys.
        """
        return {
            "key": self.key,
            "title": self.title,
            "titles": {s: list(t) for s, t in sorted(self.titles.items())},
            "platforms": list(self.platforms),
            "first_release_year": self.first_release_year,
            "release_years": list(self.release_years),
            "source_indices": {s: list(i) for s, i in sorted(self.source_indices.items())},
            "platform_names": dict(sorted(self.platform_names.items())),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MergedRecord":
        """Deserialize from dictionary.

        Parameters
        ----------
        data : dict[str, Any]
            Dictionary produced by ``to_dict``.

        Returns
        -------
        MergedRecord
            Reconstructed record.
        """
        return MergedRecord(
            key=data["key"],
            title=data["title"],
            titles={s: tuple(t) for s, t in data.get("titles", {}).items()},
            platforms=tuple(data.get("platforms", [])),
            first_release_year=data.get("first_release_year"),
            release_years=tuple(data.get("release_years", [])),
            source_indices={s: tuple(i) for s, i in data["source_indices"].items()},
            platform_names=dict(data.get("platform_names", {})),
        )


@dataclass(frozen=True)
class PopulationRecord:
    """Finalized merged record with per-source details attached.

    Attributes
    ----------
    pid : int
        Stable population index (position in the merged table).
    record : MergedRecord
        Canonical merged record.
    source_index : dict[str, int | None]
        The single index retained per source after the first-index
        tie-break; None when the source did not contribute.
    details : dict[str, dict[str, Any] | None]
        Source detail columns per source; None for missing joins.
    """

    pid: int
    record: MergedRecord
    source_index: dict[str, int | None]
    details: dict[str, dict[str, Any] | None]

    @property
    def year(self) -> int | None:
        """First release year used for stratification."""
        return self.record.first_release_year

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat dictionary for the population artifact."""
        return {
            "schema_version": SCHEMA_VERSION,
            "pid": self.pid,
            **self.record.to_dict(),
            "source_index": dict(sorted(self.source_index.items())),
            "details": dict(sorted(self.details.items())),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "PopulationRecord":
        """Deserialize from a population artifact row."""
        return PopulationRecord(
            pid=data["pid"],
            record=MergedRecord.from_dict(data),
            source_index=dict(data.get("source_index", {})),
            details=dict(data.get("details", {})),
        )
