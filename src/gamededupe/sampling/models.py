"""Data models for strata and sampled records."""

from dataclasses import dataclass
from typing import Any

from gamededupe.models import SCHEMA_VERSION

__all__ = ["UNKNOWN_YEAR_LABEL", "SampleRecord", "Stratum"]

UNKNOWN_YEAR_LABEL = "unknown"


@dataclass(frozen=True)
class Stratum:
    """Population members sharing one first release year.

    Attributes
    ----------
    year : int | None
        Stratum value; None is the explicit unknown-year stratum.
    members : tuple[int, ...]
        Population indices in population order.
    """

    year: int | None
    members: tuple[int, ...]

    @property
    def label(self) -> str:
        return UNKNOWN_YEAR_LABEL if self.year is None else str(self.year)

    def __len__(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class SampleRecord:
    """A population record drawn into the review sample.

    Attributes
    ----------
    pid : int
        Population index.
    year : int | None
        First release year (stratum).
    title : str
        Canonical display title.
    platforms : tuple[str, ...]
        Display names of the record's platforms.
    is_sampled : bool
        Whether the record currently counts towards the sample.
    is_duplicate : bool
        Confirmed duplicate of another population record.
    replacement_needed : bool
        Duplicate still awaiting a replacement draw.
    reviewer : str | None
        Assigned reviewer.
    target_platform : str | None
        Single platform chosen for review.
    copy_string : str | None
        Copy-ready "title;;year;;platform" string.
    """

    pid: int
    year: int | None
    title: str
    platforms: tuple[str, ...] = ()
    is_sampled: bool = True
    is_duplicate: bool = False
    replacement_needed: bool = False
    reviewer: str | None = None
    target_platform: str | None = None
    copy_string: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "schema_version": SCHEMA_VERSION,
            "pid": self.pid,
            "year": self.year,
            "title": self.title,
            "platforms": list(self.platforms),
            "is_sampled": self.is_sampled,
            "is_duplicate": self.is_duplicate,
            "replacement_needed": self.replacement_needed,
            "reviewer": self.reviewer,
            "target_platform": self.target_platform,
            "copy_string": self.copy_string,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SampleRecord":
        """Deserialize from a ``sample.jsonl`` row; missing flags take defaults."""
        return SampleRecord(
            pid=int(data["pid"]),
            year=data.get("year"),
            title=data.get("title") or "",
            platforms=tuple(data.get("platforms") or ()),
            is_sampled=bool(data.get("is_sampled", True)),
            is_duplicate=bool(data.get("is_duplicate", False)),
            replacement_needed=bool(data.get("replacement_needed", False)),
            reviewer=data.get("reviewer"),
            target_platform=data.get("target_platform"),
            copy_string=data.get("copy_string"),
        )
