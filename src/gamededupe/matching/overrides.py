"""Manually curated match decisions.

Reviewers record groups of titles (or platforms) they confirmed as the same
game, and groups they confirmed as distinct. The file is an external input
to the resolver:

.. code-block:: json

    {
      "accept": [["Air Raid", "Air Raid!"]],
      "reject": [["Zaxxon", "Zaxxon II"]]
    }

Entries are normalized with the same flattening as the keys they match.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from gamededupe.normalize import flatten

__all__ = ["ReviewOverrides"]


def _groups(raw: Iterable[Iterable[str]]) -> tuple[frozenset[str], ...]:
    groups = []
    for entry in raw:
        keys = frozenset(k for k in (flatten(v) for v in entry) if k)
        if len(keys) >= 2:
            groups.append(keys)
    return tuple(groups)


@dataclass(frozen=True)
class ReviewOverrides:
    """Accept and reject groups of normalized keys.

    Attributes
    ----------
    accept : tuple[frozenset[str], ...]
        Groups of keys confirmed to denote the same game.
    reject : tuple[frozenset[str], ...]
        Groups of keys confirmed to denote different games.
    """

    accept: tuple[frozenset[str], ...] = ()
    reject: tuple[frozenset[str], ...] = ()

    @classmethod
    def from_lists(
        cls,
        accept: Iterable[Iterable[str]] = (),
        reject: Iterable[Iterable[str]] = (),
    ) -> "ReviewOverrides":
        """Build overrides from raw (unnormalized) groups."""
        return cls(accept=_groups(accept), reject=_groups(reject))

    @classmethod
    def from_file(cls, path: Path) -> "ReviewOverrides":
        """Load overrides from a JSON file.

        Parameters
        ----------
        path : Path
            JSON file with optional "accept" and "reject" lists.

        Returns
        -------
        ReviewOverrides
            Loaded overrides.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        ValueError
            If the document is not a JSON object.
        """
        if not path.exists():
            raise FileNotFoundError(f"Overrides file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Overrides file must contain a JSON object: {path}")
        return cls.from_lists(data.get("accept", []), data.get("reject", []))

    def is_rejected(self, key_a: str, key_b: str) -> bool:
        """Check whether a reject group contains both keys."""
        return any(key_a in group and key_b in group for group in self.reject)

    def is_accepted(self, key_a: str, key_b: str) -> bool:
        """Check whether an accept group contains both keys."""
        return any(key_a in group and key_b in group for group in self.accept)

    def __len__(self) -> int:
        return len(self.accept) + len(self.reject)
