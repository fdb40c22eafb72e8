"""JSON Lines reading and writing for pipeline artifacts."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

__all__ = ["read_jsonl", "write_jsonl"]


def write_jsonl(rows: Iterable[dict[str, Any]], path: Path) -> int:
    """Write one JSON object per line with sorted keys.

    Returns
    -------
    int
        Number of rows written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8") as f:
        for row in rows:
            json.dump(row, f, ensure_ascii=False, sort_keys=True)
            f.write("\n")
            count += 1
    return count


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    """Read every non-blank line of a JSON Lines file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If a line is not a JSON object.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    rows: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            if not line.strip():
                continue
            row = json.loads(line)
            if not isinstance(row, dict):
                raise ValueError(f"{path}:{line_no}: expected a JSON object")
            rows.append(row)
    return rows
