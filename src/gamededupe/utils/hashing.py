"""Digest helpers for artifacts and cache keys."""

import hashlib
import json
from pathlib import Path
from typing import Any

__all__ = [
    "calculate_file_sha256",
    "calculate_json_sha256",
    "calculate_string_sha256",
    "canonical_json",
    "format_sha256",
]


def format_sha256(hex_digest: str) -> str:
    """Prefix a hex digest with ``sha256:``."""
    return f"sha256:{hex_digest}"


def calculate_file_sha256(path: Path) -> str:
    """Digest a file in chunks.

    Parameters
    ----------
    path : Path
        File to hash.

    Returns
    -------
    str
        Digest with "sha256:" prefix.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256_hash = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            sha256_hash.update(chunk)
    return format_sha256(sha256_hash.hexdigest())


def calculate_string_sha256(text: str) -> str:
    """Digest a UTF-8 string."""
    return format_sha256(hashlib.sha256(text.encode("utf-8")).hexdigest())


def canonical_json(payload: Any) -> str:
    """Serialize ``payload`` with sorted keys and no whitespace.

    Sets and tuples are not JSON types; callers convert them to sorted
    lists before hashing so equal inputs give equal text.
    """
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def calculate_json_sha256(payload: Any) -> str:
    """Digest the canonical JSON text of ``payload``."""
    return calculate_string_sha256(canonical_json(payload))
