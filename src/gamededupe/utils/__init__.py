"""Shared helpers: hashing, timestamps and JSON Lines files."""

from gamededupe.utils.hashing import (
    calculate_file_sha256,
    calculate_json_sha256,
    calculate_string_sha256,
    canonical_json,
    format_sha256,
)
from gamededupe.utils.jsonl import read_jsonl, write_jsonl
from gamededupe.utils.timestamps import elapsed_seconds, get_iso_timestamp

__all__ = [
    "calculate_file_sha256",
    "calculate_json_sha256",
    "calculate_string_sha256",
    "canonical_json",
    "elapsed_seconds",
    "format_sha256",
    "get_iso_timestamp",
    "read_jsonl",
    "write_jsonl",
]
