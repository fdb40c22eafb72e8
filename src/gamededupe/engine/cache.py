"""On-disk cache for expensive pipeline stages.

An entry is addressed by a key derived from the stage name, the cache
format version, and the canonical JSON of the stage inputs and
parameters. Changing any of them produces a new key, so stale entries are
never read; they are simply left behind.
"""

import json
import os
from pathlib import Path
from typing import Any

from gamededupe.utils import calculate_json_sha256

__all__ = ["CACHE_VERSION", "StageCache"]

CACHE_VERSION = "1"


class StageCache:
    """Content-addressed JSON cache, one file per entry.

    Attributes
    ----------
    cache_dir : Path
        Root directory; entries live in ``<cache_dir>/<stage>/<key>.json``.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    @staticmethod
    def key(stage: str, inputs: Any) -> str:
        """Cache key for ``inputs`` (JSON-serializable) of ``stage``."""
        digest = calculate_json_sha256(
            {"stage": stage, "cache_version": CACHE_VERSION, "inputs": inputs}
        )
        return digest.removeprefix("sha256:")

    def _path(self, stage: str, key: str) -> Path:
        return self.cache_dir / stage / f"{key}.json"

    def get(self, stage: str, key: str) -> Any | None:
        """Cached payload, or None on a miss."""
        path = self._path(stage, key)
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as f:
            entry = json.load(f)
        return entry["payload"]

    def put(self, stage: str, key: str, payload: Any) -> Path:
        """Store ``payload`` atomically and return the entry path."""
        path = self._path(stage, key)
        path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(
                {"stage": stage, "cache_version": CACHE_VERSION, "key": key, "payload": payload},
                f,
                ensure_ascii=False,
            )
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(path)
        return path
