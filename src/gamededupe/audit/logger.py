"""Structured JSONL audit logger.

Every pipeline stage reports through this logger: stage boundaries,
counters, artifacts, and the non-fatal conditions the pipeline tolerates
(unkeyed records, ambiguous merges, unresolved clusters, exhausted strata).
"""

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from gamededupe.audit.models import LogEvent
from gamededupe.utils import get_iso_timestamp

__all__ = ["AuditLogger"]


class AuditLogger:
    """Append-only JSONL event logger with a persistent file handle.

    Attributes
    ----------
    run_id : str
        Run identifier stamped on every event.
    log_path : Path
        Path to the JSONL log file.
    current_stage : str | None
        Stage attached to events that do not name one.
    """

    def __init__(self, run_id: str, log_path: Path) -> None:
        """Open the log file for appending.

        Parameters
        ----------
        run_id : str
            Run identifier.
        log_path : Path
            JSONL destination; parent directories are created.
        """
        self.run_id = run_id
        self.log_path = log_path
        self.current_stage: str | None = None

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.log_path.open("a", encoding="utf-8")

    def __enter__(self) -> "AuditLogger":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        """Whether the underlying file handle is closed."""
        return self._file.closed

    def close(self) -> None:
        """Flush and close the log file handle."""
        if not self._file.closed:
            self._file.flush()
            self._file.close()

    def set_stage(self, stage: str | None) -> None:
        """Set or clear the current stage context."""
        self.current_stage = stage

    def event(
        self,
        event_type: str,
        data: dict[str, Any] | None = None,
        level: str = "INFO",
        stage: str | None = None,
        ref: str | None = None,
    ) -> None:
        """Write one structured event.

        Parameters
        ----------
        event_type : str
            Event type identifier (e.g. "stage_started").
        data : dict[str, Any] | None, optional
            Event payload.
        level : str, optional
            "DEBUG", "INFO", "WARN" or "ERROR".
        stage : str | None, optional
            Stage identifier; defaults to ``current_stage``.
        ref : str | None, optional
            Record reference for record-level events.
        """
        log_event = LogEvent(
            ts=get_iso_timestamp(),
            run_id=self.run_id,
            level=level,
            event=event_type,
            data=data or {},
            stage=stage if stage is not None else self.current_stage,
            ref=ref,
        )
        json.dump(asdict(log_event), self._file, ensure_ascii=False, separators=(",", ":"))
        self._file.write("\n")
        self._file.flush()

    def run_started(self, command: list[str], parameters: dict[str, Any]) -> None:
        """Log the run_started event."""
        self.event("run_started", data={"command": command, "parameters": parameters})

    def run_finished(
        self,
        status: str,
        duration_seconds: float,
        records_processed: int | None = None,
    ) -> None:
        """Log the run_finished event.

        Parameters
        ----------
        status : str
            "success", "failed" or "partial".
        duration_seconds : float
            Total execution time.
        records_processed : int | None, optional
            Total records processed.
        """
        data: dict[str, Any] = {"status": status, "duration_seconds": duration_seconds}
        if records_processed is not None:
            data["records_processed"] = records_processed
        self.event("run_finished", data=data)

    def stage_started(self, stage: str, expected_records: int | None = None) -> None:
        """Log stage_started and make ``stage`` the current stage."""
        self.set_stage(stage)
        data: dict[str, Any] = {}
        if expected_records is not None:
            data["expected_records"] = expected_records
        self.event("stage_started", data=data, stage=stage)

    def stage_finished(
        self,
        stage: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Log stage_finished with optional counters."""
        data: dict[str, Any] = {"duration_seconds": duration_seconds}
        if counters:
            data["counters"] = counters
        self.event("stage_finished", data=data, stage=stage)

    def record_skipped(self, source: str, index: int, reason: str) -> None:
        """Log a source record left out of merging (e.g. empty title key)."""
        self.event(
            "record_skipped",
            data={"reason": reason},
            level="WARN",
            ref=f"{source}:{index}",
        )

    def cluster_unresolved(
        self, cluster_id: str, field: str, members: list[str], reasons: list[str]
    ) -> None:
        """Log a match cluster left for manual review."""
        self.event(
            "match_cluster_unresolved",
            data={"cluster_id": cluster_id, "field": field, "members": members, "reasons": reasons},
            level="WARN",
        )

    def override_unmatched(self, group: list[str], unmatched: list[str]) -> None:
        """Log manual accept keys that could not be merged (absent from the table)."""
        self.event(
            "override_unmatched",
            data={"group": group, "unmatched": unmatched},
            level="WARN",
        )

    def ambiguous_merge(self, source: str, key: str, kept: int, dropped: list[int]) -> None:
        """Log a source whose rolled-up row carried several record indices.

        Only ``kept`` contributes details to the merged record; the dropped
        indices are recorded here so the loss stays traceable.
        """
        self.event(
            "ambiguous_merge",
            data={"key": key, "kept": kept, "dropped": dropped},
            level="WARN",
            ref=f"{source}:{kept}",
        )

    def missing_join(self, source: str, key: str, index: int) -> None:
        self.event("missing_join", data={"key": key}, level="WARN", ref=f"{source}:{index}")

    def cache_lookup(self, stage: str, key: str, hit: bool) -> None:
        self.event("cache_hit" if hit else "cache_miss", data={"key": key}, stage=stage)

    def strata_summary(self, counts: dict[str, dict[str, int]]) -> None:
        """Log per-stratum population and sample sizes, keyed by stratum label."""
        self.event("strata_summary", data=counts)

    def stratum_exhausted(self, label: str, shortfall: int) -> None:
        self.event(
            "stratum_exhausted",
            data={"stratum": label, "shortfall": shortfall},
            level="WARN",
        )

    def artifact_written(
        self,
        path: str,
        sha256: str,
        stage: str | None = None,
        bytes_written: int | None = None,
        record_count: int | None = None,
    ) -> None:
        """Log an artifact written to disk.

        Parameters
        ----------
        path : str
            Path relative to the output directory.
        sha256 : str
            Artifact digest.
        stage : str | None, optional
            Producing stage.
        bytes_written : int | None, optional
            File size in bytes.
        record_count : int | None, optional
            Rows in the artifact.
        """
        data: dict[str, Any] = {"path": path, "sha256": sha256}
        if bytes_written is not None:
            data["bytes"] = bytes_written
        if record_count is not None:
            data["record_count"] = record_count
        self.event("artifact_written", data=data, stage=stage)

    def error(
        self,
        exception_class: str,
        message: str,
        stage: str | None = None,
        traceback: str | None = None,
    ) -> None:
        """Log an error event."""
        data: dict[str, Any] = {"exception_class": exception_class, "message": message}
        if traceback is not None:
            data["traceback"] = traceback
        self.event("error", data=data, stage=stage, level="ERROR")
