"""Data models for audit events and run manifests."""

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "ArtifactInfo",
    "CommandInfo",
    "EnvironmentInfo",
    "ErrorInfo",
    "InputsInfo",
    "LogEvent",
    "ManifestData",
    "SourceInfo",
    "StageInfo",
]


@dataclass
class CommandInfo:
    """Command-line invocation.

    Attributes
    ----------
    argv : list[str]
        Complete command-line arguments.
    cwd : str | None
        Working directory basename only.
    """

    argv: list[str]
    cwd: str | None = None


@dataclass
class EnvironmentInfo:
    """Interpreter, platform and dependency versions."""

    python_version: str
    platform: str
    package_version: str
    dependencies: dict[str, str] = field(default_factory=dict)


@dataclass
class SourceInfo:
    """One loaded source table.

    Attributes
    ----------
    name : str
        Source name used for provenance columns.
    file : str
        Filename (basename only).
    sha256 : str
        Digest of the file with "sha256:" prefix.
    rows : int
        Records loaded.
    columns : list[str]
        Column names, shared and exclusive.
    """

    name: str
    file: str
    sha256: str
    rows: int
    columns: list[str] = field(default_factory=list)


@dataclass
class InputsInfo:
    """Inventory of loaded sources."""

    sources: list[SourceInfo] = field(default_factory=list)
    total_rows: int = 0


@dataclass
class ArtifactInfo:
    """Output artifact metadata.

    Attributes
    ----------
    path : str
        Path relative to the run output directory.
    sha256 : str
        Digest with "sha256:" prefix.
    bytes : int | None
        File size in bytes.
    record_count : int | None
        Rows written, when meaningful.
    stage : str | None
        Stage that produced the artifact.
    """

    path: str
    sha256: str
    bytes: int | None = None
    record_count: int | None = None
    stage: str | None = None


@dataclass
class StageInfo:
    """Stage timing and counters."""

    name: str
    started_at: str
    counters: dict[str, int] = field(default_factory=dict)
    finished_at: str | None = None
    duration_seconds: float | None = None


@dataclass
class ErrorInfo:
    """Error captured during a run.

    Attributes
    ----------
    timestamp : str
        ISO8601 time of the error.
    exception_class : str
        Exception class name.
    message : str
        Error message.
    stage : str | None
        Stage where the error occurred.
    traceback : str | None
        Stack trace, when requested.
    """

    timestamp: str
    exception_class: str
    message: str
    stage: str | None = None
    traceback: str | None = None


@dataclass
class ManifestData:
    """Complete run manifest written to ``run.json``."""

    manifest_version: str
    run_id: str
    created_at: str
    status: str
    command: CommandInfo
    environment: EnvironmentInfo
    inputs: InputsInfo
    parameters: dict[str, Any]
    stages: list[StageInfo] = field(default_factory=list)
    artifacts: list[ArtifactInfo] = field(default_factory=list)
    finished_at: str | None = None
    duration_seconds: float | None = None
    errors: list[ErrorInfo] = field(default_factory=list)


@dataclass
class LogEvent:
    """Structured log event, one JSONL line.

    Attributes
    ----------
    ts : str
        ISO8601 UTC timestamp with microseconds.
    run_id : str
        Run identifier.
    level : str
        "DEBUG", "INFO", "WARN" or "ERROR".
    event : str
        Event type identifier.
    data : dict[str, Any]
        Event payload.
    stage : str | None
        Current stage.
    ref : str | None
        Record reference ("source:index") for record-level events.
    """

    ts: str
    run_id: str
    level: str
    event: str
    data: dict[str, Any]
    stage: str | None = None
    ref: str | None = None
