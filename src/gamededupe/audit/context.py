"""Run lifecycle: event log, manifest and stage timing in one object."""

import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from gamededupe.audit.helpers import (
    TRACKED_DEPENDENCIES,
    generate_run_id,
    get_dependency_versions,
    get_package_version,
    get_platform_info,
    get_python_version,
)
from gamededupe.audit.logger import AuditLogger
from gamededupe.audit.manifest import ManifestWriter
from gamededupe.audit.models import (
    ArtifactInfo,
    CommandInfo,
    EnvironmentInfo,
    ErrorInfo,
    InputsInfo,
    StageInfo,
)
from gamededupe.utils import calculate_file_sha256, elapsed_seconds, get_iso_timestamp

__all__ = ["RunContext"]


class RunContext:
    """Context manager tying the audit log and run manifest to one run.

    Used as ``with RunContext.start(out, params) as ctx: ...``. On exit
    the log is closed and ``run.json`` is written with status "success",
    or "failed" with the error recorded if the block raised.

    Attributes
    ----------
    run_id : str
        Run identifier.
    output_dir : Path
        Root directory of every artifact of the run.
    audit_logger : AuditLogger
        Event logger writing ``events.jsonl``.
    manifest_writer : ManifestWriter
        Builder of ``run.json``.
    start_time : datetime
        UTC start of the run.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        audit_logger: AuditLogger,
        manifest_writer: ManifestWriter,
    ) -> None:
        self.run_id = run_id
        self.output_dir = output_dir
        self.audit_logger = audit_logger
        self.manifest_writer = manifest_writer
        self.start_time = datetime.now(UTC)
        self._stage_starts: dict[str, datetime] = {}
        self._finished = False

    @classmethod
    def start(
        cls,
        output_dir: Path,
        parameters: dict[str, Any],
        command_argv: list[str] | None = None,
    ) -> "RunContext":
        """Create the output layout and open the event log.

        Parameters
        ----------
        output_dir : Path
            Run output directory; ``artifacts/`` and ``review/`` are created
            inside it.
        parameters : dict[str, Any]
            Effective configuration, recorded verbatim in the manifest.
        command_argv : list[str] | None, optional
            Command line; ``sys.argv`` when None.

        Returns
        -------
        RunContext
            Started context; ``run_started`` has been logged.
        """
        run_id = generate_run_id()

        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "artifacts").mkdir(exist_ok=True)
        (output_dir / "review").mkdir(exist_ok=True)

        command = CommandInfo(argv=list(command_argv or sys.argv), cwd=Path.cwd().name or None)
        environment = EnvironmentInfo(
            python_version=get_python_version(),
            platform=get_platform_info(),
            package_version=get_package_version(),
            dependencies=get_dependency_versions(TRACKED_DEPENDENCIES),
        )

        audit_logger = AuditLogger(run_id=run_id, log_path=output_dir / "events.jsonl")
        manifest_writer = ManifestWriter(
            run_id=run_id,
            output_dir=output_dir,
            command=command,
            environment=environment,
            parameters=parameters,
        )
        audit_logger.run_started(command=command.argv, parameters=parameters)

        return cls(run_id, output_dir, audit_logger, manifest_writer)

    def set_inputs(self, inputs: InputsInfo) -> None:
        """Record the loaded source inventory."""
        self.manifest_writer.set_inputs(inputs)
        self.audit_logger.event(
            "inputs_loaded",
            data={
                "sources": [s.name for s in inputs.sources],
                "total_rows": inputs.total_rows,
            },
        )

    def start_stage(self, name: str, expected_records: int | None = None) -> None:
        self._stage_starts[name] = datetime.now(UTC)
        self.manifest_writer.add_stage(StageInfo(name=name, started_at=get_iso_timestamp()))
        self.audit_logger.stage_started(stage=name, expected_records=expected_records)

    def finish_stage(self, name: str, counters: dict[str, int] | None = None) -> None:
        """Close a stage and record its counters.

        Raises
        ------
        ValueError
            If the stage was not started.
        """
        started = self._stage_starts.pop(name, None)
        if started is None:
            raise ValueError(f"Stage not started: {name}")

        duration = elapsed_seconds(started)
        self.manifest_writer.finish_stage(name, duration_seconds=duration, counters=counters)
        self.audit_logger.stage_finished(stage=name, duration_seconds=duration, counters=counters)
        self.audit_logger.set_stage(None)

    def register_artifact(
        self,
        path: Path,
        stage: str | None = None,
        record_count: int | None = None,
    ) -> ArtifactInfo:
        """Hash a written file and add it to the manifest and the log.

        Parameters
        ----------
        path : Path
            Artifact path, inside ``output_dir``.
        stage : str | None, optional
            Producing stage.
        record_count : int | None, optional
            Rows in the artifact.

        Returns
        -------
        ArtifactInfo
            The registered entry.
        """
        try:
            relative = path.relative_to(self.output_dir).as_posix()
        except ValueError:
            relative = path.as_posix()

        artifact = ArtifactInfo(
            path=relative,
            sha256=calculate_file_sha256(path),
            bytes=path.stat().st_size,
            record_count=record_count,
            stage=stage,
        )
        self.manifest_writer.add_artifact(artifact)
        self.audit_logger.artifact_written(
            path=relative,
            sha256=artifact.sha256,
            stage=stage,
            bytes_written=artifact.bytes,
            record_count=record_count,
        )
        return artifact

    def record_error(
        self,
        exception: BaseException,
        stage: str | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Record an exception in the log and in the manifest."""
        tb = None
        if include_traceback:
            tb = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        error = ErrorInfo(
            timestamp=get_iso_timestamp(),
            exception_class=type(exception).__name__,
            message=str(exception),
            stage=stage,
            traceback=tb,
        )
        self.manifest_writer.add_error(error)
        self.audit_logger.error(
            exception_class=error.exception_class,
            message=error.message,
            stage=stage,
            traceback=tb,
        )

    def finish(self, status: str = "success", records_processed: int | None = None) -> None:
        """Log run_finished, close the log and write ``run.json``.

        Calling it again after the first time does nothing.
        """
        if self._finished:
            return
        self._finished = True

        duration = elapsed_seconds(self.start_time)
        self.audit_logger.run_finished(
            status=status,
            duration_seconds=duration,
            records_processed=records_processed,
        )
        self.audit_logger.close()
        self.manifest_writer.finish(status=status, duration_seconds=duration)

    def __enter__(self) -> "RunContext":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            stage = self.audit_logger.current_stage
            self.record_error(exc_val, stage=stage, include_traceback=True)
            self.finish(status="failed")
        else:
            self.finish(status="success")
