"""Run manifest (``run.json``) builder."""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from gamededupe.audit.models import (
    ArtifactInfo,
    CommandInfo,
    EnvironmentInfo,
    ErrorInfo,
    InputsInfo,
    ManifestData,
    StageInfo,
)
from gamededupe.utils import calculate_file_sha256, get_iso_timestamp

__all__ = ["MANIFEST_VERSION", "ManifestWriter"]

MANIFEST_VERSION = "1.0.0"


class ManifestWriter:
    """Accumulates run metadata and writes it once, atomically, at the end.

    Attributes
    ----------
    manifest : ManifestData
        Manifest under construction.
    output_dir : Path
        Run output directory.
    manifest_path : Path
        Destination of ``run.json``.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        command: CommandInfo,
        environment: EnvironmentInfo,
        parameters: dict[str, Any],
    ) -> None:
        self.output_dir = output_dir
        self.manifest_path = output_dir / "run.json"
        self.manifest = ManifestData(
            manifest_version=MANIFEST_VERSION,
            run_id=run_id,
            created_at=get_iso_timestamp(),
            status="partial",
            command=command,
            environment=environment,
            inputs=InputsInfo(),
            parameters=parameters,
        )
        self._stages: dict[str, StageInfo] = {}

    def _stage(self, name: str) -> StageInfo:
        stage = self._stages.get(name)
        if stage is None:
            raise ValueError(f"Stage not found: {name}")
        return stage

    def set_inputs(self, inputs: InputsInfo) -> None:
        self.manifest.inputs = inputs

    def add_stage(self, stage: StageInfo) -> None:
        self.manifest.stages.append(stage)
        self._stages[stage.name] = stage

    def finish_stage(
        self,
        name: str,
        duration_seconds: float,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Stamp a started stage as finished.

        Raises
        ------
        ValueError
            If the stage was never added.
        """
        stage = self._stage(name)
        stage.finished_at = get_iso_timestamp()
        stage.duration_seconds = duration_seconds
        if counters:
            stage.counters.update(counters)

    def add_artifact(self, artifact: ArtifactInfo) -> None:
        self.manifest.artifacts.append(artifact)

    def add_error(self, error: ErrorInfo) -> None:
        self.manifest.errors.append(error)

    def finish(self, status: str, duration_seconds: float | None = None) -> None:
        """Set the final status, register the event log and write ``run.json``.

        Parameters
        ----------
        status : str
            "success", "failed" or "partial".
        duration_seconds : float | None, optional
            Total run time.
        """
        events_path = self.output_dir / "events.jsonl"
        if events_path.exists():
            self.add_artifact(
                ArtifactInfo(
                    path="events.jsonl",
                    sha256=calculate_file_sha256(events_path),
                    bytes=events_path.stat().st_size,
                )
            )

        self.manifest.status = status
        self.manifest.finished_at = get_iso_timestamp()
        self.manifest.duration_seconds = duration_seconds

        temp_path = self.manifest_path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(asdict(self.manifest), f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(self.manifest_path)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self.manifest)
