"""Audit trail for pipeline runs.

Main Components
---------------
- RunContext: run lifecycle (event log, manifest, stage timing)
- AuditLogger: JSONL event logger (``events.jsonl``)
- ManifestWriter: run manifest builder (``run.json``)
"""

from gamededupe.audit.context import RunContext
from gamededupe.audit.helpers import generate_run_id
from gamededupe.audit.logger import AuditLogger
from gamededupe.audit.manifest import ManifestWriter
from gamededupe.audit.models import ArtifactInfo, InputsInfo, SourceInfo

__all__ = [
    "ArtifactInfo",
    "AuditLogger",
    "InputsInfo",
    "ManifestWriter",
    "RunContext",
    "SourceInfo",
    "generate_run_id",
]
