"""Shared data types for gamededupe.

This package contains the record dataclasses consumed across the pipeline
and the composite-field boundary helpers.

Domain-specific types live closer to their consumers:
- Match clusters → gamededupe.matching.models
- Strata and sample records → gamededupe.sampling.models
- Audit types → gamededupe.audit.models
"""

from gamededupe.models.composite import SEPARATOR, join_composite, split_composite
from gamededupe.models.records import (
    SCHEMA_VERSION,
    MergedRecord,
    PopulationRecord,
    SourceRecord,
)

__all__ = [
    "SCHEMA_VERSION",
    "SEPARATOR",
    "MergedRecord",
    "PopulationRecord",
    "SourceRecord",
    "join_composite",
    "split_composite",
]
