"""Deduplication, merging and stratified sampling of video-game catalogs.

This package provides:
- Data models (gamededupe.models): source, merged and population records
- Ingest (gamededupe.ingest): source table loading and schema checks
- Normalization (gamededupe.normalize): comparison keys and years
- Rollup (gamededupe.rollup): exact grouping by normalized title
- Matching (gamededupe.matching): fuzzy clusters and their resolution
- Merge (gamededupe.merge): cluster application and cross-source join
- Sampling (gamededupe.sampling): strata, review sample, duplicate rate
- Engine (gamededupe.engine): configuration, stage cache, runners
- Audit (gamededupe.audit): event log and run manifest
- CLI (gamededupe.cli): command-line interface
- Public API (gamededupe.api): high-level convenience functions
"""

__version__ = "0.1.0"

from gamededupe.api import PipelineError, draw_sample, merge_sources
from gamededupe.models import MergedRecord, PopulationRecord, SourceRecord
from gamededupe.normalize import flatten

__all__ = [
    "__version__",
    "MergedRecord",
    "PipelineError",
    "PopulationRecord",
    "SourceRecord",
    "draw_sample",
    "flatten",
    "merge_sources",
]
