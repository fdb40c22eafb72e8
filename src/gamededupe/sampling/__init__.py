"""Stratified sampling, review table and duplicate-rate estimation."""

from gamededupe.sampling.estimate import DEFAULT_Z, DuplicateRateEstimate, estimate_duplicate_rate
from gamededupe.sampling.models import UNKNOWN_YEAR_LABEL, SampleRecord, Stratum
from gamededupe.sampling.review import (
    DEFAULT_PLACEHOLDER,
    assign_reviewers,
    build_sample_records,
    choose_target_platform,
    copy_string,
    load_sample,
    mark_duplicates,
    write_review_table,
)
from gamededupe.sampling.stratify import (
    DEFAULT_SEED,
    DEFAULT_TARGET_SIZE,
    ReplacementResult,
    build_strata,
    replace_duplicates,
    stratified_sample,
)

__all__ = [
    "DEFAULT_PLACEHOLDER",
    "DEFAULT_SEED",
    "DEFAULT_TARGET_SIZE",
    "DEFAULT_Z",
    "UNKNOWN_YEAR_LABEL",
    "DuplicateRateEstimate",
    "ReplacementResult",
    "SampleRecord",
    "Stratum",
    "assign_reviewers",
    "build_sample_records",
    "build_strata",
    "choose_target_platform",
    "copy_string",
    "estimate_duplicate_rate",
    "load_sample",
    "mark_duplicates",
    "replace_duplicates",
    "stratified_sample",
    "write_review_table",
]
