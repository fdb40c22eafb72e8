"""Pipeline orchestration: configuration, stage cache and runners."""

from gamededupe.engine.cache import CACHE_VERSION, StageCache
from gamededupe.engine.config import (
    PipelineConfig,
    PipelineResult,
    SamplingConfig,
    SamplingResult,
)
from gamededupe.engine.runner import (
    load_population,
    run_estimate,
    run_pipeline,
    run_replacement,
    run_sampling,
)

__all__ = [
    "CACHE_VERSION",
    "PipelineConfig",
    "PipelineResult",
    "SamplingConfig",
    "SamplingResult",
    "StageCache",
    "load_population",
    "run_estimate",
    "run_pipeline",
    "run_replacement",
    "run_sampling",
]
