"""End-to-end pipeline orchestration."""

from src.volatility_core.pipeline.orchestrator import (
    PipelineResult,
    PipelineStage,
    VolatilityPipeline,
    run_pipeline,
)

__all__ = ["PipelineResult", "PipelineStage", "VolatilityPipeline", "run_pipeline"]
