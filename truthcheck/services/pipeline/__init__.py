"""Document-level trust pipeline."""

from truthcheck.services.pipeline.trust_pipeline import TrustPipeline, build_pipeline

__all__ = ["TrustPipeline", "build_pipeline"]
