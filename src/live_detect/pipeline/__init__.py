"""Frame-to-overlay pipeline orchestration."""

from live_detect.pipeline.coordinator import PipelineCoordinator
from live_detect.pipeline.dispatch import RenderContext

__all__ = ["PipelineCoordinator", "RenderContext"]
