"""Core infrastructure: config, types, exceptions, and logging."""

from live_detect.core.config import Settings, get_settings
from live_detect.core.exceptions import (
    DetectionRequestError,
    DeviceUnavailableError,
    LiveDetectError,
    ModelArtifactMissingError,
    SessionConfigurationError,
)
from live_detect.core.logging import get_logger, setup_logging
from live_detect.core.types import (
    BufferGeometry,
    CoordinatorState,
    Detection,
    DetectionRequest,
    DeviceOrientation,
    Frame,
    ImageOrientation,
    OverlayAnnotation,
    PipelineStats,
    PixelFormat,
    Rect,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "Rect",
    "Frame",
    "Detection",
    "DetectionRequest",
    "BufferGeometry",
    "OverlayAnnotation",
    "DeviceOrientation",
    "ImageOrientation",
    "PixelFormat",
    "CoordinatorState",
    "PipelineStats",
    # Exceptions
    "LiveDetectError",
    "DeviceUnavailableError",
    "SessionConfigurationError",
    "ModelArtifactMissingError",
    "DetectionRequestError",
    # Logging
    "setup_logging",
    "get_logger",
]
