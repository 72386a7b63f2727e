"""Error types raised by the capture, detection, and overlay layers.

Errors that end a session carry the process exit code the CLI reports.
"""

from __future__ import annotations

from pathlib import Path


class LiveDetectError(Exception):
    """Base exception for all Live Detect errors."""

    exit_code = 3

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DeviceUnavailableError(LiveDetectError):
    """No capture device could be opened at the configured source."""

    exit_code = 1

    def __init__(
        self,
        message: str = "No camera device available",
        source: int | str | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source


class SessionConfigurationError(LiveDetectError):
    """Capture input or output could not be attached to the session."""

    exit_code = 2

    def __init__(self, message: str = "Could not configure the capture session") -> None:
        super().__init__(message)


class ModelArtifactMissingError(LiveDetectError):
    """Detection model is absent or malformed.

    Never ends a session: the pipeline keeps previewing without overlays.
    """

    def __init__(self, message: str = "Model file is missing!", path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class DetectionRequestError(LiveDetectError):
    """One frame's detection request could not be dispatched; the frame is dropped."""

    def __init__(self, message: str = "Detection request failed", token: int | None = None) -> None:
        super().__init__(message)
        self.token = token
