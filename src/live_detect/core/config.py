"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ResolutionPreset = Literal[
    "low",
    "medium",
    "vga640x480",
    "high",
    "hd1280x720",
    "hd1920x1080",
]

# Requested capture sizes (width, height) per preset
PRESET_DIMENSIONS: dict[str, tuple[int, int]] = {
    "low": (192, 144),
    "medium": (480, 360),
    "vga640x480": (640, 480),
    "high": (1280, 720),
    "hd1280x720": (1280, 720),
    "hd1920x1080": (1920, 1080),
}


class CameraSettings(BaseSettings):
    """Capture device settings."""

    model_config = SettingsConfigDict(env_prefix="CAMERA_")

    source: int | str = 0
    preset: ResolutionPreset = "medium"
    pixel_format: Literal["bgr", "rgb", "yuv420f"] = "yuv420f"
    default_orientation: Literal[
        "portrait",
        "portrait_upside_down",
        "landscape_left",
        "landscape_right",
    ] = "portrait"
    stop_timeout: float = 2.0


class DetectorSettings(BaseSettings):
    """MediaPipe object detector settings."""

    model_config = SettingsConfigDict(env_prefix="DETECTOR_")

    model_path: Path = Path("data/models/efficientdet_lite0.tflite")
    max_results: int = -1
    score_threshold: float = Field(default=0.3, ge=0.0, le=1.0)


class OverlaySettings(BaseSettings):
    """Detection annotation styling."""

    model_config = SettingsConfigDict(env_prefix="OVERLAY_")

    # RGBA in [0, 1]
    fill_color: tuple[float, float, float, float] = (1.0, 1.0, 0.2, 0.4)
    text_color: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    font_scale: float = 0.5
    show_labels: bool = True
    corner_radius: float = 7.0
    # Label drop shadow, drawn in black
    shadow_offset: tuple[int, int] = (2, 2)
    shadow_opacity: float = 0.7


class UISettings(BaseSettings):
    """Display window settings."""

    model_config = SettingsConfigDict(env_prefix="")

    display_width: int = Field(default=540, alias="DISPLAY_WIDTH")
    display_height: int = Field(default=960, alias="DISPLAY_HEIGHT")
    show_hud: bool = Field(default=True, alias="SHOW_HUD")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    file: str | None = None


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    camera: CameraSettings = Field(default_factory=CameraSettings)
    detector: DetectorSettings = Field(default_factory=DetectorSettings)
    overlay: OverlaySettings = Field(default_factory=OverlaySettings)
    ui: UISettings = Field(default_factory=UISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings instance."""
    return Settings()
