"""Heads-up display drawn over the annotated preview."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import cv2
import numpy as np

from live_detect.core.types import CoordinatorState, DeviceOrientation, PipelineStats

if TYPE_CHECKING:
    from numpy.typing import NDArray

BGR = tuple[int, int, int]

FONT = cv2.FONT_HERSHEY_SIMPLEX


@dataclass
class HUDLayout:
    """Sizes and colors for HUD elements."""

    margin: int = 10
    line_height: int = 20
    font_scale: float = 0.45
    panel_alpha: float = 0.55
    max_labels: int = 3

    # Colors (BGR)
    color_text: BGR = (255, 255, 255)
    color_panel: BGR = (24, 24, 24)
    color_muted: BGR = (160, 160, 160)


STATE_COLORS: dict[CoordinatorState, BGR] = {
    CoordinatorState.IDLE: (160, 160, 160),
    CoordinatorState.AWAITING_MODEL: (0, 200, 255),
    CoordinatorState.READY: (80, 200, 80),
    CoordinatorState.FAILED: (60, 60, 230),
}

STATE_TEXT: dict[CoordinatorState, str] = {
    CoordinatorState.IDLE: "IDLE",
    CoordinatorState.AWAITING_MODEL: "LOADING MODEL",
    CoordinatorState.READY: "DETECTING",
    CoordinatorState.FAILED: "NO MODEL",
}


class HUDRenderer:
    """Draws pipeline counters, coordinator state, and a footer line.

    Every method returns a new image; the input is left untouched.
    """

    def __init__(self, layout: HUDLayout | None = None) -> None:
        self.layout = layout or HUDLayout()

    def status_lines(self, stats: PipelineStats, detection_count: int) -> list[str]:
        """Text lines for the counter panel, most important first."""
        lines = [
            f"objects {detection_count}",
            f"frames {stats.frames_submitted}/{stats.frames_seen}",
            f"results {stats.results_rendered}",
        ]
        if stats.frames_dropped:
            lines.append(f"dropped {stats.frames_dropped}")
        if stats.results_discarded:
            lines.append(f"stale {stats.results_discarded}")

        top = sorted(stats.detections_by_label.items(), key=lambda kv: (-kv[1], kv[0]))
        lines.extend(f"{label} x{count}" for label, count in top[: self.layout.max_labels])
        return lines

    def render_status_panel(
        self,
        image: NDArray[np.uint8],
        stats: PipelineStats,
        detection_count: int,
    ) -> NDArray[np.uint8]:
        """Draw counters on a translucent panel in the top-left corner.

        Args:
            image: Preview image (BGR)
            stats: Current pipeline statistics
            detection_count: Annotations currently shown

        Returns:
            Image with the panel blended in
        """
        layout = self.layout
        lines = self.status_lines(stats, detection_count)
        widths = [cv2.getTextSize(text, FONT, layout.font_scale, 1)[0][0] for text in lines]

        x0, y0 = layout.margin, layout.margin
        x1 = x0 + max(widths) + 2 * layout.margin
        y1 = y0 + len(lines) * layout.line_height + layout.margin

        result = self._blend_panel(image, (x0, y0), (x1, y1))
        for i, text in enumerate(lines):
            baseline = y0 + (i + 1) * layout.line_height
            color = layout.color_text if i < 3 else layout.color_muted
            cv2.putText(result, text, (x0 + layout.margin, baseline), FONT, layout.font_scale, color, 1)
        return result

    def render_state_indicator(
        self,
        image: NDArray[np.uint8],
        state: CoordinatorState,
    ) -> NDArray[np.uint8]:
        """Draw a colored state badge in the top-right corner."""
        layout = self.layout
        text = STATE_TEXT[state]
        (text_w, text_h), _ = cv2.getTextSize(text, FONT, layout.font_scale, 1)

        x1 = image.shape[1] - layout.margin
        x0 = x1 - text_w - 2 * layout.margin
        y0 = layout.margin
        y1 = y0 + text_h + 2 * layout.margin

        result = image.copy()
        cv2.rectangle(result, (x0, y0), (x1, y1), STATE_COLORS[state], -1)
        cv2.putText(
            result,
            text,
            (x0 + layout.margin, y1 - layout.margin),
            FONT,
            layout.font_scale,
            layout.color_panel,
            1,
        )
        return result

    def render_status_bar(
        self,
        image: NDArray[np.uint8],
        fps: float | None = None,
        orientation: DeviceOrientation | None = None,
        overlay_enabled: bool = True,
    ) -> NDArray[np.uint8]:
        """Draw the footer: FPS, device orientation, overlay toggle."""
        parts: list[str] = []
        if fps is not None:
            parts.append(f"{fps:.1f} fps")
        if orientation is not None:
            parts.append(orientation.name.lower().replace("_", " "))
        if not overlay_enabled:
            parts.append("overlay off")
        if not parts:
            return image.copy()

        layout = self.layout
        text = "  |  ".join(parts)
        (_, text_h), _ = cv2.getTextSize(text, FONT, layout.font_scale, 1)
        h, w = image.shape[:2]
        y0 = h - text_h - 2 * layout.margin

        result = self._blend_panel(image, (0, y0), (w, h))
        cv2.putText(
            result,
            text,
            (layout.margin, h - layout.margin),
            FONT,
            layout.font_scale,
            layout.color_text,
            1,
        )
        return result

    def render_full_hud(
        self,
        image: NDArray[np.uint8],
        stats: PipelineStats,
        state: CoordinatorState,
        detection_count: int = 0,
        fps: float | None = None,
        orientation: DeviceOrientation | None = None,
        overlay_enabled: bool = True,
    ) -> NDArray[np.uint8]:
        result = self.render_status_panel(image, stats, detection_count)
        result = self.render_state_indicator(result, state)
        return self.render_status_bar(result, fps, orientation, overlay_enabled)

    def _blend_panel(
        self,
        image: NDArray[np.uint8],
        top_left: tuple[int, int],
        bottom_right: tuple[int, int],
    ) -> NDArray[np.uint8]:
        panel = image.copy()
        cv2.rectangle(panel, top_left, bottom_right, self.layout.color_panel, -1)
        alpha = self.layout.panel_alpha
        return cv2.addWeighted(panel, alpha, image, 1.0 - alpha, 0.0)
