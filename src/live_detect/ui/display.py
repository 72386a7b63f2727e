"""Preview window: the on-screen parent of the overlay layer."""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING

import cv2
import numpy as np

from live_detect.core.config import UISettings
from live_detect.core.logging import get_logger
from live_detect.core.types import Rect

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = get_logger(__name__)

ESC = 27
NO_KEY = 0xFF


class KeyAction(Enum):
    """What a key press asks the preview loop to do."""

    NONE = auto()
    QUIT = auto()
    ROTATE_CW = auto()
    ROTATE_CCW = auto()
    TOGGLE_OVERLAY = auto()
    TOGGLE_HUD = auto()
    PAUSE = auto()


KEY_BINDINGS: dict[int, KeyAction] = {
    ESC: KeyAction.QUIT,
    **{ord(c): KeyAction.QUIT for c in "qQ"},
    ord("r"): KeyAction.ROTATE_CW,
    ord("R"): KeyAction.ROTATE_CCW,
    ord("o"): KeyAction.TOGGLE_OVERLAY,
    ord("h"): KeyAction.TOGGLE_HUD,
    ord(" "): KeyAction.PAUSE,
}


class DisplayWindow:
    """Resizable OpenCV window hosting the preview and its overlay.

    The window's drawable size is the overlay's parent bounds; the UI
    loop calls ``poll_layout`` every iteration and refits the overlay
    whenever it returns new bounds.
    """

    WINDOW_NAME = "Live Detect"

    def __init__(self, settings: UISettings | None = None) -> None:
        self.settings = settings or UISettings()
        self._size = (self.settings.display_width, self.settings.display_height)
        self._open = False
        self._paused = False

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def viewport(self) -> tuple[int, int]:
        """Drawable size as (width, height)."""
        return self._size

    @property
    def bounds(self) -> Rect:
        """Drawable area in screen coordinates, origin top-left."""
        width, height = self._size
        return Rect(0.0, 0.0, float(width), float(height))

    def open(self) -> None:
        if self._open:
            return
        cv2.namedWindow(self.WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.WINDOW_NAME, *self._size)
        self._open = True
        logger.info("Preview window opened (%dx%d)", *self._size)

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        try:
            cv2.destroyWindow(self.WINDOW_NAME)
        except cv2.error:
            # Already destroyed by the window manager
            pass
        logger.info("Preview window closed")

    def poll_layout(self) -> Rect | None:
        """Check whether the user resized or closed the window.

        Returns:
            New bounds if the drawable size changed since the last call,
            otherwise None. A window closed from its title bar is marked
            closed.
        """
        if not self._open:
            return None

        try:
            if cv2.getWindowProperty(self.WINDOW_NAME, cv2.WND_PROP_VISIBLE) < 1:
                logger.info("Preview window closed by user")
                self._open = False
                return None
            _, _, width, height = cv2.getWindowImageRect(self.WINDOW_NAME)
        except cv2.error:
            return None

        if width <= 0 or height <= 0 or (width, height) == self._size:
            return None

        self._size = (width, height)
        logger.info("Viewport resized to %dx%d", width, height)
        return self.bounds

    def show_frame(self, image: NDArray[np.uint8]) -> None:
        self.open()
        cv2.imshow(self.WINDOW_NAME, image)

    def poll_key(self, wait_ms: int = 1) -> KeyAction:
        """Pump the window's event loop and decode a pending key press.

        PAUSE is handled here as well as returned.
        """
        key = cv2.waitKey(wait_ms) & 0xFF
        if key == NO_KEY:
            return KeyAction.NONE

        action = KEY_BINDINGS.get(key, KeyAction.NONE)
        if action is KeyAction.PAUSE:
            self._paused = not self._paused
            logger.info("Preview %s", "paused" if self._paused else "resumed")
        return action

    def show_message(self, message: str, duration_ms: int = 2000) -> None:
        """Show ``message`` centered on a blank viewport for ``duration_ms``."""
        width, height = self._size
        image = np.zeros((height, width, 3), dtype=np.uint8)

        font = cv2.FONT_HERSHEY_SIMPLEX
        (text_w, text_h), _ = cv2.getTextSize(message, font, 0.8, 2)
        origin = (max((width - text_w) // 2, 10), (height + text_h) // 2)
        cv2.putText(image, message, origin, font, 0.8, (255, 255, 255), 2)

        self.show_frame(image)
        cv2.waitKey(max(duration_ms, 1))

    def __enter__(self) -> DisplayWindow:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()
