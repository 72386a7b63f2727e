"""User interface: display window and HUD rendering."""

from live_detect.ui.display import DisplayWindow, KeyAction
from live_detect.ui.hud import HUDRenderer

__all__ = ["DisplayWindow", "HUDRenderer", "KeyAction"]
