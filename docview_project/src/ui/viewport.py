from __future__ import annotations

"""Viewport inspector deciding whether the viewer runs in "small screen" mode.

Injected into the rendering bridge and read once per document open, so the
state machine never queries the screen on its own.
"""

import logging
from typing import Optional, Protocol

from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QWidget

__all__ = ["ViewportInspector", "ScreenViewportInspector", "FixedViewportInspector"]

logger = logging.getLogger(__name__)


class ViewportInspector(Protocol):
    def is_small_screen(self) -> bool: ...


class ScreenViewportInspector:
    """Small screen = the hosting widget (or primary screen) is at most *max_width* px wide."""

    def __init__(self, max_width: int = 600, widget: Optional[QWidget] = None) -> None:
        self.max_width = max_width
        self.widget = widget

    @classmethod
    def from_settings(cls, settings, widget: Optional[QWidget] = None) -> ScreenViewportInspector:
        return cls(settings.small_screen_max_width(), widget)

    def viewport_width(self) -> int:
        if self.widget is not None and self.widget.width() > 0:
            return self.widget.width()
        screen = QGuiApplication.primaryScreen()
        if screen is None:
            return 0
        return screen.availableGeometry().width()

    def is_small_screen(self) -> bool:
        width = self.viewport_width()
        small = 0 < width <= self.max_width
        logger.debug("viewport width %d px -> small screen: %s", width, small)
        return small


class FixedViewportInspector:
    """Always answers the same; for headless use and tests."""

    def __init__(self, small: bool) -> None:
        self.small = small

    def is_small_screen(self) -> bool:
        return self.small
