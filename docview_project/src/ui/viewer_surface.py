from __future__ import annotations

"""Output surface the engine paints pages onto.

A :class:`QScrollArea` (object name ``Viewer``) wrapping a nested page
container (object name ``pdfViewer``) holding one :class:`QLabel` per page.
Scrolling the area reports the topmost visible page through
:pyattr:`ViewerSurface.visiblePageChanged`.
"""

from typing import Dict, List

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import QLabel, QScrollArea, QVBoxLayout, QWidget

__all__ = ["ViewerSurface"]


class ViewerSurface(QScrollArea):
    """Scroll region + page container."""

    visiblePageChanged = Signal(int)  # 1‑based page number

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("Viewer")
        self.setWidgetResizable(True)
        self.setAlignment(Qt.AlignHCenter)

        self.page_container = QWidget(self)
        self.page_container.setObjectName("pdfViewer")
        self._layout = QVBoxLayout(self.page_container)
        self._layout.setAlignment(Qt.AlignHCenter | Qt.AlignTop)
        self.setWidget(self.page_container)

        self._pages: List[QLabel] = []
        self._painted: Dict[int, QImage] = {}
        self.verticalScrollBar().valueChanged.connect(self._on_scrolled)

    # ------------------------------------------------------------------
    # Engine-facing API
    # ------------------------------------------------------------------
    def viewport_size(self) -> tuple[int, int]:
        size = self.viewport().size()
        return size.width(), size.height()

    def set_page_count(self, count: int) -> None:  # noqa: D401
        """Reset to *count* empty page slots."""
        self.clear()
        for number in range(1, count + 1):
            label = QLabel(f"Page {number}", self.page_container)
            label.setAlignment(Qt.AlignCenter)
            self._layout.addWidget(label)
            self._pages.append(label)

    def paint(self, page_number: int, image: QImage) -> None:
        if not 1 <= page_number <= len(self._pages):
            return
        self._painted[page_number] = image
        label = self._pages[page_number - 1]
        label.setPixmap(QPixmap.fromImage(image))
        label.setFixedSize(image.width(), image.height())

    def scroll_to_page(self, page_number: int) -> None:
        if 1 <= page_number <= len(self._pages):
            self.ensureWidgetVisible(self._pages[page_number - 1], 0, 0)

    def clear(self) -> None:
        for label in self._pages:
            self._layout.removeWidget(label)
            label.deleteLater()
        self._pages.clear()
        self._painted.clear()

    # ------------------------------------------------------------------
    @property
    def page_count(self) -> int:
        return len(self._pages)

    def painted_pages(self) -> list[int]:
        return sorted(self._painted)

    def page_image(self, page_number: int) -> QImage | None:
        return self._painted.get(page_number)

    def _on_scrolled(self, value: int) -> None:
        for number, label in enumerate(self._pages, start=1):
            if label.y() + label.height() > value:
                self.visiblePageChanged.emit(number)
                return
