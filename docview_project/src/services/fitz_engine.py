#!/usr/bin/env python3
from __future__ import annotations  # Postpones evaluation of type hints

"""
PyMuPDF (fitz) rendering engine for the document viewer.

Fetches document bytes through the transport, opens them with PyMuPDF and
paints pages as QImage objects onto a viewer surface.  Scale and page changes
on the :class:`FitzPageViewer` are announced on the event bus exactly like
a browser PDF viewer would, so the core never touches fitz directly.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import fitz  # PyMuPDF - Requires `pip install PyMuPDF`
from PySide6.QtGui import QImage

from ..core.errors import LoadError, TransportError
from ..models.document_state import PageContainer
from .engine import PAGE_CHANGING, PAGES_INIT, SCALE_CHANGING, EngineEvent, EventBus
from .transport import HttpTransport

__all__ = ["FitzDocumentHandle", "FitzPageViewer", "FitzEngine"]

# MuPDF contexts are not thread-safe; every fitz call in this process holds this.
_FITZ_LOCK = threading.Lock()


def _open_pdf(content: bytes) -> Any:
    with _FITZ_LOCK:
        return fitz.open(stream=content, filetype="pdf")


def _load_pages(doc: Any) -> List[Any]:
    with _FITZ_LOCK:
        return [doc.load_page(i) for i in range(doc.page_count)]


def _rasterise(page: Any, scale: float) -> Any:
    with _FITZ_LOCK:
        return page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)


@dataclass
class FitzDocumentHandle:
    """An open PyMuPDF document plus what the transport told us about it."""

    doc: Any  # fitz.Document
    uri: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return self.doc.page_count if self.doc is not None else 0

    @property
    def transport_filename(self) -> Optional[str]:
        """Filename announced by the server (``Content-Disposition``), if any."""
        return self.filename

    @property
    def is_closed(self) -> bool:
        return self.doc is None or self.doc.is_closed


class FitzPageViewer:
    """Live viewer bound to one surface and one event bus.

    Setting :attr:`current_scale`, :attr:`current_scale_value` or
    :attr:`current_page_number` updates the viewer and dispatches the
    matching bus event synchronously.
    """

    logger = logging.getLogger(__name__)

    def __init__(self, surface: Any, event_bus: EventBus) -> None:
        self.container = surface
        self.event_bus = event_bus
        self.pdf_document: Optional[FitzDocumentHandle] = None
        self._scale: float = 1.0
        self._scale_value: Union[str, float] = 1.0
        self._page_number: int = 1
        self._scrolling = False
        self._visible_signal = getattr(surface, "visiblePageChanged", None)
        if self._visible_signal is not None:
            self._visible_signal.connect(self._on_visible_page)

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------
    def set_document(self, document: FitzDocumentHandle) -> None:
        """Bind *document* and announce it with ``pagesinit``."""
        self.pdf_document = document
        self._scale = 1.0
        self._scale_value = 1.0
        self._page_number = 1
        if hasattr(self.container, "set_page_count"):
            self.container.set_page_count(document.page_count)
        self.logger.info("Viewer bound to %s (%d pages)", document.uri, document.page_count)
        self.event_bus.dispatch(EngineEvent(PAGES_INIT, source=self))

    def close(self) -> None:
        if self._visible_signal is not None:
            self._visible_signal.disconnect(self._on_visible_page)
            self._visible_signal = None
        self.pdf_document = None

    @property
    def pages_count(self) -> int:
        return self.pdf_document.page_count if self.pdf_document else 0

    # ------------------------------------------------------------------
    # Scale
    # ------------------------------------------------------------------
    @property
    def current_scale(self) -> float:
        return self._scale

    @current_scale.setter
    def current_scale(self, value: float) -> None:
        value = float(value)
        if value <= 0:
            raise ValueError(f"Scale must be positive, got {value}")
        self._scale_value = value
        self._set_scale(value)

    @property
    def current_scale_value(self) -> Union[str, float]:
        return self._scale_value

    @current_scale_value.setter
    def current_scale_value(self, value: Union[str, float]) -> None:
        if value in ("page-width", "page-fit"):
            self._scale_value = value
            self._set_scale(self._fit_scale(value))
        else:
            self.current_scale = float(value)

    def _fit_scale(self, mode: str) -> float:
        """Scale that fits the first page's width (or whole page) into the surface."""
        if self.pdf_document is None or self.pages_count == 0:
            return self._scale
        width, height = self.container.viewport_size() if hasattr(self.container, "viewport_size") else (0, 0)
        if width <= 0:
            return self._scale
        with _FITZ_LOCK:
            rect = self.pdf_document.doc[0].rect
        width_scale = width / rect.width
        if mode == "page-width" or height <= 0:
            return width_scale
        return min(width_scale, height / rect.height)

    def _set_scale(self, value: float) -> None:
        if value == self._scale:
            return
        self._scale = value
        self.event_bus.dispatch(EngineEvent(SCALE_CHANGING, source=self, scale=value))

    # ------------------------------------------------------------------
    # Page
    # ------------------------------------------------------------------
    @property
    def current_page_number(self) -> int:
        return self._page_number

    @current_page_number.setter
    def current_page_number(self, value: int) -> None:
        if not 1 <= value <= self.pages_count:
            self.logger.warning("Ignoring page %s (document has %d pages)", value, self.pages_count)
            return
        if value == self._page_number:
            return
        self._page_number = value
        if hasattr(self.container, "scroll_to_page"):
            self._scrolling = True
            try:
                self.container.scroll_to_page(value)
            finally:
                self._scrolling = False
        self.event_bus.dispatch(EngineEvent(PAGE_CHANGING, source=self, page_number=value))

    def _on_visible_page(self, page_number: int) -> None:
        """User scrolled the surface; report the new top page."""
        if self._scrolling or self.pdf_document is None or page_number == self._page_number:
            return
        self._page_number = page_number
        self.event_bus.dispatch(EngineEvent(PAGE_CHANGING, source=self, page_number=page_number))


class FitzEngine:
    """Rendering engine built on PyMuPDF.

    Attributes:
        transport: Used to fetch document bytes (with auth headers).
    """

    logger = logging.getLogger(__name__)

    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    # ------------------------------------------------------------------
    async def open(self, uri: str, headers: Optional[Mapping[str, str]] = None) -> FitzDocumentHandle:
        """Fetch *uri* and open it.

        Raises:
            LoadError: Transport failure or bytes PyMuPDF cannot parse.
        """
        headers = dict(headers or {})
        self.logger.info("Opening document: %s", uri)
        try:
            fetched = await self.transport.fetch(uri, headers=headers)
        except TransportError as exc:
            self.logger.error("Failed to fetch %s: %s", uri, exc)
            raise LoadError(f"Failed to fetch document: {exc}") from exc

        try:
            doc = await asyncio.to_thread(_open_pdf, fetched.content)
        except (RuntimeError, ValueError) as exc:  # fitz.FileDataError is a RuntimeError
            self.logger.error("Failed to open document from %s: %s", uri, exc, exc_info=True)
            raise LoadError(f"Malformed document: {exc}") from exc

        if doc.page_count == 0:
            with _FITZ_LOCK:
                doc.close()
            raise LoadError(f"Document {uri} has no pages")

        self.logger.info("Successfully opened document. Pages: %d", doc.page_count)
        return FitzDocumentHandle(
            doc=doc,
            uri=uri,
            filename=fetched.filename,
            content_type=fetched.content_type,
            headers=headers,
        )

    def get_page_count(self, document: FitzDocumentHandle) -> int:
        return document.page_count

    async def get_pages(self, document: FitzDocumentHandle) -> List[Any]:
        return await asyncio.to_thread(_load_pages, document.doc)

    def get_page_container(self, page: Any, scale: float) -> PageContainer:
        """Pixel size of *page* rendered at *scale*."""
        with _FITZ_LOCK:
            rect = page.rect
        return PageContainer(width=rect.width * scale, height=rect.height * scale)

    def create_viewer(self, surface: Any, event_bus: EventBus) -> FitzPageViewer:
        return FitzPageViewer(surface, event_bus)

    # ------------------------------------------------------------------
    async def render_page(self, page: Any, scale: float, surface: Any) -> None:
        """Rasterise *page* at *scale* and paint it onto *surface*.

        Rasterisation runs in a worker thread; all PyMuPDF work, whatever the
        surface, is serialized on one process-wide lock.
        """
        page_number = page.number + 1
        self.logger.debug("Rendering page %d at scale %.3f", page_number, scale)
        pix = await asyncio.to_thread(_rasterise, page, scale)
        qimage = QImage(pix.samples, pix.width, pix.height, pix.stride, QImage.Format.Format_RGB888)
        # Important: copy, pix.samples is released with the pixmap
        surface.paint(page_number, qimage.copy())

    def close_document(self, document: FitzDocumentHandle) -> None:
        if document.is_closed:
            return
        self.logger.info("Closing document: %s", document.uri)
        with _FITZ_LOCK:
            document.doc.close()
