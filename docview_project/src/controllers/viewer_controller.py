from __future__ import annotations

"""viewer_controller.py

Top-level controller of the embedded document viewer.  It owns one store and
wires session, bridge, pagination tracker and scale policy together, so the
widget layer only ever talks to :class:`ViewerController`:

* :meth:`ViewerController.set_source` – the "watch" on the document source;
  every change (auth-header-only changes included) is a full reload.
* :meth:`ViewerController.dispatch` – toolbar commands (:class:`ViewerCommand`).
* :meth:`ViewerController.render_page` – paint one page, discarding results
  that belong to an older document.
"""

import logging
from enum import Enum, auto
from typing import Any, Callable, Mapping, Optional, Union

from PySide6.QtCore import QObject, Signal

from ..core.errors import NotReadyError
from ..models.document_source import DocumentSource, DownloadRequest
from ..services.document_session import DocumentSession
from ..services.document_store import DocumentStore, Mutation
from ..services.download_resolver import DownloadResolver
from ..services.pagination_tracker import PaginationTracker
from ..services.rendering_bridge import RenderingBridge

__all__ = ["ViewerCommand", "ViewerController"]

logger = logging.getLogger(__name__)


class ViewerCommand(Enum):
    ZOOM_IN = auto()
    ZOOM_OUT = auto()
    RESET_ZOOM = auto()
    DOWNLOAD = auto()
    GO_TO_PAGE = auto()  # arg: 1‑based page number


class ViewerController(QObject):
    """Orchestrates one document viewer instance."""

    sourceChanged: Signal = Signal(object)      # DocumentSource
    downloadRequested: Signal = Signal(object)  # DownloadRequest
    pageRendered: Signal = Signal(int)          # 1‑based page number

    # ---------------------------------------------------------------------
    # QObject life‑cycle helpers
    # ---------------------------------------------------------------------
    def __init__(self, engine: Any, surface: Any, viewport: Any, transport: Any = None,
                 settings: Any = None,
                 download_action: Optional[Callable[[DownloadRequest], Any]] = None,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.store = DocumentStore(engine, transport, settings, self)
        self.policy = self.store.policy
        self.tracker = PaginationTracker(self.store, self)
        self.bridge = RenderingBridge(engine, self.store, self.tracker, viewport, surface,
                                      self.policy, self)
        self.session = DocumentSession(self.store, self.bridge, self)
        self.resolver = (DownloadResolver.from_settings(settings)
                         if settings is not None else DownloadResolver())
        self.download_action = download_action
        self.surface = surface
        self.source: Optional[DocumentSource] = None

        self._commands = {
            ViewerCommand.ZOOM_IN: self.zoom_in,
            ViewerCommand.ZOOM_OUT: self.zoom_out,
            ViewerCommand.RESET_ZOOM: self.reset_zoom,
            ViewerCommand.DOWNLOAD: self.download,
            ViewerCommand.GO_TO_PAGE: self.go_to_page,
        }

    # ------------------------------------------------------------------
    # State exposed to the UI
    # ------------------------------------------------------------------
    @property
    def pagination(self) -> dict:
        return self.tracker.as_dict()

    @property
    def scale(self):
        return self.store.state.scale

    @property
    def page_container(self):
        return self.store.state.page_container

    @property
    def is_ready(self) -> bool:
        return self.bridge.is_ready

    # ------------------------------------------------------------------
    # Source watch
    # ------------------------------------------------------------------
    async def set_source(self, source: Union[DocumentSource, str],
                         http_header: Optional[Mapping[str, str]] = None) -> Any:
        """Replace the document source and reload from scratch.

        Returns the opened document handle, or ``None`` when a newer
        :meth:`set_source` superseded this one before it finished.
        """
        if not isinstance(source, DocumentSource):
            source = DocumentSource(uri=source, auth_headers=dict(http_header or {}))
        self.source = source
        self.sourceChanged.emit(source)
        logger.info("Document source changed: %s", source.uri)
        return await self.session.reload(source)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def dispatch(self, command: ViewerCommand, *args: Any) -> Any:
        logger.debug("dispatch %s%s", command.name, args)
        return self._commands[command](*args)

    def _require_ready(self) -> None:
        if not self.bridge.is_ready:
            raise NotReadyError("No document ready (pagesinit not received)")

    def _apply_scale(self, value: float) -> float:
        self.store.commit(Mutation.SET_CURRENT_SCALE, value)
        self.bridge.set_scale(value)
        return value

    def zoom_in(self) -> float:
        self._require_ready()
        return self._apply_scale(self.policy.zoom_in(self.scale.current))

    def zoom_out(self) -> float:
        self._require_ready()
        return self._apply_scale(self.policy.zoom_out(self.scale.current))

    def reset_zoom(self) -> float:
        self._require_ready()
        return self._apply_scale(self.policy.reset_zoom(self.scale.default))

    def go_to_page(self, page_number: int) -> None:
        self._require_ready()
        self.tracker.go_to(page_number)
        self.bridge.set_page(page_number)

    def download(self) -> Any:
        """Resolve the export request and hand it to the download action.

        Returns whatever the action returns (an awaitable for
        :class:`DocumentDownloader`), or the request itself when no action
        is configured.
        """
        self._require_ready()
        request = self.resolver.resolve(self.source, self.session.document)
        logger.info("Download requested: %s as %s", request.src, request.filename)
        self.downloadRequested.emit(request)
        if self.download_action is None:
            return request
        return self.download_action(request)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    async def render_page(self, page_number: int, surface: Any = None) -> bool:
        """Render *page_number*; ``False`` if the document changed meanwhile."""
        token = self.session.token
        try:
            await self.bridge.render_page(page_number, self.scale.current, surface)
        except Exception:
            if token != self.session.token:
                logger.debug("Render of page %d failed after reload; ignored", page_number)
                return False
            raise
        if token != self.session.token:
            logger.debug("Discarding stale render of page %d (token=%d)", page_number, token)
            return False
        self.store.update_rendered_pages(page_number)
        self.pageRendered.emit(page_number)
        return True

    async def render_all(self, surface: Any = None) -> int:
        """Render every page in order; returns how many were kept."""
        self._require_ready()
        rendered = 0
        for page_number in range(1, self.tracker.total + 1):
            if await self.render_page(page_number, surface):
                rendered += 1
        return rendered

    def clear_render_context(self) -> None:
        self.session.clear_render_context()

    async def restart_render(self) -> None:
        await self.session.restart_render()

    def close(self) -> None:
        self.session.close()
        self.source = None
