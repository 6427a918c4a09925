from __future__ import annotations

"""document_session.py

Load lifecycle of the viewer's document: ``IDLE → LOADING → READY`` and back.

The session owns the monotonically increasing *session token*.  Every
:meth:`DocumentSession.start` bumps it; a load that finishes after a newer
one started is thrown away (its handle closed, nothing committed).
"""

import logging
from enum import Enum
from typing import Any, Optional

from PySide6.QtCore import QObject, Signal

from ..core.errors import LoadError, NotReadyError
from ..models.document_source import DocumentSource
from .document_store import DocumentStore
from .rendering_bridge import RenderingBridge

__all__ = ["SessionState", "DocumentSession"]

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class DocumentSession(QObject):
    """Loads documents into the store and attaches the rendering bridge."""

    stateChanged: Signal = Signal(object)  # SessionState
    loadFailed: Signal = Signal(str)

    def __init__(self, store: DocumentStore, bridge: RenderingBridge,
                 parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.store = store
        self.bridge = bridge
        self.state = SessionState.IDLE
        self.source: Optional[DocumentSource] = None
        self.document: Any = None
        self.token = 0

    # ------------------------------------------------------------------
    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        logger.info("Document session: %s -> %s", self.state.value, state.value)
        self.state = state
        self.stateChanged.emit(state)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self, source: DocumentSource) -> Optional[Any]:
        """Load *source*; returns the handle, or ``None`` if superseded meanwhile.

        A document that is still loaded is torn down first.

        Raises:
            LoadError: fetch, open, page listing or ``pagesinit`` failed; the
                session is back in ``IDLE`` and nothing of the load remains.
        """
        if self.document is not None or self.bridge.is_attached:
            self._teardown()
        self.token += 1
        token = self.token
        self.source = source
        self._set_state(SessionState.LOADING)

        document = None
        try:
            document = await self.store.open_document(source.uri, source.auth_headers)
            if token != self.token:
                return self._discard(document, source)
            pages = await self.store.load_pages(document)
            if token != self.token:
                return self._discard(document, source)

            self.store.publish_document(document, pages)
            self.document = document
            self.bridge.attach(document, token)
        except Exception as exc:
            self._fail(token, source, document, exc)
            if isinstance(exc, LoadError):
                raise
            raise LoadError(f"Failed to load {source.uri}: {exc}") from exc

        self._set_state(SessionState.READY)
        return document

    async def reload(self, source: DocumentSource) -> Optional[Any]:
        """Tear down the current viewer and document, then :meth:`start` *source*."""
        self._teardown()
        return await self.start(source)

    async def restart_render(self) -> None:
        """Re-publish the still-open document after :meth:`clear_render_context`."""
        if self.state is not SessionState.READY or self.document is None:
            raise NotReadyError("No document loaded")
        document = self.document
        try:
            await self.store.commit_document(document)
            self.bridge.attach(document, self.token)
        except Exception as exc:
            self._fail(self.token, self.source, document, exc)
            if isinstance(exc, LoadError):
                raise
            raise LoadError(f"Failed to restart rendering: {exc}") from exc

    def clear_render_context(self) -> None:
        """Reset pagination/scale/container/rendered pages; keep the document open."""
        self.bridge.detach()
        self.store.clear_render_context()
        self.bridge.tracker.clear()

    def close(self) -> None:
        self.token += 1  # invalidates any load still in flight
        self._teardown()
        self._set_state(SessionState.IDLE)

    # ------------------------------------------------------------------
    def _discard(self, document: Any, source: DocumentSource) -> None:
        logger.info("Discarding superseded load of %s", source.uri)
        self.store.engine.close_document(document)
        return None

    def _fail(self, token: int, source: DocumentSource, document: Any, exc: BaseException) -> None:
        logger.error("Failed to load %s: %s", source.uri, exc)
        if document is not None:
            self.store.engine.close_document(document)
        if token != self.token:
            return
        self.document = None
        self.bridge.detach()
        self._reset_store()
        self._set_state(SessionState.IDLE)
        self.loadFailed.emit(str(exc))

    def _teardown(self) -> None:
        self.bridge.detach()
        document, self.document = self.document, None
        if document is not None:
            self.store.engine.close_document(document)
        self._reset_store()

    def _reset_store(self) -> None:
        self.store.reset()
        self.bridge.tracker.clear()
