from __future__ import annotations

"""rendering_bridge.py

Binds one engine viewer + event bus to the store, the pagination tracker and
the scale policy.

Every bus listener is registered together with the session token it was
attached under.  :meth:`RenderingBridge.detach` unregisters them before a new
:meth:`~RenderingBridge.attach` starts, and a listener that still fires with
an outdated token is dropped, so a torn-down viewer can never write into the
state of a newer document.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from PySide6.QtCore import QObject, Signal

from ..core.errors import LoadError, NotReadyError, RangeError
from ..core.scale_policy import ScalePolicy
from .document_store import DocumentStore, Mutation
from .engine import PAGE_CHANGING, PAGES_INIT, SCALE_CHANGING, EngineEvent, EventBus, RenderingEngine
from .pagination_tracker import PaginationTracker

__all__ = ["ViewerHandle", "RenderingBridge"]

logger = logging.getLogger(__name__)


@dataclass
class ViewerHandle:
    """Engine viewer + its bus for one open document."""

    viewer: Any
    event_bus: EventBus
    document: Any
    token: int
    listeners: Dict[str, Callable[[EngineEvent], None]] = field(default_factory=dict)
    pages_initialized: bool = False
    init_error: Optional[BaseException] = None


class RenderingBridge(QObject):
    """Owns the live :class:`ViewerHandle` of one viewer controller."""

    pagesInitialized: Signal = Signal(int, int)  # (page_count, token)
    scaleChanged: Signal = Signal(float)

    def __init__(self, engine: RenderingEngine, store: DocumentStore,
                 tracker: PaginationTracker, viewport: Any, surface: Any = None,
                 policy: Optional[ScalePolicy] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.engine = engine
        self.store = store
        self.tracker = tracker
        self.viewport = viewport
        self.surface = surface
        self.policy = policy or store.policy
        self._handle: Optional[ViewerHandle] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def handle(self) -> Optional[ViewerHandle]:
        return self._handle

    @property
    def viewer(self) -> Any:
        return self._handle.viewer if self._handle else None

    @property
    def is_attached(self) -> bool:
        return self._handle is not None

    @property
    def is_ready(self) -> bool:
        """True once ``pagesinit`` fired for the attached viewer."""
        return self._handle is not None and self._handle.pages_initialized

    # ------------------------------------------------------------------
    # Attach / detach
    # ------------------------------------------------------------------
    def attach(self, document: Any, token: int) -> ViewerHandle:
        """Create viewer + bus for *document* and hand it the document.

        Raises:
            LoadError: the engine's synchronous ``pagesinit`` could not be
                applied; the bridge is detached again.
        """
        self.detach()

        event_bus = EventBus()
        viewer = self.engine.create_viewer(self.surface, event_bus)
        handle = ViewerHandle(viewer=viewer, event_bus=event_bus, document=document, token=token)
        handle.listeners = {
            PAGES_INIT: self._guarded(token, self._on_pages_init),
            SCALE_CHANGING: self._guarded(token, self._on_scale_change),
            PAGE_CHANGING: self._guarded(token, self._on_page_change),
        }
        for name, listener in handle.listeners.items():
            event_bus.on(name, listener)
        self._handle = handle
        logger.info("Rendering bridge attached (token=%d)", token)

        viewer.set_document(document)
        if handle.init_error is not None:
            error = handle.init_error
            self.detach()
            raise LoadError(f"Engine reported an unusable document: {error}") from error
        return handle

    def detach(self) -> None:
        """Unregister listeners and release the viewer; safe to repeat."""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        for name, listener in handle.listeners.items():
            handle.event_bus.off(name, listener)
        handle.listeners.clear()
        close = getattr(handle.viewer, "close", None)
        if close is not None:
            close()
        logger.info("Rendering bridge detached (token=%d)", handle.token)

    def _guarded(self, token: int, handler: Callable[[EngineEvent], None]) -> Callable[[EngineEvent], None]:
        def listener(event: EngineEvent) -> None:
            if self._handle is None or self._handle.token != token:
                logger.debug("Dropping stale %s event (token=%d)", event.name, token)
                return
            handler(event)
        return listener

    # ------------------------------------------------------------------
    # Engine event handlers
    # ------------------------------------------------------------------
    def _on_pages_init(self, event: EngineEvent) -> None:
        source = event.source
        handle = self._handle
        try:
            self.tracker.on_pages_init(source.pages_count, source.current_page_number)

            fit_mode = self.policy.initial_fit_mode(self.viewport.is_small_screen())
            source.current_scale_value = fit_mode
            # Read back after the fit: that is the engine's opening scale.
            self.store.init_scale(source.current_scale)
            if self.store.state.pages:
                self.store.update_page_container()
        except Exception as exc:
            # Qt only prints slot exceptions; attach() re-raises this one.
            logger.error("pagesinit could not be applied: %s", exc, exc_info=True)
            handle.init_error = exc
            return
        handle.init_error = None
        handle.pages_initialized = True

        logger.info("pagesinit: %d pages, fit=%s, scale=%.3f",
                    source.pages_count, fit_mode, source.current_scale)
        self.pagesInitialized.emit(source.pages_count, handle.token)

    def _on_scale_change(self, event: EngineEvent) -> None:
        self.store.commit(Mutation.SET_CURRENT_SCALE, event.scale)
        self.scaleChanged.emit(float(event.scale))

    def _on_page_change(self, event: EngineEvent) -> None:
        self.tracker.on_page_change(event.page_number)

    # ------------------------------------------------------------------
    # Commands into the engine
    # ------------------------------------------------------------------
    def _require_ready(self) -> ViewerHandle:
        if not self.is_ready:
            raise NotReadyError("Viewer has not reported pagesinit yet")
        return self._handle

    async def render_page(self, page_number: int, scale: Optional[float] = None,
                          surface: Any = None) -> None:
        self._require_ready()
        total = self.tracker.total
        if not isinstance(total, int):
            raise NotReadyError("Pagination not initialised")
        if not isinstance(page_number, int) or not 1 <= page_number <= total:
            raise RangeError(page_number, total)
        await self.store.render_page(page_number, surface if surface is not None else self.surface, scale)

    def set_scale(self, value: float) -> None:
        """Push *value* into the live viewer (the engine echoes ``scalechanging``)."""
        handle = self._require_ready()
        handle.viewer.current_scale = value

    def set_page(self, page_number: int) -> None:
        handle = self._require_ready()
        handle.viewer.current_page_number = page_number
