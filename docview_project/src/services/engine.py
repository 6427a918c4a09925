from __future__ import annotations

"""docview_project.services.engine

Contract between the viewer core and a rendering engine, plus the Qt event
bus the engine reports through.

The engine itself (page decoding, painting) is opaque to the core.  Anything
that satisfies :class:`RenderingEngine` / :class:`EngineViewer` can be
plugged in; :mod:`.fitz_engine` is the PyMuPDF implementation shipped with
the package.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

from PySide6.QtCore import QObject, Signal

from ..models.document_state import PageContainer

__all__ = [
    "PAGES_INIT",
    "SCALE_CHANGING",
    "PAGE_CHANGING",
    "EngineEvent",
    "EventBus",
    "EngineViewer",
    "RenderingEngine",
]

logger = logging.getLogger(__name__)

PAGES_INIT = "pagesinit"
SCALE_CHANGING = "scalechanging"
PAGE_CHANGING = "pagechanging"

ScaleValue = Union[str, float]


@dataclass(frozen=True)
class EngineEvent:
    """Payload delivered to every event-bus listener.

    ``pagesinit`` fills *source* (the live viewer), ``scalechanging`` fills
    *scale* and ``pagechanging`` fills *page_number*.
    """

    name: str
    source: Any = None
    scale: Optional[float] = None
    page_number: Optional[int] = None


class EventBus(QObject):
    """Publish/subscribe channel between one engine viewer and its listeners.

    One Qt signal per event name; :meth:`on` / :meth:`off` give the engine
    contract's string-keyed subscribe API on top of them.
    """

    pagesinit: Signal = Signal(object)
    scalechanging: Signal = Signal(object)
    pagechanging: Signal = Signal(object)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._listeners: Dict[str, List[Callable[[EngineEvent], None]]] = {
            PAGES_INIT: [],
            SCALE_CHANGING: [],
            PAGE_CHANGING: [],
        }

    # ------------------------------------------------------------------
    def _signal(self, name: str) -> Signal:
        if name not in self._listeners:
            raise ValueError(f"Unknown engine event {name!r}")
        return getattr(self, name)

    def on(self, name: str, callback: Callable[[EngineEvent], None]) -> None:
        self._signal(name).connect(callback)
        self._listeners[name].append(callback)

    def off(self, name: str, callback: Callable[[EngineEvent], None]) -> None:
        """Unsubscribe *callback*; unknown callbacks are ignored."""
        if callback not in self._listeners.get(name, []):
            return
        self._signal(name).disconnect(callback)
        self._listeners[name].remove(callback)

    def off_all(self) -> None:
        for name, callbacks in self._listeners.items():
            for callback in list(callbacks):
                self.off(name, callback)

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, []))

    def dispatch(self, event: EngineEvent) -> None:
        logger.debug("event bus dispatch: %s", event.name)
        self._signal(event.name).emit(event)


class EngineViewer(Protocol):
    """Live viewer instance created by the engine for one output surface."""

    current_scale: float
    current_scale_value: ScaleValue
    current_page_number: int

    @property
    def pages_count(self) -> int: ...

    def set_document(self, document: Any) -> None: ...

    def close(self) -> None: ...


class RenderingEngine(Protocol):
    async def open(self, uri: str, headers: Mapping[str, str]) -> Any: ...

    def get_page_count(self, document: Any) -> int: ...

    async def get_pages(self, document: Any) -> List[Any]: ...

    def get_page_container(self, page: Any, scale: float) -> PageContainer: ...

    def create_viewer(self, surface: Any, event_bus: EventBus) -> EngineViewer: ...

    async def render_page(self, page: Any, scale: float, surface: Any) -> None: ...

    def close_document(self, document: Any) -> None: ...
