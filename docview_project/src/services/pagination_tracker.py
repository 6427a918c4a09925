from __future__ import annotations

"""pagination_tracker.py

Keeps the current/total page numbers in the store in step with the engine.
Engine events (``pagesinit``, ``pagechanging``) and explicit navigation both
end up here; the tracker re-emits the result as :pyattr:`paginationChanged`.
"""

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..core.errors import NotReadyError, RangeError
from ..models.document_state import SENTINEL
from .document_store import DocumentStore, Mutation

__all__ = ["PaginationTracker"]

logger = logging.getLogger(__name__)


class PaginationTracker(QObject):
    """Pagination half of the viewer state (current + total page)."""

    paginationChanged: Signal = Signal(object, object)  # (current, total)

    def __init__(self, store: DocumentStore, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._store = store

    # ------------------------------------------------------------------
    @property
    def current(self):
        return self._store.state.current_page_num

    @property
    def total(self):
        return self._store.state.total_page_num

    def as_dict(self) -> dict:
        return self._store.state.pagination()

    # ------------------------------------------------------------------
    def on_pages_init(self, page_count: int, start_page: int = 1) -> None:
        """Document announced: ``total = page_count``, ``current = start_page``."""
        if page_count < 1 or not 1 <= start_page <= page_count:
            raise RangeError(start_page, page_count)
        self._store.commit(Mutation.SET_TOTAL_PAGE_NUM, page_count)
        self._store.commit(Mutation.SET_CURRENT_PAGE_NUM, start_page)
        logger.debug("pagination initialised: %d/%d", start_page, page_count)
        self._emit()

    def on_page_change(self, page_number: int) -> None:
        """Visible page changed inside the engine (scrolling or navigation)."""
        self._store.update_current_page_num(page_number)
        self._emit()

    def go_to(self, page_number: int) -> None:
        """Explicit navigation; validates against the known total."""
        total = self.total
        if not isinstance(total, int):
            raise NotReadyError("Pagination not initialised")
        if not isinstance(page_number, int) or not 1 <= page_number <= total:
            raise RangeError(page_number, total)
        self._store.update_current_page_num(page_number)
        self._emit()

    def clear(self) -> None:
        self._store.commit(Mutation.SET_TOTAL_PAGE_NUM, SENTINEL)
        self._store.commit(Mutation.SET_CURRENT_PAGE_NUM, SENTINEL)
        self._emit()

    def _emit(self) -> None:
        self.paginationChanged.emit(self.current, self.total)
