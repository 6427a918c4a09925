"""Exception hierarchy shared by the viewer core.

Every error raised by the session, bridge, controller and store derives from
:class:`ViewerError` so callers can catch the whole family at the UI seam.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ViewerError",
    "LoadError",
    "RangeError",
    "NotReadyError",
    "TransportError",
]


class ViewerError(Exception):
    """Base class for viewer core errors."""


class LoadError(ViewerError):
    """The document could not be fetched or opened."""


class RangeError(ViewerError, ValueError):
    """A page number outside ``[1, total]`` was requested."""

    def __init__(self, page_number: object, total: object) -> None:
        super().__init__(f"Page {page_number} out of range (1-{total}).")
        self.page_number = page_number
        self.total = total


class NotReadyError(ViewerError, RuntimeError):
    """A command was issued before the engine reported ``pagesinit``."""


class TransportError(ViewerError):
    """An HTTP call failed (network error or non-success status)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
