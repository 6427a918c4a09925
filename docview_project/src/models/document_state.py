from __future__ import annotations

"""docview_project.models.document_state

Plain state containers owned by one :class:`DocumentStore`.  Nothing in here
talks to the engine or the transport; mutation happens exclusively through
``DocumentStore.commit``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union

__all__ = [
    "SENTINEL",
    "PageNumber",
    "Scale",
    "PageContainer",
    "UploadProgress",
    "DocumentState",
]

# Shown instead of a page number while no document is loaded.
SENTINEL = "-"

PageNumber = Union[int, str]


@dataclass
class Scale:
    current: float = 1.0
    default: float = 1.0
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class PageContainer:
    """Pixel size of one page at the current scale."""

    width: float = 0
    height: float = 0

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


@dataclass
class UploadProgress:
    hash_name: str
    filename: str
    progress: int = 0
    error: bool = False


@dataclass
class DocumentState:
    """Everything the viewer shows for the currently open document."""

    document: Any = None  # engine DocumentHandle
    pages: List[Any] = field(default_factory=list)
    total_page_num: PageNumber = SENTINEL
    current_page_num: PageNumber = SENTINEL
    scale: Scale = field(default_factory=Scale)
    page_container: PageContainer = field(default_factory=PageContainer)
    rendered_pages: Set[int] = field(default_factory=set)

    # --- store-wide (not reset by clear_render_context) ---
    product_name: Optional[str] = None
    product_extended_attrs: Any = None
    access_token: Dict[str, str] = field(default_factory=dict)
    upload_progress: Dict[str, UploadProgress] = field(default_factory=dict)
    uploaded_files: List[dict] = field(default_factory=list)

    # -----------------------------------------------------------------
    @property
    def has_pages(self) -> bool:
        """True once a numeric page total is known."""
        return isinstance(self.total_page_num, int)

    def pagination(self) -> dict:
        return {"current": self.current_page_num, "total": self.total_page_num}
