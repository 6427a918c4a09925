from __future__ import annotations

"""docview_project.services.document_store

Service owning the viewer's :class:`DocumentState`.

State changes only through :meth:`DocumentStore.commit` with a
:class:`Mutation` member; the public coroutine/methods below are the named
actions the UI (and the session/bridge/controller) dispatch.  Each commit
emits :pyattr:`DocumentStore.stateChanged` so Qt views can bind to it.
"""

import logging
import time
from enum import Enum, auto
from typing import Any, Callable, Dict, Mapping, Optional

from PySide6.QtCore import QObject, Signal

from ..core import scale_policy
from ..core.errors import NotReadyError, RangeError, TransportError
from ..models.document_state import SENTINEL, DocumentState, PageContainer, UploadProgress
from .engine import RenderingEngine

__all__ = ["Mutation", "DocumentStore"]

logger = logging.getLogger(__name__)


class Mutation(Enum):
    """Closed set of state mutations."""

    SET_DOCUMENT = auto()
    SET_PAGES = auto()
    SET_TOTAL_PAGE_NUM = auto()
    SET_CURRENT_PAGE_NUM = auto()
    SET_CURRENT_SCALE = auto()
    SET_DEFAULT_SCALE = auto()
    SET_PAGE_CONTAINER = auto()
    SET_RENDERED_PAGES = auto()
    SET_PRODUCT_EXTENDED_ATTRS = auto()
    SET_UPLOAD_FILE_PROGRESS = auto()
    SET_UPLOAD_FILE_PROGRESS_ERROR = auto()
    REMOVE_UPLOAD_FILE_PROGRESS = auto()
    ADD_UPLOADED_FILE = auto()


# Passed with SET_RENDERED_PAGES to empty the set.
CLEAR = "clear"


class DocumentStore(QObject):
    """Single-writer store for one viewer instance."""

    stateChanged: Signal = Signal(object)  # Mutation

    def __init__(self, engine: RenderingEngine, transport: Any = None,
                 settings: Any = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.engine = engine
        self.transport = transport
        self.settings = settings
        self.state = DocumentState()
        self.policy = (scale_policy.ScalePolicy.from_settings(settings)
                       if settings is not None else scale_policy.ScalePolicy())
        if settings is not None:
            self.state.scale.min, self.state.scale.max = settings.scale_bounds()
        else:
            self.state.scale.min, self.state.scale.max = 0.5, 3.0

        self._mutations: Dict[Mutation, Callable[[Any], None]] = {
            Mutation.SET_DOCUMENT: self._set_document,
            Mutation.SET_PAGES: self._set_pages,
            Mutation.SET_TOTAL_PAGE_NUM: self._set_total_page_num,
            Mutation.SET_CURRENT_PAGE_NUM: self._set_current_page_num,
            Mutation.SET_CURRENT_SCALE: self._set_current_scale,
            Mutation.SET_DEFAULT_SCALE: self._set_default_scale,
            Mutation.SET_PAGE_CONTAINER: self._set_page_container,
            Mutation.SET_RENDERED_PAGES: self._set_rendered_pages,
            Mutation.SET_PRODUCT_EXTENDED_ATTRS: self._set_product_extended_attrs,
            Mutation.SET_UPLOAD_FILE_PROGRESS: self._set_upload_file_progress,
            Mutation.SET_UPLOAD_FILE_PROGRESS_ERROR: self._set_upload_file_progress_error,
            Mutation.REMOVE_UPLOAD_FILE_PROGRESS: self._remove_upload_file_progress,
            Mutation.ADD_UPLOADED_FILE: self._add_uploaded_file,
        }

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def commit(self, mutation: Mutation, payload: Any = None) -> None:
        self._mutations[mutation](payload)
        logger.debug("commit %s", mutation.name)
        self.stateChanged.emit(mutation)

    def _set_document(self, document: Any) -> None:
        self.state.document = document

    def _set_pages(self, pages: Any) -> None:
        self.state.pages = list(pages)

    def _set_total_page_num(self, total: Any) -> None:
        self.state.total_page_num = total

    def _set_current_page_num(self, current: Any) -> None:
        self.state.current_page_num = current

    def _set_current_scale(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"Scale must be positive, got {value}")
        self.state.scale.current = float(value)

    def _set_default_scale(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"Scale must be positive, got {value}")
        self.state.scale.default = float(value)

    def _set_page_container(self, container: Any) -> None:
        if isinstance(container, Mapping):
            container = PageContainer(width=container["width"], height=container["height"])
        self.state.page_container = container

    def _set_rendered_pages(self, page_num: Any) -> None:
        if page_num == CLEAR:
            self.state.rendered_pages = set()
        else:
            self.state.rendered_pages.add(int(page_num))

    def _set_product_extended_attrs(self, attrs: Any) -> None:
        self.state.product_extended_attrs = attrs

    def _set_upload_file_progress(self, payload: Mapping[str, Any]) -> None:
        self.state.upload_progress[payload["hash_name"]] = UploadProgress(
            hash_name=payload["hash_name"],
            filename=payload["filename"],
            progress=int(payload["progress"]),
        )

    def _set_upload_file_progress_error(self, hash_name: str) -> None:
        entry = self.state.upload_progress.get(hash_name)
        if entry is not None:
            entry.error = True

    def _remove_upload_file_progress(self, hash_name: str) -> None:
        self.state.upload_progress.pop(hash_name, None)

    def _add_uploaded_file(self, data: dict) -> None:
        self.state.uploaded_files.append(data)

    # ------------------------------------------------------------------
    # Document actions
    # ------------------------------------------------------------------
    async def open_document(self, src: str, http_header: Optional[Mapping[str, str]] = None) -> Any:
        """Open *src* through the engine without touching state."""
        return await self.engine.open(src, dict(http_header or {}))

    async def load_pages(self, document: Any) -> list:
        """Page list of an opened document; state is not touched."""
        return list(await self.engine.get_pages(document))

    def publish_document(self, document: Any, pages: list) -> None:
        """Commit handle, total page count and page list in one synchronous step."""
        total = self.engine.get_page_count(document)
        self.commit(Mutation.SET_DOCUMENT, document)
        self.commit(Mutation.SET_TOTAL_PAGE_NUM, total)
        self.commit(Mutation.SET_PAGES, pages)

    async def commit_document(self, document: Any) -> None:
        """Publish an opened document: handle, total page count and page list."""
        self.publish_document(document, await self.load_pages(document))

    async def fetch_document(self, src: str, http_header: Optional[Mapping[str, str]] = None) -> Any:
        document = await self.open_document(src, http_header)
        await self.commit_document(document)
        return document

    def update_current_page_num(self, current_page_num: Any) -> None:
        self.commit(Mutation.SET_CURRENT_PAGE_NUM, current_page_num)

    def init_scale(self, value: float) -> None:
        """Fix ``default`` (and ``current``) at the engine-reported opening scale."""
        self.commit(Mutation.SET_DEFAULT_SCALE, value)
        self.commit(Mutation.SET_CURRENT_SCALE, value)

    def update_page_container(self) -> None:
        """Recompute the page container from the first page at the current scale."""
        if not self.state.pages:
            raise NotReadyError("No pages loaded")
        container = self.engine.get_page_container(self.state.pages[0], self.state.scale.current)
        self.commit(Mutation.SET_PAGE_CONTAINER, container)

    def calculate_scale(self, container_width: Optional[float] = None) -> None:
        """Scale so the first page fills *container_width*; default scale if falsy."""
        scale = self.state.scale
        if container_width:
            if not self.state.pages:
                raise NotReadyError("No pages loaded")
            original = self.engine.get_page_container(self.state.pages[0], scale.default)
            value = scale_policy.scale_to_width(container_width, original.width, scale.default)
        else:
            value = scale.default
        self.commit(Mutation.SET_CURRENT_SCALE, value)

    def increase_scale(self) -> None:
        value = self.policy.increase(self.state.scale)
        if value is None:
            return
        self.commit(Mutation.SET_CURRENT_SCALE, value)
        self.update_page_container()

    def decrease_scale(self) -> None:
        value = self.policy.decrease(self.state.scale)
        if value is None or value <= 0:
            return
        self.commit(Mutation.SET_CURRENT_SCALE, value)
        self.update_page_container()

    async def render_page(self, page_num: int, canvas_context: Any,
                          scale: Optional[float] = None) -> None:
        """Paint page *page_num* (1-based) onto *canvas_context*."""
        total = self.state.total_page_num
        if not isinstance(total, int) or not self.state.pages:
            raise NotReadyError("No document loaded")
        if not isinstance(page_num, int) or not 1 <= page_num <= total:
            raise RangeError(page_num, total)
        page = self.state.pages[page_num - 1]
        await self.engine.render_page(page, scale if scale is not None else self.state.scale.current,
                                      canvas_context)

    def update_rendered_pages(self, page_num: int) -> None:
        self.commit(Mutation.SET_RENDERED_PAGES, page_num)

    def clear_render_context(self) -> None:
        """Back to the empty form; the document handle stays open."""
        self.commit(Mutation.SET_PAGES, [])
        self.commit(Mutation.SET_RENDERED_PAGES, CLEAR)
        self.commit(Mutation.SET_TOTAL_PAGE_NUM, SENTINEL)
        self.commit(Mutation.SET_CURRENT_PAGE_NUM, SENTINEL)
        self.commit(Mutation.SET_CURRENT_SCALE, self.state.scale.default)
        self.commit(Mutation.SET_PAGE_CONTAINER, PageContainer(width=0, height=0))

    def reset(self) -> None:
        """:meth:`clear_render_context` plus dropping the document handle."""
        self.clear_render_context()
        self.commit(Mutation.SET_DOCUMENT, None)

    def clear_rendered_pages(self) -> None:
        self.commit(Mutation.SET_RENDERED_PAGES, CLEAR)

    # ------------------------------------------------------------------
    # Product / upload / signature actions
    # ------------------------------------------------------------------
    def _require_transport(self) -> Any:
        if self.transport is None:
            raise TransportError("No transport configured")
        return self.transport

    async def get_product(self) -> Any:
        transport = self._require_transport()
        data = await transport.get("public/produtos", params={"productName": self.state.product_name})
        attrs = data.get("atributosExtendidos") if isinstance(data, Mapping) else None
        self.commit(Mutation.SET_PRODUCT_EXTENDED_ATTRS, attrs)
        return attrs

    async def upload_file(self, filename: str, form_data: Mapping[str, Any],
                          url: Optional[str] = None) -> Optional[dict]:
        """Upload *form_data* (``httpx`` ``files`` mapping), tracking progress.

        A failure marks the progress entry as errored and returns ``None``
        so one failed upload never aborts the others.
        """
        transport = self._require_transport()
        url = url or (self.settings.upload_url() if self.settings is not None else "")
        hash_name = f"{filename}{time.time_ns()}"
        self.commit(Mutation.SET_UPLOAD_FILE_PROGRESS,
                    {"hash_name": hash_name, "filename": filename, "progress": 0})

        def on_upload_progress(loaded: int, total: int) -> None:
            progress = int(round((loaded * 100) / total)) if total else 100
            self.commit(Mutation.SET_UPLOAD_FILE_PROGRESS,
                        {"hash_name": hash_name, "filename": filename, "progress": progress})

        try:
            data = await transport.upload(url, files=form_data, on_progress=on_upload_progress)
        except TransportError as exc:
            logger.warning("Upload of %s failed: %s", filename, exc)
            self.commit(Mutation.SET_UPLOAD_FILE_PROGRESS_ERROR, hash_name)
            return None

        data = dict(data) if isinstance(data, Mapping) else {}
        data["name"] = filename
        self.commit(Mutation.REMOVE_UPLOAD_FILE_PROGRESS, hash_name)
        self.commit(Mutation.ADD_UPLOADED_FILE, {**data, "status": "success"})
        logger.info("Uploaded %s", filename)
        return data

    def _signature_url(self, document_id: Any, step: str) -> str:
        prefix = self.settings.signature_api_prefix() if self.settings is not None else "/flowbee/api"
        scope = "/public" if self.state.access_token else ""
        return f"{prefix}{scope}/documentos/{document_id}/assinaturas/digitais/{step}"

    async def start_digital_signature(self, certificate_content: str, document_id: Any) -> Any:
        transport = self._require_transport()
        headers = {"Content-Type": "text/plain", **self.state.access_token}
        return await transport.post(self._signature_url(document_id, "iniciar"),
                                    certificate_content, headers=headers)

    async def finish_digital_signature(self, document_id: Any, signature: str,
                                       temporary_signature_id: Any) -> Any:
        transport = self._require_transport()
        body = {"assinatura": signature, "assinaturaTemporariaId": temporary_signature_id}
        return await transport.post(self._signature_url(document_id, "finalizar"), body)
