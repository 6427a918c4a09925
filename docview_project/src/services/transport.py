from __future__ import annotations

"""docview_project.services.transport

Async HTTP transport built on :class:`httpx.AsyncClient`.

Every call either returns decoded data or raises
:class:`~docview_project.src.core.errors.TransportError`; nothing is retried
here.  Retry, if wanted, is a caller decision.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional
from urllib.parse import unquote, urlparse

import httpx

from ..core.errors import TransportError

__all__ = ["FetchedDocument", "HttpTransport", "ProgressCallback", "filename_from_disposition"]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]  # (loaded, total)

_UPLOAD_CHUNK = 64 * 1024

_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*(?:[\w-]+)''([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


def filename_from_disposition(header: Optional[str]) -> Optional[str]:
    """Extract the filename from a ``Content-Disposition`` header value.

    RFC 5987 ``filename*`` wins over the plain ``filename`` parameter.
    """
    if not header:
        return None
    match = _FILENAME_STAR_RE.search(header)
    if match:
        return unquote(match.group(1).strip()) or None
    match = _FILENAME_RE.search(header)
    if match:
        return match.group(1).strip() or None
    return None


@dataclass(frozen=True)
class FetchedDocument:
    content: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


class HttpTransport:
    """Thin async façade over ``httpx``.

    Parameters
    ----------
    base_url
        Prefix for relative URLs (may be empty).
    timeout
        Per-request timeout in seconds.
    client
        Pre-built client; tests pass one wired to :class:`httpx.MockTransport`.
    """

    def __init__(self, base_url: str = "", timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings) -> HttpTransport:
        return cls(base_url=settings.api_base_url(), timeout=settings.request_timeout_s())

    # ------------------------------------------------------------------
    # Generic request/response contract
    # ------------------------------------------------------------------
    async def get(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = await self._send("GET", url, params=params)
        return self._decode(response)

    async def post(self, url: str, body: Any = None,
                   headers: Optional[Mapping[str, str]] = None) -> Any:
        """POST *body*: ``str``/``bytes`` go out raw, anything else as JSON."""
        if isinstance(body, (str, bytes)):
            response = await self._send("POST", url, content=body, headers=headers)
        else:
            response = await self._send("POST", url, json=body, headers=headers)
        return self._decode(response)

    # ------------------------------------------------------------------
    # Binary fetch / upload
    # ------------------------------------------------------------------
    async def fetch(self, url: str, headers: Optional[Mapping[str, str]] = None) -> FetchedDocument:
        """Download *url* as bytes; local paths and ``file://`` URIs are read from disk."""
        local = _local_path(url)
        if local is not None:
            try:
                return FetchedDocument(content=local.read_bytes(), filename=local.name)
            except OSError as exc:
                raise TransportError(f"Cannot read {local}: {exc}") from exc

        response = await self._send("GET", url, headers=headers)
        return FetchedDocument(
            content=response.content,
            filename=filename_from_disposition(response.headers.get("content-disposition")),
            content_type=response.headers.get("content-type"),
        )

    async def upload(self, url: str, files: Mapping[str, Any],
                     data: Optional[Mapping[str, Any]] = None,
                     on_progress: Optional[ProgressCallback] = None) -> Any:
        """Multipart POST reporting ``(loaded, total)`` bytes to *on_progress*."""
        request = self._client.build_request("POST", url, files=files, data=data)
        body = request.read()
        total = len(body)

        async def _chunks():
            loaded = 0
            for start in range(0, total, _UPLOAD_CHUNK):
                piece = body[start:start + _UPLOAD_CHUNK]
                loaded += len(piece)
                yield piece
                if on_progress is not None:
                    on_progress(loaded, total)

        # Keep the multipart boundary + explicit length from the built request
        headers = {
            "Content-Type": request.headers["content-type"],
            "Content-Length": str(total),
        }
        response = await self._send("POST", url, content=_chunks(), headers=headers)
        return self._decode(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("%s %s failed with HTTP %s", method, url, status)
            raise TransportError(f"{method} {url} failed with HTTP {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        if "json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError as exc:
                raise TransportError(f"Malformed JSON from {response.request.url}") from exc
        return response.text


def _local_path(uri: str) -> Optional[Path]:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if not parsed.scheme and Path(uri).is_file():
        return Path(uri)
    # Windows drive letters parse as a one-letter scheme
    if len(parsed.scheme) == 1 and Path(uri).is_file():
        return Path(uri)
    return None
