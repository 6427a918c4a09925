from __future__ import annotations

"""download_resolver.py

Works out what a *Download* click exports: the current source, its auth
headers and a filename taken from the document's transport metadata
(``Content-Disposition``), falling back to ``download.pdf``.
"""

import logging
from pathlib import Path
from typing import Any

from ..models.document_source import DocumentSource, DownloadRequest

__all__ = ["DEFAULT_FILENAME", "DownloadResolver", "DocumentDownloader"]

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "download.pdf"


class DownloadResolver:
    def __init__(self, default_filename: str = DEFAULT_FILENAME) -> None:
        self.default_filename = default_filename

    @classmethod
    def from_settings(cls, settings) -> DownloadResolver:
        return cls(settings.default_download_filename())

    def filename_for(self, document: Any) -> str:
        """Transport-reported filename of *document*, else the default."""
        filename = getattr(document, "transport_filename", None) if document is not None else None
        return filename or self.default_filename

    def resolve(self, source: DocumentSource, document: Any = None) -> DownloadRequest:
        return DownloadRequest(
            src=source.uri,
            http_header=dict(source.auth_headers),
            filename=self.filename_for(document),
        )


class DocumentDownloader:
    """Default export action: fetch ``request.src`` and save it under ``request.filename``."""

    def __init__(self, transport: Any, target_dir: str | Path) -> None:
        self.transport = transport
        self.target_dir = Path(target_dir)

    async def __call__(self, request: DownloadRequest) -> Path:
        fetched = await self.transport.fetch(request.src, headers=request.http_header)
        # Never let a server-supplied name escape the target directory
        target = self.target_dir / Path(request.filename).name
        self.target_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(fetched.content)
        logger.info("Saved %s (%d bytes)", target, len(fetched.content))
        return target
