from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["DocumentSource", "DownloadRequest"]


class DocumentSource(BaseModel):
    """Where the viewer loads its document from.

    Immutable: a new source (even one differing only in ``auth_headers``)
    replaces the old one wholesale and triggers a full reload.
    """

    uri: str = Field(..., min_length=1, alias="src")
    # Alias matches the name the embedding UI has always passed in.
    auth_headers: Dict[str, str] = Field(default_factory=dict, alias="httpHeader")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class DownloadRequest(BaseModel):
    """Immutable payload handed to the export action."""

    src: str
    http_header: Dict[str, str] = Field(default_factory=dict)
    filename: str

    model_config = ConfigDict(frozen=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the ``{src, httpHeader, filename}`` shape."""
        return {
            "src": self.src,
            "httpHeader": dict(self.http_header),
            "filename": self.filename,
        }
