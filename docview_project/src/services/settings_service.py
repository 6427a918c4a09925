from __future__ import annotations

"""settings_service.py
Provides application‑wide persisted viewer settings using a JSON file in the
user's home directory (``~/.docview/settings.json``).  Access via the
*singleton* :class:`SettingsService`.

Example
-------
>>> settings = SettingsService()
>>> settings.zoom_out_floor()
0.2
>>> settings.set("zoom_out_floor", 0.1)
>>> settings.save()
"""

import json
import logging
from pathlib import Path
from typing import Any

from ..utils.singleton import Singleton

__all__ = ["SettingsService"]

logger = logging.getLogger(__name__)


class SettingsService(Singleton):
    """Load/save viewer settings to *~/.docview/settings.json* (singleton)."""

    _path: Path = Path.home() / ".docview" / "settings.json"

    _defaults: dict[str, Any] = {
        # Multiplicative step used by the toolbar zoom buttons.
        "zoom_factor": 1.1,
        # Zoom-out is refused when the result would drop below this value.
        "zoom_out_floor": 0.2,
        # Additive step + bounds for the store's increase/decrease actions.
        "scale_step": 0.25,
        "scale_min": 0.5,
        "scale_max": 3.0,
        # Viewports at most this wide (px) open in 'page-width' mode.
        "small_screen_max_width": 600,
        "default_download_filename": "download.pdf",
        # Transport
        "api_base_url": "",
        "signature_api_prefix": "/flowbee/api",
        "upload_url": "",
        "request_timeout_s": 30.0,
    }

    # ------------------------------------------------------------------
    def __init__(self) -> None:  # noqa: D401
        # Guard – only run once due to Singleton inheritance
        if getattr(self, "_initialized", False):  # type: ignore[attr-defined]
            return

        self._data: dict[str, Any] = {**self._defaults, **self._load()}
        self._initialized = True  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    def _load(self) -> dict[str, Any]:
        """Read JSON file if it exists; return dict or empty on failure."""
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
            # Only keep keys we recognise – ignore unknowns
            return {k: data[k] for k in self._defaults.keys() if k in data}
        except (OSError, ValueError) as exc:
            logger.error("Failed to load settings file %s: %s", self._path, exc)
            return {}

    # ------------------------------------------------------------------
    def get(self, key: str, default: Any | None = None) -> Any | None:  # noqa: D401 – simple accessor
        """Return setting *key* or *default* if missing."""
        return self._data.get(key, default)

    # ------------------------------------------------------------------
    def set(self, key: str, value: Any) -> None:  # noqa: D401 – simple mutator
        """Update setting value in memory. Call :pymeth:`save` to persist."""
        self._data[key] = value

    # ------------------------------------------------------------------
    def save(self) -> None:  # noqa: D401 – straightforward persist
        """Write current settings to JSON file, creating directories as needed."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as fp:
                json.dump(self._data, fp, indent=2)
            logger.info("Settings saved to %s", self._path)
        except OSError as exc:
            logger.error("Failed to save settings to %s: %s", self._path, exc)

    # ------------------------------------------------------------------
    # Zoom / scale preferences
    # ------------------------------------------------------------------
    def zoom_factor(self) -> float:
        return float(self.get("zoom_factor", self._defaults["zoom_factor"]))

    def zoom_out_floor(self) -> float:
        """Smallest scale a zoom-out may produce."""
        return float(self.get("zoom_out_floor", self._defaults["zoom_out_floor"]))

    def set_zoom_out_floor(self, value: float) -> None:
        if value <= 0:
            raise ValueError("zoom_out_floor must be positive")
        self.set("zoom_out_floor", float(value))
        self.save()

    def scale_step(self) -> float:
        return float(self.get("scale_step", self._defaults["scale_step"]))

    def scale_bounds(self) -> tuple[float, float]:
        """Return ``(scale_min, scale_max)`` used by the store's step actions."""
        lo = float(self.get("scale_min", self._defaults["scale_min"]))
        hi = float(self.get("scale_max", self._defaults["scale_max"]))
        return lo, hi

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------
    def small_screen_max_width(self) -> int:  # noqa: D401
        """Return the widest viewport (px) still treated as a small screen."""
        return int(self.get("small_screen_max_width", self._defaults["small_screen_max_width"]))

    # ------------------------------------------------------------------
    # Download / transport
    # ------------------------------------------------------------------
    def default_download_filename(self) -> str:
        return str(self.get("default_download_filename", self._defaults["default_download_filename"]))

    def api_base_url(self) -> str:
        return str(self.get("api_base_url", self._defaults["api_base_url"]))

    def signature_api_prefix(self) -> str:
        return str(self.get("signature_api_prefix", self._defaults["signature_api_prefix"])).rstrip("/")

    def upload_url(self) -> str:
        return str(self.get("upload_url", self._defaults["upload_url"]))

    def request_timeout_s(self) -> float:
        return float(self.get("request_timeout_s", self._defaults["request_timeout_s"]))
