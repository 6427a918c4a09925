#!/usr/bin/env python3
"""
Scale policy for the document viewer.

Pure functions computing zoom factors, clamped bounds and page-fit modes.
None of them touch viewer state; the controller and the store apply the
returned values and push them into the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from ..models.document_state import Scale

logger = logging.getLogger(__name__)

__all__ = [
    "ZOOM_FACTOR",
    "ZOOM_OUT_FLOOR",
    "SCALE_STEP",
    "FitMode",
    "zoom_in",
    "zoom_out",
    "reset_zoom",
    "initial_fit_mode",
    "increase_scale",
    "decrease_scale",
    "scale_to_width",
    "ScalePolicy",
]

ZOOM_FACTOR = 1.1
ZOOM_OUT_FLOOR = 0.2
SCALE_STEP = 0.25

FitMode = Literal["page-width", "page-fit"]


def zoom_in(current: float, factor: float = ZOOM_FACTOR) -> float:
    return current * factor


def zoom_out(current: float, floor: float = ZOOM_OUT_FLOOR, factor: float = ZOOM_FACTOR) -> float:
    """Divide *current* by *factor* unless that would drop below *floor*.

    Returns *current* unchanged when the floor would be crossed, so repeated
    calls at the floor are no-ops.
    """
    candidate = current / factor
    if candidate < floor:
        logger.debug("zoom_out refused: %.4f would fall below floor %.4f", candidate, floor)
        return current
    return candidate


def reset_zoom(default: float) -> float:
    return default


def initial_fit_mode(is_small_screen: bool) -> FitMode:
    """Small viewports fit the page width, larger ones fit the whole page."""
    return "page-width" if is_small_screen else "page-fit"


def increase_scale(scale: Scale, step: float = SCALE_STEP) -> Optional[float]:
    """Return ``current + step`` while below ``scale.max``; ``None`` otherwise."""
    if scale.max is not None and scale.current >= scale.max:
        return None
    return scale.current + step


def decrease_scale(scale: Scale, step: float = SCALE_STEP) -> Optional[float]:
    """Return ``current - step`` while above ``scale.min``; ``None`` otherwise."""
    if scale.min is not None and scale.current <= scale.min:
        return None
    return scale.current - step


def scale_to_width(container_width: Optional[float], default_page_width: float, default: float) -> float:
    """Scale at which the first page fills *container_width*.

    *default_page_width* is the page width at the default scale. A missing
    or zero container width yields *default*.
    """
    if not container_width or default_page_width <= 0:
        return default
    return default * container_width / default_page_width


@dataclass(frozen=True)
class ScalePolicy:
    """The functions above bound to one set of tunables."""

    factor: float = ZOOM_FACTOR
    floor: float = ZOOM_OUT_FLOOR
    step: float = SCALE_STEP

    @classmethod
    def from_settings(cls, settings) -> "ScalePolicy":
        return cls(
            factor=settings.zoom_factor(),
            floor=settings.zoom_out_floor(),
            step=settings.scale_step(),
        )

    def zoom_in(self, current: float) -> float:
        return zoom_in(current, self.factor)

    def zoom_out(self, current: float) -> float:
        return zoom_out(current, self.floor, self.factor)

    def reset_zoom(self, default: float) -> float:
        return reset_zoom(default)

    def initial_fit_mode(self, is_small_screen: bool) -> FitMode:
        return initial_fit_mode(is_small_screen)

    def increase(self, scale: Scale) -> Optional[float]:
        return increase_scale(scale, self.step)

    def decrease(self, scale: Scale) -> Optional[float]:
        return decrease_scale(scale, self.step)
