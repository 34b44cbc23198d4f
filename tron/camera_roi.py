"""Map a region of interest from one camera's frame into another's."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from tron.geometry import Rect, RoiResult, Size, clamp_rect


def _round(value: float) -> float:
    """Round half away from zero."""
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


@dataclass(frozen=True)
class CameraRoiFollowConfig:
    """Smallest edge length of the followed region."""

    min_edge: int


@dataclass(frozen=True)
class CameraRoiFollowInput:
    """A region in the source frame and the target frame it is mapped into."""

    roi: Optional[RoiResult]
    allowed_bounds: Optional[Rect]
    source_size: Size
    target_size: Size


class CameraRoiFollowProcessor:
    """Maps a region between frame sizes and grows it to a minimum edge."""

    def __init__(self, config: CameraRoiFollowConfig) -> None:
        self.config = config

    def process(self, input: CameraRoiFollowInput) -> Optional[Rect]:
        if input.roi is None:
            return None
        if input.allowed_bounds is not None:
            bounds = clamp_rect(input.allowed_bounds, input.target_size)
        else:
            bounds = Rect(0, 0, input.target_size)
        rect = map_rect(input.roi.rect, input.source_size, input.target_size)
        return expand_to_min_edge(rect, self.config.min_edge, bounds)


def map_rect(rect: Rect, source_size: Size, target_size: Size) -> Rect:
    """Scale ``rect`` from ``source_size`` coordinates to ``target_size``."""
    sx = target_size.width / max(source_size.width, 1)
    sy = target_size.height / max(source_size.height, 1)
    cx = (rect.x + rect.size.width * 0.5) * sx
    cy = (rect.y + rect.size.height * 0.5) * sy
    width = int(max(_round(rect.size.width * sx), 1.0))
    height = int(max(_round(rect.size.height * sy), 1.0))
    x = int(max(_round(cx - width * 0.5), 0.0))
    y = int(max(_round(cy - height * 0.5), 0.0))
    return Rect(x, y, Size(width, height))


def expand_to_min_edge(rect: Rect, min_edge: int, bounds: Rect) -> Rect:
    """Grow ``rect`` about its centre to at least ``min_edge``, staying in ``bounds``."""
    width = max(min(max(rect.size.width, min_edge), bounds.size.width), 1)
    height = max(min(max(rect.size.height, min_edge), bounds.size.height), 1)
    bx1 = bounds.x + bounds.size.width
    by1 = bounds.y + bounds.size.height
    cx = _clamp(rect.x + rect.size.width // 2, bounds.x, bx1)
    cy = _clamp(rect.y + rect.size.height // 2, bounds.y, by1)
    x = _clamp(max(cx - width // 2, 0), bounds.x, max(bx1 - width, 0))
    y = _clamp(max(cy - height // 2, 0), bounds.y, max(by1 - height, 0))
    return Rect(x, y, Size(width, height))