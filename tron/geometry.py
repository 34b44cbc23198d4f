"""Integer rectangles, sizes and oriented boxes shared by the ROI processors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

Point = Tuple[float, float]


@dataclass(frozen=True)
class Size:
    """Width and height in pixels."""

    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with its top-left corner at (x, y)."""

    x: int
    y: int
    size: Size

    @property
    def right(self) -> int:
        return self.x + self.size.width

    @property
    def bottom(self) -> int:
        return self.y + self.size.height

    def clamp_to(self, frame_size: Size) -> Rect:
        """Return this rectangle cut down to fit inside a frame of ``frame_size``."""
        return clamp_rect(self, frame_size)


@dataclass(frozen=True)
class RoiCandidate:
    """A possible region of interest with the pixel area that produced it."""

    rect: Rect
    area: int


@dataclass(frozen=True)
class OrientedBoundingBox:
    """A box given by four corners in frame coordinates."""

    corners: Tuple[Point, Point, Point, Point]

    def enclosing_rect(self, frame_size: Size) -> Optional[Rect]:
        """Smallest integer rectangle inside the frame that covers the box, or None."""
        xs = [x for x, _ in self.corners]
        ys = [y for _, y in self.corners]
        if not all(math.isfinite(v) for v in xs + ys):
            return None
        x0 = int(min(max(math.floor(min(xs)), 0), frame_size.width))
        y0 = int(min(max(math.floor(min(ys)), 0), frame_size.height))
        x1 = int(min(max(math.ceil(max(xs)), 0), frame_size.width))
        y1 = int(min(max(math.ceil(max(ys)), 0), frame_size.height))
        width = max(x1 - x0, 0)
        height = max(y1 - y0, 0)
        if width == 0 or height == 0:
            return None
        return Rect(x0, y0, Size(width, height))

    def translated(self, dx: float, dy: float) -> OrientedBoundingBox:
        """Return the box moved by (dx, dy)."""
        moved = tuple((x + dx, y + dy) for x, y in self.corners)
        return OrientedBoundingBox(moved)  # type: ignore[arg-type]


@dataclass(frozen=True)
class RoiResult:
    """A region of interest, optionally with a rotated box inside it."""

    rect: Rect
    oriented_box: Optional[OrientedBoundingBox] = None


def clamp_rect(rect: Rect, bounds: Size) -> Rect:
    """Cut ``rect`` so that it lies within a frame of size ``bounds``."""
    x = min(rect.x, bounds.width)
    y = min(rect.y, bounds.height)
    width = min(rect.size.width, max(bounds.width - x, 0))
    height = min(rect.size.height, max(bounds.height - y, 0))
    return Rect(x, y, Size(width, height))