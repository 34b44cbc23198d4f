"""Find bright connected blobs in a Gray8 frame as region candidates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from scipy import ndimage

from tron.frame import Frame, PixelFormat
from tron.geometry import Rect, RoiCandidate, RoiResult, Size

_EIGHT_CONNECTED = np.ones((3, 3), dtype=bool)


@dataclass(frozen=True)
class BlobRoiConfig:
    """Brightness threshold, accepted blob areas and padding around each blob."""

    threshold: int = 24
    min_area: int = 128
    max_area: Optional[int] = None
    padding: int = 16


class BlobRoiDetector:
    """Thresholds a frame and reports 8-connected bright components."""

    def __init__(self, config: BlobRoiConfig = BlobRoiConfig()) -> None:
        self.config = config

    def detect_candidates(self, frame: Frame) -> List[RoiCandidate]:
        """All plausible blobs, in raster order of their first pixel."""
        if frame.format is not PixelFormat.GRAY8:
            raise ValueError(
                f"ROI detector requires Gray8 input, got {frame.format}"
            )
        size = frame.meta.size
        if size.width <= 0 or size.height <= 0:
            raise ValueError("ROI detector got empty input")

        mask = frame.view()[:, :, 0] > self.config.threshold
        labels, count = ndimage.label(mask, structure=_EIGHT_CONNECTED)
        if count == 0:
            return []
        areas = np.bincount(labels.ravel(), minlength=count + 1)
        candidates = []
        for label, slices in enumerate(ndimage.find_objects(labels), start=1):
            if slices is None:
                continue
            rows, cols = slices
            rect = padded_rect(
                Rect(cols.start, rows.start, Size(cols.stop - cols.start, rows.stop - rows.start)),
                self.config.padding,
                size,
            )
            area = int(areas[label])
            if self._is_plausible(rect, area):
                candidates.append(RoiCandidate(rect, area))
        return candidates

    def process(self, frame: Frame) -> Optional[RoiResult]:
        """The largest plausible blob; on ties the last one found."""
        best: Optional[RoiCandidate] = None
        for candidate in self.detect_candidates(frame):
            if best is None or candidate.area >= best.area:
                best = candidate
        return None if best is None else RoiResult(best.rect)

    def _is_plausible(self, rect: Rect, area: int) -> bool:
        config = self.config
        return (
            area >= config.min_area
            and (config.max_area is None or area <= config.max_area)
            and rect.size.width > 0
            and rect.size.height > 0
        )


def padded_rect(rect: Rect, padding: int, bounds: Size) -> Rect:
    """Grow ``rect`` by ``padding`` on every side, clipped to ``bounds``."""
    x0 = max(rect.x - padding, 0)
    y0 = max(rect.y - padding, 0)
    x1 = min(rect.x + rect.size.width + padding, bounds.width)
    y1 = min(rect.y + rect.size.height + padding, bounds.height)
    return Rect(x0, y0, Size(max(x1 - x0, 0), max(y1 - y0, 0)))