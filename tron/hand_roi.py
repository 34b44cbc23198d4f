"""Pick the bright blob most likely to be a moving hand and keep tracking it."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from tron.frame import Frame, PixelFormat
from tron.geometry import Rect, RoiCandidate, RoiResult, clamp_rect


@dataclass(frozen=True)
class HandRoiInput:
    """Candidate regions and an optional Gray8 motion mask."""

    candidates: Sequence[RoiCandidate]
    motion: Optional[Frame] = None


@dataclass(frozen=True)
class HandRoiTrackerConfig:
    """Minimum initial score and how long to hold a lost region."""

    min_motion_pixels: int = 8
    max_lost_frames: int = 10


class HandRoiTracker:
    """Chooses a candidate by motion, continuity with the last pick and size."""

    def __init__(self, config: HandRoiTrackerConfig = HandRoiTrackerConfig()) -> None:
        self.config = config
        self._previous: Optional[Rect] = None
        self._lost_frames = 0

    def _score(self, candidate: RoiCandidate, motion: Optional[Frame]) -> float:
        motion_pixels = motion_overlap(candidate.rect, motion)
        area_score = math.sqrt(candidate.area) * 0.05
        previous_score = 0.0
        if self._previous is not None:
            iou = rect_iou(self._previous, candidate.rect)
            distance = center_distance(self._previous, candidate.rect)
            previous_score = iou * 250.0 + 100.0 / (1.0 + distance / 24.0)
        return motion_pixels * 20.0 + previous_score + area_score

    def _mark_lost(self) -> Optional[RoiResult]:
        self._lost_frames += 1
        if self._lost_frames > self.config.max_lost_frames:
            self._previous = None
        return None if self._previous is None else RoiResult(self._previous)

    def process(self, input: HandRoiInput) -> Optional[RoiResult]:
        best: Optional[RoiCandidate] = None
        best_score = 0.0
        for candidate in input.candidates:
            score = self._score(candidate, input.motion)
            if best is None or best_score < score:
                best, best_score = candidate, score

        if best is None:
            return self._mark_lost()
        if self._previous is None and best_score < self.config.min_motion_pixels:
            return None

        self._previous = best.rect
        self._lost_frames = 0
        return RoiResult(best.rect)


def motion_overlap(rect: Rect, motion: Optional[Frame]) -> int:
    """Count nonzero Gray8 motion pixels inside ``rect``."""
    if motion is None or motion.format is not PixelFormat.GRAY8:
        return 0
    area = clamp_rect(rect, motion.meta.size)
    pixels = motion.view()
    window = pixels[area.y:area.bottom, area.x:area.right, 0]
    return int(np.count_nonzero(window))


def rect_iou(a: Rect, b: Rect) -> float:
    """Intersection over union of two rectangles; 0.0 when both are empty."""
    ix0 = max(a.x, b.x)
    iy0 = max(a.y, b.y)
    ix1 = min(a.right, b.right)
    iy1 = min(a.bottom, b.bottom)
    intersection = max(ix1 - ix0, 0) * max(iy1 - iy0, 0)
    a_area = a.size.width * a.size.height
    b_area = b.size.width * b.size.height
    union = max(a_area + b_area - intersection, 0)
    return 0.0 if union == 0 else intersection / union


def center_distance(a: Rect, b: Rect) -> float:
    """Euclidean distance between the centres of two rectangles."""
    ax = a.x + a.size.width * 0.5
    ay = a.y + a.size.height * 0.5
    bx = b.x + b.size.width * 0.5
    by = b.y + b.size.height * 0.5
    return math.hypot(ax - bx, ay - by)