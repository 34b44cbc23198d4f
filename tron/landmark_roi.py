"""Regions of interest derived from hand landmarks and their velocities."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from tron.geometry import Rect, RoiResult, Size

ROI_MOTION_LANDMARKS: Tuple[int, ...] = (0, 1, 2, 3, 5, 6, 9, 10, 13, 14, 17, 18)


def _round(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


@dataclass(frozen=True)
class HandLandmarkVelocity:
    """Velocity of one landmark in pixels per second."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class HandLandmarkMotion:
    """Landmarks with per-landmark velocities over an interval of ``dt_secs``."""

    landmarks: Any
    velocities: Sequence[HandLandmarkVelocity]
    dt_secs: float
    timestamp: float


@dataclass(frozen=True)
class LandmarkRoiInput:
    """Landmarks (with ``bounding_roi``/``tracking_roi``) and the frame size."""

    landmarks: Optional[Any]
    frame_size: Size


@dataclass(frozen=True)
class LandmarkVelocityRoiInput:
    """A region to move by the landmarks' motion, inside a frame."""

    roi: Optional[RoiResult]
    motion: Optional[HandLandmarkMotion]
    frame_size: Size


class LandmarkRoiProcessor:
    """Axis-aligned region around the landmarks."""

    def process(self, input: LandmarkRoiInput) -> Optional[RoiResult]:
        if input.landmarks is None:
            return None
        return input.landmarks.bounding_roi(input.frame_size)


class LandmarkTrackingRoiProcessor:
    """Rotated tracking region derived from the landmarks."""

    def process(self, input: LandmarkRoiInput) -> Optional[RoiResult]:
        if input.landmarks is None:
            return None
        return input.landmarks.tracking_roi(input.frame_size)


class LandmarkVelocityRoiProcessor:
    """Shifts a region by the mean palm-landmark displacement over one interval."""

    def __init__(self) -> None:
        self.prediction_scale = 1.0

    def process(self, input: LandmarkVelocityRoiInput) -> Optional[RoiResult]:
        if input.roi is None:
            return None
        if input.motion is None:
            return input.roi
        displacement = average_landmark_displacement(input.motion, self.prediction_scale)
        if displacement is None:
            return input.roi
        dx, dy = displacement
        return translate_roi(input.roi, dx, dy, input.frame_size)


def _finite_velocity(velocity: HandLandmarkVelocity) -> bool:
    return math.isfinite(velocity.x) and math.isfinite(velocity.y)


def average_landmark_displacement(
    motion: HandLandmarkMotion, prediction_scale: float
) -> Optional[Tuple[float, float]]:
    """Mean displacement of the palm and knuckle landmarks, or None."""
    dt = motion.dt_secs
    if dt <= 0.0 or not math.isfinite(dt) or not math.isfinite(prediction_scale):
        return None
    moves = [
        (velocity.x * dt * prediction_scale, velocity.y * dt * prediction_scale)
        for velocity in (motion.velocities[index] for index in ROI_MOTION_LANDMARKS)
        if _finite_velocity(velocity)
    ]
    if not moves:
        return None
    count = len(moves)
    return sum(dx for dx, _ in moves) / count, sum(dy for _, dy in moves) / count


def _translate_rect(rect: Rect, dx: float, dy: float, frame_size: Size) -> Rect:
    x = int(max(_round(rect.x + dx), 0.0))
    y = int(max(_round(rect.y + dy), 0.0))
    return Rect(x, y, rect.size).clamp_to(frame_size)


def translate_roi(roi: RoiResult, dx: float, dy: float, frame_size: Size) -> RoiResult:
    """Move a region and its oriented box by (dx, dy), keeping the rect in frame."""
    oriented = roi.oriented_box.translated(dx, dy) if roi.oriented_box is not None else None
    return RoiResult(_translate_rect(roi.rect, dx, dy, frame_size), oriented)