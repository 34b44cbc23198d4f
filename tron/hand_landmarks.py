"""Hand landmarks from the landmark model, and the regions derived from them."""

from __future__ import annotations

import enum
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from tron.geometry import OrientedBoundingBox, Rect, RoiResult, Size
from tron.mediapipe_common import Affine2

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
HandLandmark = Tuple[float, float, float]

HAND_LANDMARKS = 21
LANDMARK_COORDS = 3
WRIST_LANDMARK = 0
INDEX_MCP_LANDMARK = 5
MIDDLE_MCP_LANDMARK = 9
RING_MCP_LANDMARK = 13
PINKY_MCP_LANDMARK = 17
MEDIAPIPE_LANDMARK_SCALE = 1.0
MEDIAPIPE_LANDMARK_TARGET_ANGLE = math.pi / 2.0
MEDIAPIPE_LANDMARK_TRACKING_SHIFT_Y = -0.1
MEDIAPIPE_LANDMARK_TRACKING_SCALE = 2.2
MEDIAPIPE_LANDMARK_RECT_INDICES: Tuple[int, ...] = (0, 1, 2, 3, 5, 6, 9, 10, 13, 14, 17, 18)
LANDMARK_SILHOUETTE_MARGIN_OF_PALM_WIDTH = 0.20
LANDMARK_SILHOUETTE_MARGIN_OF_PALM_LENGTH = 0.10
PINKY_MCP_EDGE_EPSILON_PX = 4.0
PINKY_MCP_EDGE_EXTRA_MARGIN_OF_PALM_WIDTH = 0.12

_F32_EPSILON = 1.1920929e-07
_NAN_LANDMARK: HandLandmark = (math.nan, math.nan, math.nan)


@dataclass(frozen=True)
class MediaPipeHandLandmarkConfig:
    """Minimum hand presence score and scale of the crop around the hand."""

    min_presence: float = 0.5
    roi_scale: float = MEDIAPIPE_LANDMARK_SCALE


class Handedness(enum.Enum):
    """Which hand the model believes it sees."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class HandLandmarks:
    """21 landmarks in frame pixels (z in crop units); NaN marks a missing point."""

    points: Tuple[HandLandmark, ...]
    presence: float
    handedness: Optional[Handedness] = None
    timestamp: float = field(default_factory=time.monotonic, compare=False)
    crop_points: Tuple[Optional[Point], ...] = field(
        default=(), repr=False, compare=False
    )

    def __post_init__(self) -> None:
        points = tuple(tuple(float(v) for v in point) for point in self.points)
        if len(points) != HAND_LANDMARKS or any(len(p) != LANDMARK_COORDS for p in points):
            raise ValueError(
                f"hand landmarks need {HAND_LANDMARKS} points of {LANDMARK_COORDS} coordinates"
            )
        object.__setattr__(self, "points", points)

    def bounding_roi(self, frame_size: Size) -> Optional[RoiResult]:
        """Axis-aligned region around the hand silhouette."""
        return landmark_bounding_roi(self.points, frame_size)

    def tracking_roi(self, frame_size: Size) -> Optional[RoiResult]:
        """Rotated square region for the next landmark pass."""
        return landmark_tracking_roi(self.points, frame_size)


def _landmark_xy(point: HandLandmark) -> Optional[Point]:
    x, y = point[0], point[1]
    if math.isfinite(x) and math.isfinite(y):
        return (x, y)
    return None


def _distance(a: HandLandmark, b: HandLandmark) -> Optional[float]:
    pa = _landmark_xy(a)
    pb = _landmark_xy(b)
    if pa is None or pb is None:
        return None
    return math.hypot(pa[0] - pb[0], pa[1] - pb[1])


def _landmark_bounds(points: Sequence[HandLandmark]) -> Optional[Tuple[Point, Point]]:
    xy = [p for p in (_landmark_xy(point) for point in points) if p is not None]
    if not xy:
        return None
    xs = [x for x, _ in xy]
    ys = [y for _, y in xy]
    return (min(xs), min(ys)), (max(xs), max(ys))


def _silhouette_margin(points: Sequence[HandLandmark]) -> Optional[float]:
    palm_width = _distance(points[INDEX_MCP_LANDMARK], points[PINKY_MCP_LANDMARK])
    palm_length = _distance(points[WRIST_LANDMARK], points[MIDDLE_MCP_LANDMARK])
    margin = 0.0
    if palm_width is not None:
        margin = max(margin, palm_width * LANDMARK_SILHOUETTE_MARGIN_OF_PALM_WIDTH)
    if palm_length is not None:
        margin = max(margin, palm_length * LANDMARK_SILHOUETTE_MARGIN_OF_PALM_LENGTH)
    return margin if margin > 0.0 and math.isfinite(margin) else None


def _pinky_edge_margins(
    points: Sequence[HandLandmark], x0: float, x1: float
) -> Optional[Tuple[float, float]]:
    pinky = _landmark_xy(points[PINKY_MCP_LANDMARK])
    palm_width = _distance(points[INDEX_MCP_LANDMARK], points[PINKY_MCP_LANDMARK])
    if pinky is None or palm_width is None:
        return None
    extra = palm_width * PINKY_MCP_EDGE_EXTRA_MARGIN_OF_PALM_WIDTH
    if extra <= 0.0 or not math.isfinite(extra):
        return None
    left = extra if abs(pinky[0] - x0) <= PINKY_MCP_EDGE_EPSILON_PX else 0.0
    right = extra if abs(x1 - pinky[0]) <= PINKY_MCP_EDGE_EPSILON_PX else 0.0
    return left, right


def _to_pixel(value: float, limit: int) -> int:
    if math.isnan(value):
        return 0
    return int(min(max(value, 0.0), float(limit)))


def landmark_bounding_roi(
    points: Sequence[HandLandmark], frame_size: Size
) -> Optional[RoiResult]:
    """Region around the finite landmarks, widened by a palm-sized margin."""
    bounds = _landmark_bounds(points)
    if bounds is None:
        return None
    (x0, y0), (x1, y1) = bounds
    scale = 1.0
    margin = max(_silhouette_margin(points) or 0.0, 0.0)
    left_edge, right_edge = _pinky_edge_margins(points, x0, x1) or (0.0, 0.0)
    left_margin = margin + max(left_edge, 0.0)
    right_margin = margin + max(right_edge, 0.0)
    w = ((x1 - x0) + left_margin + right_margin) * scale
    h = ((y1 - y0) + margin * 2.0) * scale
    cx = (x0 - left_margin + x1 + right_margin) * 0.5
    cy = (y0 + y1) * 0.5

    rect_x0 = _to_pixel(math.floor(cx - w * 0.5), frame_size.width)
    rect_y0 = _to_pixel(math.floor(cy - h * 0.5), frame_size.height)
    rect_x1 = _to_pixel(math.ceil(cx + w * 0.5), frame_size.width)
    rect_y1 = _to_pixel(math.ceil(cy + h * 0.5), frame_size.height)
    rect = Rect(
        rect_x0,
        rect_y0,
        Size(max(rect_x1 - rect_x0, 0), max(rect_y1 - rect_y0, 0)),
    )
    logger.debug(
        "ROI: bounds=(%.1f, %.1f, %.1f, %.1f), scale=%.1f, margin=%.1f, "
        "pinky_edge=(%.1f, %.1f), rect=%r",
        x0, y0, x1, y1, scale, margin, left_edge, right_edge, rect,
    )
    if rect.size.width > 0 and rect.size.height > 0:
        return RoiResult(rect)
    return None


def normalize_radians(angle: float) -> float:
    """Wrap an angle into [-pi, pi)."""
    two_pi = 2.0 * math.pi
    return angle - two_pi * math.floor((angle + math.pi) / two_pi)


def _rect_rotation(points: Sequence[HandLandmark]) -> Optional[float]:
    wrist = _landmark_xy(points[WRIST_LANDMARK])
    index_mcp = _landmark_xy(points[INDEX_MCP_LANDMARK])
    middle_mcp = _landmark_xy(points[MIDDLE_MCP_LANDMARK])
    ring_mcp = _landmark_xy(points[RING_MCP_LANDMARK])
    if wrist is None or index_mcp is None or middle_mcp is None or ring_mcp is None:
        return None
    fx = ((index_mcp[0] + ring_mcp[0]) * 0.5 + middle_mcp[0]) * 0.5
    fy = ((index_mcp[1] + ring_mcp[1]) * 0.5 + middle_mcp[1]) * 0.5
    rotation = MEDIAPIPE_LANDMARK_TARGET_ANGLE - math.atan2(-(fy - wrist[1]), fx - wrist[0])
    return normalize_radians(rotation)


def landmark_tracking_roi(
    points: Sequence[HandLandmark], frame_size: Size
) -> Optional[RoiResult]:
    """Rotated, shifted and enlarged square around the palm landmarks."""
    if frame_size.width <= 0 or frame_size.height <= 0:
        return None
    rect_points = [_landmark_xy(points[index]) for index in MEDIAPIPE_LANDMARK_RECT_INDICES]
    if any(point is None for point in rect_points):
        return None
    rotation = _rect_rotation(points)
    if rotation is None:
        return None
    reverse = normalize_radians(-rotation)
    reverse_sin, reverse_cos = math.sin(reverse), math.cos(reverse)
    rot_sin, rot_cos = math.sin(rotation), math.cos(rotation)

    xs = [p[0] for p in rect_points]  # type: ignore[index]
    ys = [p[1] for p in rect_points]  # type: ignore[index]
    acx = (min(xs) + max(xs)) * 0.5
    acy = (min(ys) + max(ys)) * 0.5

    projected = [
        (
            (x - acx) * reverse_cos - (y - acy) * reverse_sin,
            (x - acx) * reverse_sin + (y - acy) * reverse_cos,
        )
        for x, y in zip(xs, ys)
    ]
    min_x = min(p[0] for p in projected)
    max_x = max(p[0] for p in projected)
    min_y = min(p[1] for p in projected)
    max_y = max(p[1] for p in projected)
    width = max_x - min_x
    height = max_y - min_y
    if width <= 0.0 or height <= 0.0 or not math.isfinite(width) or not math.isfinite(height):
        return None

    pcx = (min_x + max_x) * 0.5
    pcy = (min_y + max_y) * 0.5
    cx = pcx * rot_cos - pcy * rot_sin + acx
    cy = pcx * rot_sin + pcy * rot_cos + acy
    cx += -height * MEDIAPIPE_LANDMARK_TRACKING_SHIFT_Y * rot_sin
    cy += height * MEDIAPIPE_LANDMARK_TRACKING_SHIFT_Y * rot_cos

    side = max(width, height, 1.0) * MEDIAPIPE_LANDMARK_TRACKING_SCALE
    half = side * 0.5
    xax = (rot_cos * half, rot_sin * half)
    yax = (-rot_sin * half, rot_cos * half)
    oriented = OrientedBoundingBox(
        (
            (cx - xax[0] - yax[0], cy - xax[1] - yax[1]),
            (cx + xax[0] - yax[0], cy + xax[1] - yax[1]),
            (cx + xax[0] + yax[0], cy + xax[1] + yax[1]),
            (cx - xax[0] + yax[0], cy - xax[1] + yax[1]),
        )
    )
    rect = oriented.enclosing_rect(frame_size)
    if rect is None:
        return None
    return RoiResult(rect, oriented)


def crop_from_roi(roi: Optional[RoiResult], frame_size: Size) -> Affine2:
    """Map from unit crop coordinates to frame pixels for the model input."""
    fw = float(frame_size.width)
    fh = float(frame_size.height)
    if roi is None:
        return Affine2((fw, 0.0), (0.0, fh), (0.0, 0.0))
    if roi.oriented_box is not None:
        c0, c1, _, c3 = roi.oriented_box.corners
        return Affine2(
            (c1[0] - c0[0], c1[1] - c0[1]),
            (c3[0] - c0[0], c3[1] - c0[1]),
            (c0[0], c0[1]),
        )
    rect = roi.rect
    cx = rect.x + rect.size.width * 0.5
    cy = rect.y + rect.size.height * 0.5
    half = max(rect.size.width, rect.size.height) * 0.5
    min_x = min(max(cx - half, 0.0), fw)
    min_y = min(max(cy - half, 0.0), fh)
    max_x = min(max(cx + half, 0.0), fw)
    max_y = min(max(cy + half, 0.0), fh)
    return Affine2((max_x - min_x, 0.0), (0.0, max_y - min_y), (min_x, min_y))


def decode_landmarks(
    raw: Sequence[float],
    crop: Affine2,
    input_size: int,
    presence: Optional[float],
    handedness_score: Optional[float],
    config: MediaPipeHandLandmarkConfig = MediaPipeHandLandmarkConfig(),
) -> Optional[HandLandmarks]:
    """Turn raw model outputs into frame-space landmarks.

    Returns None when the output is too short or presence is below the
    configured minimum. Points exactly at the crop origin are marked NaN.
    """
    values = [float(v) for v in raw]
    needed = HAND_LANDMARKS * LANDMARK_COORDS
    if len(values) < needed:
        return None
    presence_value = 1.0 if presence is None else float(presence)
    if presence_value < config.min_presence:
        return None

    raw_max = max([0.0] + [abs(v) for v in values[:needed]])
    points = []
    crop_points = []
    for i in range(HAND_LANDMARKS):
        x, y, z = values[i * LANDMARK_COORDS:(i + 1) * LANDMARK_COORDS]
        if raw_max >= 2.0:
            x, y, z = x / input_size, y / input_size, z / input_size
        if max(abs(x), abs(y)) < _F32_EPSILON:
            points.append(_NAN_LANDMARK)
            crop_points.append(None)
            continue
        crop_points.append((x, y))
        fx, fy = crop.transform_point2((x, y))
        points.append((fx, fy, z))
        logger.debug(
            "landmark %d: crop=(%.4f, %.4f), frame=(%.1f, %.1f)", i, x, y, fx, fy
        )

    handedness = None
    if handedness_score is not None:
        handedness = Handedness.RIGHT if handedness_score > 0.5 else Handedness.LEFT

    return HandLandmarks(
        points=tuple(points),
        presence=presence_value,
        handedness=handedness,
        crop_points=tuple(crop_points),
    )


@dataclass(frozen=True)
class HandLandmarkOutputSpec:
    """Names of the landmark model's outputs that are read."""

    landmarks_name: str
    presence_name: Optional[str] = None
    handedness_name: Optional[str] = None


def _num_elements(shape: Optional[Sequence[int]]) -> int:
    if shape is None or any(dim < 0 for dim in shape):
        return 0
    return math.prod(shape)


def _output_summary(outputs: Sequence[Tuple[str, Optional[Sequence[int]]]]) -> str:
    parts = []
    for i, (name, shape) in enumerate(outputs):
        shape_text = "not a tensor" if shape is None else f"{list(shape)}"
        parts.append(f"{i}:{name}:{shape_text}")
    return ", ".join(parts)


def classify_outputs(
    outputs: Sequence[Tuple[str, Optional[Sequence[int]]]]
) -> HandLandmarkOutputSpec:
    """Pick landmark, presence and handedness outputs from ``(name, shape)`` pairs.

    Names are tried first, then element counts; raises ValueError when no
    21x3 landmark output exists.
    """
    landmarks = presence = handedness = None
    for i, (name, shape) in enumerate(outputs):
        lower = name.lower()
        elements = _num_elements(shape)
        if (
            landmarks is None
            and ("landmark" in lower or "identity" in lower)
            and "world" not in lower
            and elements == 63
        ):
            landmarks = i
        if presence is None and ("presence" in lower or "score" in lower) and elements == 1:
            presence = i
        if handedness is None and "handed" in lower and elements == 1:
            handedness = i

    if landmarks is None:
        landmarks = next(
            (
                i
                for i, (_, shape) in enumerate(outputs)
                if _num_elements(shape) == HAND_LANDMARKS * LANDMARK_COORDS
            ),
            None,
        )
    if presence is None:
        presence = next(
            (i for i, (_, shape) in enumerate(outputs) if _num_elements(shape) == 1),
            None,
        )
    if landmarks is None:
        raise ValueError(
            "MediaPipe hand landmark model has no 21x3 landmark output tensor; "
            f"outputs: {_output_summary(outputs)}"
        )
    return HandLandmarkOutputSpec(
        landmarks_name=outputs[landmarks][0],
        presence_name=None if presence is None else outputs[presence][0],
        handedness_name=None if handedness is None else outputs[handedness][0],
    )