"""Model input specs, affine crops, warping and debug drawing for the hand models."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from tron.frame import Frame, PixelFormat
from tron.geometry import Size

Point = Tuple[float, float]
Color = Tuple[int, int, int]

MODEL_INPUT_CHANNELS = 3
BGRA_CHANNELS = 4
DEBUG_DUMP_DIR_ENV = "TRON_MEDIAPIPE_DUMP_DIR"
HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),
    (0, 5), (5, 6), (6, 7), (7, 8),
    (5, 9), (9, 10), (10, 11), (11, 12),
    (9, 13), (13, 14), (14, 15), (15, 16),
    (13, 17), (17, 18), (18, 19), (19, 20),
)
_LINE_COLOR: Color = (255, 230, 32)
_CROSS_COLOR: Color = (32, 225, 255)


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


@dataclass(frozen=True)
class Affine2:
    """2D affine map: ``p -> x_axis * p.x + y_axis * p.y + translation``."""

    x_axis: Point
    y_axis: Point
    translation: Point = (0.0, 0.0)

    def transform_point2(self, point: Point) -> Point:
        px, py = point
        return (
            self.x_axis[0] * px + self.y_axis[0] * py + self.translation[0],
            self.x_axis[1] * px + self.y_axis[1] * py + self.translation[1],
        )


class ModelInputLayout(Enum):
    """Order of the dimensions of a model's image input."""

    NCHW = "nchw"
    NHWC = "nhwc"

    def shape(self, input_size: int) -> Tuple[int, int, int, int]:
        if self is ModelInputLayout.NCHW:
            return (1, MODEL_INPUT_CHANNELS, input_size, input_size)
        return (1, input_size, input_size, MODEL_INPUT_CHANNELS)


@dataclass(frozen=True)
class ModelInputSpec:
    """Name, square edge length and layout of a model's image input."""

    name: str
    size: int
    layout: ModelInputLayout

    def shape(self) -> Tuple[int, int, int, int]:
        return self.layout.shape(self.size)


def model_input_spec(name: str, shape: Sequence[int]) -> Optional[ModelInputSpec]:
    """Recognise a square 3-channel NCHW or NHWC input shape; None otherwise."""
    if len(shape) < 4:
        return None
    c, h, w = shape[1], shape[2], shape[3]
    if c == MODEL_INPUT_CHANNELS and h > 0 and h == w:
        return ModelInputSpec(name, int(h), ModelInputLayout.NCHW)
    h, w, c = shape[1], shape[2], shape[3]
    if c == MODEL_INPUT_CHANNELS and h > 0 and h == w:
        return ModelInputSpec(name, int(h), ModelInputLayout.NHWC)
    return None


def letterbox_inverse_affine(
    source_size: Size,
    resized_w: int,
    resized_h: int,
    pad_x: int,
    pad_y: int,
    mirror_x: bool,
    mirror_y: bool,
) -> np.ndarray:
    """2x3 map from model-input pixels to source pixels for a letterboxed resize."""
    scale_x = source_size.width / resized_w
    scale_y = source_size.height / resized_h
    if mirror_x:
        m00, m02 = -scale_x, (resized_w - 0.5 + pad_x) * scale_x - 0.5
    else:
        m00, m02 = scale_x, (0.5 - pad_x) * scale_x - 0.5
    if mirror_y:
        m11, m12 = -scale_y, (resized_h - 0.5 + pad_y) * scale_y - 0.5
    else:
        m11, m12 = scale_y, (0.5 - pad_y) * scale_y - 0.5
    return np.array([[m00, 0.0, m02], [0.0, m11, m12]], dtype=np.float64)


def crop_inverse_affine(
    source_size: Size,
    crop: Affine2,
    input_size: int,
    mirror_x: bool,
    mirror_y: bool,
) -> np.ndarray:
    """2x3 map from model-input pixels to source pixels for a unit-square crop."""
    scale = 1.0 / input_size
    ax, ay = crop.x_axis[0] * scale, crop.x_axis[1] * scale
    bx, by = crop.y_axis[0] * scale, crop.y_axis[1] * scale
    ox = crop.translation[0] + (crop.x_axis[0] + crop.y_axis[0]) * (0.5 * scale) - 0.5
    oy = crop.translation[1] + (crop.x_axis[1] + crop.y_axis[1]) * (0.5 * scale) - 0.5
    if mirror_x:
        ax, bx = -ax, -bx
        ox = max(source_size.width - 1, 0) - ox
    if mirror_y:
        ay, by = -ay, -by
        oy = max(source_size.height - 1, 0) - oy
    return np.array([[ax, bx, ox], [ay, by, oy]], dtype=np.float64)


def warp_affine_inverse(image: np.ndarray, matrix: np.ndarray, output_size: Size) -> np.ndarray:
    """Bilinear warp where ``matrix`` maps output pixels to source pixels.

    Samples outside the source read as zero.
    """
    src = np.asarray(image)
    single = src.ndim == 2
    if single:
        src = src[..., np.newaxis]
    height, width, channels = src.shape
    m = np.asarray(matrix, dtype=np.float64).reshape(2, 3)
    ys, xs = np.mgrid[0:output_size.height, 0:output_size.width].astype(np.float64)
    sx = np.clip(m[0, 0] * xs + m[0, 1] * ys + m[0, 2], -2.0, width + 1.0)
    sy = np.clip(m[1, 0] * xs + m[1, 1] * ys + m[1, 2], -2.0, height + 1.0)
    sx = np.nan_to_num(sx, nan=-2.0)
    sy = np.nan_to_num(sy, nan=-2.0)
    x0 = np.floor(sx)
    y0 = np.floor(sy)
    fx = sx - x0
    fy = sy - y0
    x0 = x0.astype(np.int64)
    y0 = y0.astype(np.int64)

    out = np.zeros((output_size.height, output_size.width, channels), dtype=np.float64)
    taps = (
        (0, 0, (1.0 - fx) * (1.0 - fy)),
        (0, 1, fx * (1.0 - fy)),
        (1, 0, (1.0 - fx) * fy),
        (1, 1, fx * fy),
    )
    for dy, dx, weight in taps:
        xi = x0 + dx
        yi = y0 + dy
        inside = (xi >= 0) & (xi < width) & (yi >= 0) & (yi < height)
        values = np.zeros_like(out)
        values[inside] = src[yi[inside], xi[inside]]
        out += values * weight[..., np.newaxis]

    result = np.clip(np.rint(out), 0, 255).astype(np.uint8)
    return result[..., 0] if single else result


def bgra_to_tensor(image: np.ndarray, layout: ModelInputLayout) -> np.ndarray:
    """Convert a BGRA8 image to a float32 RGB tensor scaled to [0, 1]."""
    pixels = np.asarray(image, dtype=np.uint8)
    rgb = pixels[..., [2, 1, 0]].astype(np.float32) / np.float32(255.0)
    if layout is ModelInputLayout.NCHW:
        return np.ascontiguousarray(rgb.transpose(2, 0, 1)[np.newaxis])
    return np.ascontiguousarray(rgb[np.newaxis])


def preprocess_bgra(
    frame: Frame,
    input_size: int,
    layout: ModelInputLayout,
    inverse_affine: np.ndarray,
) -> np.ndarray:
    """Warp a tightly packed BGRA8 frame into a model input tensor.

    The frame's raw storage is read; mirroring must be folded into
    ``inverse_affine``.
    """
    if frame.format is not PixelFormat.BGRA8:
        raise ValueError(
            f"MediaPipe preprocessing expects BGRA8 frames, got {frame.format}"
        )
    width = frame.meta.size.width
    height = frame.meta.size.height
    if width <= 0 or height <= 0:
        raise ValueError("empty RGB frame")
    if frame.stride != width * BGRA_CHANNELS:
        raise ValueError(
            "MediaPipe preprocessing requires tightly packed BGRA8 frames"
        )
    raw = np.frombuffer(frame.data, dtype=np.uint8, count=width * height * BGRA_CHANNELS)
    source = raw.reshape(height, width, BGRA_CHANNELS)
    warped = warp_affine_inverse(source, inverse_affine, Size(input_size, input_size))
    return bgra_to_tensor(warped, layout)


def tensor_to_rgb(input_size: int, layout: ModelInputLayout, tensor: np.ndarray) -> np.ndarray:
    """Turn a model input tensor back into an (n, n, 3) uint8 RGB image."""
    plane = input_size * input_size
    values = np.asarray(tensor, dtype=np.float32).ravel()
    if values.size < MODEL_INPUT_CHANNELS * plane:
        raise ValueError("MediaPipe tensor debug buffer too small")
    values = values[: MODEL_INPUT_CHANNELS * plane]
    if layout is ModelInputLayout.NCHW:
        rgb = values.reshape(MODEL_INPUT_CHANNELS, input_size, input_size).transpose(1, 2, 0)
    else:
        rgb = values.reshape(input_size, input_size, MODEL_INPUT_CHANNELS)
    scaled = np.nan_to_num(rgb * np.float32(255.0), nan=0.0)
    return np.clip(scaled, 0.0, 255.0).astype(np.uint8)


def image_point(input_size: int, point: Optional[Point]) -> Optional[Tuple[int, int]]:
    """Pixel for a point in unit crop coordinates, clamped to the image."""
    if point is None:
        return None
    px, py = point
    if not (math.isfinite(px) and math.isfinite(py)):
        return None
    limit = float(max(input_size - 1, 0))
    x = min(max(_round_half_away(px * input_size), 0.0), limit)
    y = min(max(_round_half_away(py * input_size), 0.0), limit)
    return int(x), int(y)


def _put_pixel(rgb: np.ndarray, input_size: int, x: int, y: int, color: Color) -> None:
    if 0 <= x < input_size and 0 <= y < input_size:
        rgb[y, x] = color


def draw_cross(rgb: np.ndarray, input_size: int, point: Optional[Point], color: Color) -> None:
    """Draw a 7-pixel cross centred on ``point`` into ``rgb`` in place."""
    pixel = image_point(input_size, point)
    if pixel is None:
        return
    x, y = pixel
    for d in range(-3, 4):
        _put_pixel(rgb, input_size, x + d, y, color)
        _put_pixel(rgb, input_size, x, y + d, color)


def draw_line(
    rgb: np.ndarray, input_size: int, a: Optional[Point], b: Optional[Point], color: Color
) -> None:
    """Draw a Bresenham line from ``a`` to ``b`` into ``rgb`` in place."""
    start = image_point(input_size, a)
    end = image_point(input_size, b)
    if start is None or end is None:
        return
    x0, y0 = start
    x1, y1 = end
    dx = abs(x1 - x0)
    sx = 1 if x0 < x1 else -1
    dy = -abs(y1 - y0)
    sy = 1 if y0 < y1 else -1
    err = dx + dy
    while True:
        _put_pixel(rgb, input_size, x0, y0, color)
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


def write_rgb_ppm(path: Union[str, Path], input_size: int, rgb: np.ndarray) -> None:
    """Write a square RGB image as a binary PPM file."""
    with open(path, "wb") as handle:
        handle.write(f"P6\n{input_size} {input_size}\n255\n".encode("ascii"))
        handle.write(np.asarray(rgb, dtype=np.uint8).tobytes())


def dump_landmark_overlay(
    frame_id: int,
    input_size: int,
    layout: ModelInputLayout,
    tensor: np.ndarray,
    points: Sequence[Optional[Point]],
) -> Optional[Path]:
    """Write the model input with the hand skeleton drawn over it.

    Does nothing unless the dump directory environment variable is set;
    returns the written path.
    """
    root = os.environ.get(DEBUG_DUMP_DIR_ENV)
    if root is None:
        return None
    rgb = tensor_to_rgb(input_size, layout, tensor)
    for a, b in HAND_CONNECTIONS:
        if points[a] is None or points[b] is None:
            continue
        draw_line(rgb, input_size, points[a], points[b], _LINE_COLOR)
    for point in points:
        if point is not None:
            draw_cross(rgb, input_size, point, _CROSS_COLOR)
    directory = Path(root)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"landmark-overlay-{frame_id:08}.ppm"
    write_rgb_ppm(path, input_size, rgb)
    return path