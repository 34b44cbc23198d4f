"""RGB frames with a translucent IR overlay, and a holder for the newest one."""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np

from tron.frame import Frame, FrameMeta, PixelFormat

IR_ALPHA = 0.38


def blend_ir(rgb: np.ndarray, ir: np.ndarray, alpha: float) -> np.ndarray:
    """Blend IR intensity into BGRA pixels; the alpha channel becomes 255.

    ``rgb`` has 4 channels on its last axis and ``ir`` holds one value per
    pixel.
    """
    rgb = np.asarray(rgb, dtype=np.uint8)
    ir = np.asarray(ir, dtype=np.uint8)
    weight = np.float32(alpha)
    base = np.float32(1.0) - weight
    colour = rgb[..., :3].astype(np.float32) * base + (
        ir.astype(np.float32) * weight
    )[..., np.newaxis]
    out = np.empty(rgb.shape, dtype=np.uint8)
    out[..., :3] = np.clip(colour, 0.0, 255.0).astype(np.uint8)
    out[..., 3] = 255
    return out


class CompositeFrame:
    """BGRA8 image of an RGB frame with the projected IR frame blended over it."""

    def __init__(self) -> None:
        self._meta: Optional[FrameMeta] = None
        self._data = np.zeros((0, 0, 4), dtype=np.uint8)

    def update(self, rgb: Frame, ir: Frame) -> None:
        """Rebuild the composite from a synchronized RGB/IR pair of equal size."""
        if rgb.meta.size != ir.meta.size:
            raise ValueError(
                f"RGB frame size {rgb.meta.size} does not match projected IR "
                f"frame size {ir.meta.size}"
            )
        rgb_pixels = rgb.view()
        ir_pixels = ir.view()

        if rgb.format is PixelFormat.BGRA8:
            colour = rgb_pixels[:, :, :4]
        else:
            gray = rgb_pixels[:, :, 0]
            colour = np.empty(gray.shape + (4,), dtype=np.uint8)
            colour[..., :3] = gray[..., np.newaxis]
            colour[..., 3] = 255

        if ir.format is PixelFormat.GRAY8:
            intensity = ir_pixels[:, :, 0]
        else:
            summed = ir_pixels[:, :, :3].astype(np.uint16).sum(axis=2)
            intensity = (summed // 3).astype(np.uint8)

        self._data = blend_ir(colour, intensity, IR_ALPHA)
        self._meta = rgb.meta

    def frame(self) -> Frame:
        """The composite as a BGRA8 frame carrying the RGB frame's metadata."""
        if self._meta is None:
            raise RuntimeError("composite frame was not initialized")
        width = self._meta.size.width
        return Frame(self._meta, PixelFormat.BGRA8, width * 4, self._data.tobytes())

    def id(self) -> Optional[int]:
        """Id of the RGB frame the composite was built from, if any."""
        return None if self._meta is None else self._meta.id


class LatestCompositeFrame:
    """Thread-safe slot for the newest composite and a producer error."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[CompositeFrame] = None
        self._error: Optional[BaseException] = None

    def set_frame(self, frame: CompositeFrame) -> CompositeFrame:
        """Publish ``frame``; return an empty composite for the producer to fill next."""
        with self._lock:
            self._frame = frame
        return CompositeFrame()

    def set_error(self, error: BaseException) -> None:
        with self._lock:
            self._error = error

    def take_error(self) -> Optional[BaseException]:
        """Return the recorded error and clear it."""
        with self._lock:
            error, self._error = self._error, None
        return error

    def latest(self) -> Optional[CompositeFrame]:
        with self._lock:
            return self._frame