"""Pixel-wise projection of frames through a lookup map, and a projecting source."""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np

from tron.frame import Frame, OpenedCameraInfo, PixelFormat
from tron.geometry import Size


@dataclass(frozen=True, eq=False)
class FrameProjectionMap:
    """For each output pixel, the source pixel it copies; negative means none."""

    input_size: Size
    output_size: Size
    source_x: np.ndarray
    source_y: np.ndarray

    def __post_init__(self) -> None:
        shape = (self.output_size.height, self.output_size.width)
        source_x = np.asarray(self.source_x, dtype=np.int64)
        source_y = np.asarray(self.source_y, dtype=np.int64)
        if source_x.shape != shape or source_y.shape != shape:
            raise ValueError(
                f"projection map arrays must have shape {shape}, "
                f"got {source_x.shape} and {source_y.shape}"
            )
        object.__setattr__(self, "source_x", source_x)
        object.__setattr__(self, "source_y", source_y)

    @classmethod
    def identity(cls, size: Size) -> FrameProjectionMap:
        """A map that copies every pixel to the same place."""
        ys, xs = np.mgrid[0:size.height, 0:size.width]
        return cls(size, size, xs, ys)

    def get(self, x: int, y: int) -> Optional[Tuple[int, int]]:
        """Source pixel for output pixel (x, y), or None if it has none."""
        if not (0 <= x < self.output_size.width and 0 <= y < self.output_size.height):
            return None
        src_x = int(self.source_x[y, x])
        src_y = int(self.source_y[y, x])
        if src_x < 0 or src_y < 0:
            return None
        return src_x, src_y


def project_frame(frame: Frame, projection_map: FrameProjectionMap) -> Frame:
    """Produce a Gray8 frame of the map's output size from ``frame``."""
    output_size = projection_map.output_size
    pixels = frame.view()
    height, width, _ = pixels.shape
    source_x = projection_map.source_x
    source_y = projection_map.source_y
    valid = (source_x >= 0) & (source_y >= 0)
    outside = valid & ((source_x >= width) | (source_y >= height))
    if outside.any():
        y, x = (int(v) for v in np.argwhere(outside)[0])
        raise ValueError(
            f"projection source pixel x={int(source_x[y, x])} y={int(source_y[y, x])} "
            f"outside view shape {pixels.shape}"
        )

    output = np.zeros((output_size.height, output_size.width), dtype=np.uint8)
    xs = source_x[valid]
    ys = source_y[valid]
    if frame.format is PixelFormat.GRAY8:
        output[valid] = pixels[ys, xs, 0]
    else:
        summed = pixels[ys, xs, :3].astype(np.uint16).sum(axis=1)
        output[valid] = (summed // 3).astype(np.uint8)

    meta = dataclasses.replace(frame.meta, size=output_size)
    return Frame(meta, PixelFormat.GRAY8, output_size.width, output.tobytes())


class ProjectedFrameSource:
    """Frame source whose frames are reprojected through a changing map.

    ``map_source.next_map(timestamp)`` returns a new map or None to keep
    the current one.
    """

    def __init__(self, source: Any, map_source: Any) -> None:
        current_map = map_source.next_map(time.monotonic())
        if current_map is None:
            raise ValueError("projection map source did not provide initial map")
        self._source = source
        self._map_source = map_source
        self._current_map: FrameProjectionMap = current_map
        self._info: OpenedCameraInfo = dataclasses.replace(
            source.info(), size=current_map.output_size
        )

    def info(self) -> OpenedCameraInfo:
        return self._info

    def next_frame(self) -> Optional[Frame]:
        frame = self._source.next_frame()
        if frame is None:
            return None
        new_map = self._map_source.next_map(frame.meta.timestamp.received_at)
        if new_map is not None:
            self._current_map = new_map
        if frame.meta.size != self._current_map.input_size:
            raise ValueError(
                f"projected source frame size {frame.meta.size} does not match "
                f"projection input size {self._current_map.input_size}"
            )
        if self._current_map.output_size != self._info.size:
            raise ValueError(
                f"projection output size {self._current_map.output_size} does not "
                f"match transformed source size {self._info.size}"
            )
        return project_frame(frame, self._current_map)