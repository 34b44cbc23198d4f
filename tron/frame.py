"""Camera frames backed by shared byte storage, with zero-copy mirroring."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np
from numpy.lib.stride_tricks import as_strided

from tron.geometry import Size


class PixelFormat(Enum):
    """In-memory pixel layouts of decoded frames."""

    GRAY8 = "gray8"
    BGRA8 = "bgra8"

    @property
    def channels(self) -> int:
        return 1 if self is PixelFormat.GRAY8 else 4


class CaptureFormat(Enum):
    """Formats a camera can deliver."""

    GRAY8 = "gray8"
    BGRA8 = "bgra8"
    MJPEG = "mjpeg"


class SensorKind(Enum):
    """Which kind of sensor produced a frame."""

    RGB = "rgb"
    IR = "ir"


class TimestampSource(Enum):
    """Where a frame's camera timestamp came from."""

    UNKNOWN = "unknown"
    CAMERA = "camera"


@dataclass(frozen=True)
class FrameTimestamp:
    """Capture timing of a frame; ``received_at`` is a monotonic time in seconds."""

    camera_monotonic_us: Optional[int]
    source: TimestampSource
    received_at: float


@dataclass(frozen=True)
class FrameMeta:
    """Identity, size and timing of a frame."""

    id: int
    sensor: SensorKind
    size: Size
    timestamp: FrameTimestamp
    sequence: Optional[int] = None


@dataclass(frozen=True)
class OpenedCameraInfo:
    """Description of an opened camera stream."""

    id: str
    sensor: SensorKind
    format: CaptureFormat
    size: Size


def row_bytes(format: PixelFormat, width: int) -> int:
    """Number of bytes holding one row of ``width`` pixels."""
    if width < 0:
        raise ValueError(f"frame width must not be negative, got {width}")
    return width * format.channels


@dataclass(frozen=True, eq=False)
class Frame:
    """A view of pixel storage; mirroring changes only how the storage is read."""

    meta: FrameMeta
    format: PixelFormat
    stride: int
    data: Any
    horizontally_mirrored: bool = False
    vertically_mirrored: bool = False

    def __post_init__(self) -> None:
        width = self.meta.size.width
        height = self.meta.size.height
        row = row_bytes(self.format, width)
        if self.stride < row:
            raise ValueError(
                f"frame stride {self.stride} is smaller than row size {row}"
            )
        needed = self.stride * (height - 1) + row if height > 0 else 0
        available = memoryview(self.data).nbytes
        if available < needed:
            raise ValueError(
                f"frame buffer holds {available} bytes, {needed} required"
            )

    def view(self) -> np.ndarray:
        """Read-only (height, width, channels) array over the frame's storage."""
        width = self.meta.size.width
        height = self.meta.size.height
        channels = self.format.channels
        raw = np.frombuffer(self.data, dtype=np.uint8)
        pixels = as_strided(
            raw,
            shape=(height, width, channels),
            strides=(self.stride, channels, 1),
            writeable=False,
        )
        if self.horizontally_mirrored:
            pixels = pixels[:, ::-1, :]
        if self.vertically_mirrored:
            pixels = pixels[::-1, :, :]
        return pixels

    def mirrored(self, horizontal: bool, vertical: bool) -> Frame:
        """Return the same storage read mirrored along the requested axes."""
        return dataclasses.replace(
            self,
            horizontally_mirrored=self.horizontally_mirrored ^ bool(horizontal),
            vertically_mirrored=self.vertically_mirrored ^ bool(vertical),
        )


class MirroredFrameSource:
    """Frame source that mirrors every frame of another source."""

    def __init__(self, source: Any, horizontal: bool, vertical: bool) -> None:
        self._source = source
        self._horizontal = horizontal
        self._vertical = vertical

    @classmethod
    def both(cls, source: Any) -> MirroredFrameSource:
        return cls(source, True, True)

    @classmethod
    def horizontal(cls, source: Any) -> MirroredFrameSource:
        return cls(source, True, False)

    @classmethod
    def vertical(cls, source: Any) -> MirroredFrameSource:
        return cls(source, False, True)

    def info(self) -> OpenedCameraInfo:
        return self._source.info()

    def next_frame(self) -> Optional[Frame]:
        frame = self._source.next_frame()
        if frame is None:
            return None
        return frame.mirrored(self._horizontal, self._vertical)