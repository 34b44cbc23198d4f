"""Frame source that drops frames arriving faster than a maximum rate."""

from __future__ import annotations

import math
from typing import Any, Optional

from tron.frame import Frame, OpenedCameraInfo


class FpsThrottledFrameSource:
    """Passes on at most ``max_fps`` frames per second of camera time.

    Frames without a camera timestamp are dropped, because their spacing
    cannot be judged.
    """

    def __init__(self, source: Any, max_fps: float) -> None:
        if not (math.isfinite(max_fps) and max_fps > 0.0):
            raise ValueError("FPS throttle must be a positive finite value")
        self._source = source
        self._min_interval_us = round(1_000_000_000 / max_fps) // 1000
        self._last_emitted_us: Optional[int] = None

    @property
    def min_interval_us(self) -> int:
        """Smallest camera-time gap, in microseconds, between emitted frames."""
        return self._min_interval_us

    def info(self) -> OpenedCameraInfo:
        return self._source.info()

    def next_frame(self) -> Optional[Frame]:
        frame = self._source.next_frame()
        if frame is None:
            return None
        current_us = frame.meta.timestamp.camera_monotonic_us
        if current_us is None:
            return None
        if self._last_emitted_us is None:
            self._last_emitted_us = current_us
            return frame
        if current_us - self._last_emitted_us < self._min_interval_us:
            return None
        self._last_emitted_us = current_us
        return frame

    def into_inner(self) -> Any:
        """Return the wrapped source."""
        return self._source