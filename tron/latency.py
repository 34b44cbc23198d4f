"""Per-second latency statistics for the calibration view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from tron.frame import Frame

logger = logging.getLogger("calibration.latency")


@dataclass
class DurationStats:
    """Count, total and maximum of durations given in seconds."""

    count: int = 0
    total: float = 0.0
    max: float = 0.0

    def record(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.max = max(self.max, value)

    def average(self) -> float:
        return 0.0 if self.count == 0 else self.total / self.count

    def __str__(self) -> str:
        return f"avg={self.average() * 1000.0:.2f}ms max={self.max * 1000.0:.2f}ms"


@dataclass(frozen=True)
class CalibrationLatencySample:
    """Timings of one rendered frame pair; durations and instants in seconds."""

    latest: float
    rgb_detect: float
    ir_detect: float
    render: float
    total: float
    finished_at: float
    rgb: Optional[Frame] = None
    ir: Optional[Frame] = None
    rgb_detected: bool = False
    ir_detected: bool = False


@dataclass
class CalibrationLatencyLog:
    """Collects samples and reports a summary once at least a second has passed."""

    window_start: Optional[float] = None
    frames: int = 0
    latest: DurationStats = field(default_factory=DurationStats)
    rgb_detect: DurationStats = field(default_factory=DurationStats)
    ir_detect: DurationStats = field(default_factory=DurationStats)
    render: DurationStats = field(default_factory=DurationStats)
    total: DurationStats = field(default_factory=DurationStats)
    rgb_age: DurationStats = field(default_factory=DurationStats)
    ir_age: DurationStats = field(default_factory=DurationStats)
    rgb_detected: int = 0
    ir_detected: int = 0

    def record(self, sample: CalibrationLatencySample) -> Optional[str]:
        """Add a sample; return (and log) the summary when a window closes."""
        if self.window_start is None:
            self.window_start = sample.finished_at
        window_start = self.window_start
        self.frames += 1
        self.latest.record(sample.latest)
        self.rgb_detect.record(sample.rgb_detect)
        self.ir_detect.record(sample.ir_detect)
        self.render.record(sample.render)
        self.total.record(sample.total)
        if sample.rgb_detected:
            self.rgb_detected += 1
        if sample.ir_detected:
            self.ir_detected += 1
        if sample.rgb is not None:
            self.rgb_age.record(
                max(sample.finished_at - sample.rgb.meta.timestamp.received_at, 0.0)
            )
        if sample.ir is not None:
            self.ir_age.record(
                max(sample.finished_at - sample.ir.meta.timestamp.received_at, 0.0)
            )

        elapsed = max(sample.finished_at - window_start, 0.0)
        if elapsed < 1.0:
            return None

        fps = self.frames / max(elapsed, 0.001)
        message = (
            f"fps={fps:.1f} latest={self.latest} rgb_detect={self.rgb_detect} "
            f"ir_detect={self.ir_detect} render={self.render} total={self.total} "
            f"rgb_age={self.rgb_age} ir_age={self.ir_age} "
            f"detections=rgb:{self.rgb_detected}/{self.frames} "
            f"ir:{self.ir_detected}/{self.frames}"
        )
        logger.info(message)
        self._reset(sample.finished_at)
        return message

    def _reset(self, now: float) -> None:
        fresh = CalibrationLatencyLog(window_start=now)
        self.__dict__.update(fresh.__dict__)