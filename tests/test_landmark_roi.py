import math

import pytest

from tron.geometry import OrientedBoundingBox, Rect, RoiResult, Size
from tron.landmark_roi import (
    ROI_MOTION_LANDMARKS,
    HandLandmarkMotion,
    HandLandmarkVelocity,
    LandmarkRoiInput,
    LandmarkRoiProcessor,
    LandmarkTrackingRoiProcessor,
    LandmarkVelocityRoiInput,
    LandmarkVelocityRoiProcessor,
    average_landmark_displacement,
    translate_roi,
)

FRAME = Size(200, 200)


def roi():
    return RoiResult(
        Rect(10, 20, Size(50, 60)),
        OrientedBoundingBox(((10.0, 20.0), (60.0, 20.0), (60.0, 80.0), (10.0, 80.0))),
    )


def motion_with(velocity, dt_secs):
    velocities = [HandLandmarkVelocity() for _ in range(21)]
    for index in ROI_MOTION_LANDMARKS:
        velocities[index] = velocity
    return HandLandmarkMotion(None, velocities, dt_secs, 0.0)


class StubLandmarks:
    def __init__(self, result):
        self.result = result
        self.sizes = []

    def bounding_roi(self, frame_size):
        self.sizes.append(("bounding", frame_size))
        return self.result

    def tracking_roi(self, frame_size):
        self.sizes.append(("tracking", frame_size))
        return self.result


def test_velocity_roi_moves_rect_and_oriented_box():
    processor = LandmarkVelocityRoiProcessor()
    motion = motion_with(HandLandmarkVelocity(30.0, -20.0, 0.0), 0.1)
    output = processor.process(LandmarkVelocityRoiInput(roi(), motion, FRAME))
    assert output.rect.x == 13
    assert output.rect.y == 18
    expected = [(13.0, 18.0), (63.0, 18.0), (63.0, 78.0), (13.0, 78.0)]
    for corner, want in zip(output.oriented_box.corners, expected):
        assert corner == pytest.approx(want)


def test_velocity_roi_ignores_fingertip_only_motion():
    processor = LandmarkVelocityRoiProcessor()
    motion = motion_with(HandLandmarkVelocity(), 0.1)
    motion.velocities[4] = HandLandmarkVelocity(1000.0, 1000.0, 0.0)
    output = processor.process(LandmarkVelocityRoiInput(roi(), motion, FRAME))
    assert output.rect == roi().rect


def test_velocity_roi_without_roi_is_none():
    motion = motion_with(HandLandmarkVelocity(30.0, 0.0), 0.1)
    assert LandmarkVelocityRoiProcessor().process(
        LandmarkVelocityRoiInput(None, motion, FRAME)
    ) is None


def test_velocity_roi_without_motion_keeps_roi():
    output = LandmarkVelocityRoiProcessor().process(LandmarkVelocityRoiInput(roi(), None, FRAME))
    assert output == roi()


@pytest.mark.parametrize("dt", [0.0, -0.1, math.nan, math.inf])
def test_invalid_interval_keeps_roi(dt):
    motion = motion_with(HandLandmarkVelocity(30.0, 30.0), dt)
    assert average_landmark_displacement(motion, 1.0) is None
    output = LandmarkVelocityRoiProcessor().process(LandmarkVelocityRoiInput(roi(), motion, FRAME))
    assert output == roi()


def test_non_finite_scale_gives_no_displacement():
    motion = motion_with(HandLandmarkVelocity(30.0, 30.0), 0.1)
    assert average_landmark_displacement(motion, math.nan) is None


def test_displacement_skips_non_finite_velocities():
    motion = motion_with(HandLandmarkVelocity(10.0, -4.0), 1.0)
    motion.velocities[0] = HandLandmarkVelocity(math.nan, 0.0)
    motion.velocities[5] = HandLandmarkVelocity(0.0, math.inf)
    assert average_landmark_displacement(motion, 1.0) == pytest.approx((10.0, -4.0))


def test_all_non_finite_velocities_give_none():
    motion = motion_with(HandLandmarkVelocity(math.nan, math.nan), 1.0)
    assert average_landmark_displacement(motion, 1.0) is None


def test_translate_roi_keeps_rect_in_frame():
    moved = translate_roi(RoiResult(Rect(10, 20, Size(50, 60))), 180.0, -100.0, FRAME)
    assert moved.rect == Rect(190, 0, Size(10, 60))
    assert moved.oriented_box is None


def test_landmark_roi_processor_uses_bounding_roi():
    expected = RoiResult(Rect(1, 2, Size(3, 4)))
    landmarks = StubLandmarks(expected)
    result = LandmarkRoiProcessor().process(LandmarkRoiInput(landmarks, FRAME))
    assert result == expected
    assert landmarks.sizes == [("bounding", FRAME)]
    assert LandmarkRoiProcessor().process(LandmarkRoiInput(None, FRAME)) is None


def test_tracking_roi_processor_uses_tracking_roi():
    expected = RoiResult(Rect(5, 6, Size(7, 8)))
    landmarks = StubLandmarks(expected)
    result = LandmarkTrackingRoiProcessor().process(LandmarkRoiInput(landmarks, FRAME))
    assert result == expected
    assert landmarks.sizes == [("tracking", FRAME)]
    assert LandmarkTrackingRoiProcessor().process(LandmarkRoiInput(None, FRAME)) is None