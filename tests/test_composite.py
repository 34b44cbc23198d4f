import numpy as np
import pytest

from tron.composite import CompositeFrame, LatestCompositeFrame, blend_ir
from tron.frame import (
    Frame,
    FrameMeta,
    FrameTimestamp,
    PixelFormat,
    SensorKind,
    TimestampSource,
)
from tron.geometry import Size


def _frame(data, width, height, format, frame_id=1):
    meta = FrameMeta(
        id=frame_id,
        sensor=SensorKind.RGB,
        size=Size(width, height),
        timestamp=FrameTimestamp(None, TimestampSource.UNKNOWN, 0.0),
    )
    return Frame(meta, format, width * format.channels, bytes(data))


def test_blend_with_full_alpha_takes_ir():
    out = blend_ir(np.array([0, 0, 0, 0], dtype=np.uint8), np.uint8(100), 1.0)
    assert out.tolist() == [100, 100, 100, 255]


def test_blend_with_zero_alpha_keeps_rgb():
    out = blend_ir(np.array([10, 20, 30, 0], dtype=np.uint8), np.uint8(200), 0.0)
    assert out.tolist() == [10, 20, 30, 255]


def test_update_blends_between_inputs_and_sets_alpha():
    rgb = _frame([0, 50, 100, 150, 200, 250], 3, 2, PixelFormat.GRAY8, frame_id=9)
    ir = _frame([255, 200, 150, 100, 50, 0], 3, 2, PixelFormat.GRAY8)
    composite = CompositeFrame()
    composite.update(rgb, ir)
    assert composite.id() == 9
    frame = composite.frame()
    assert frame.format is PixelFormat.BGRA8
    assert frame.meta.size == Size(3, 2)
    pixels = frame.view()
    assert (pixels[:, :, 3] == 255).all()
    rgb_values = rgb.view()[:, :, 0].astype(int)
    ir_values = ir.view()[:, :, 0].astype(int)
    low = np.minimum(rgb_values, ir_values)
    high = np.maximum(rgb_values, ir_values)
    for channel in range(3):
        values = pixels[:, :, channel].astype(int)
        assert (values >= low - 1).all()
        assert (values <= high).all()


def test_gray_and_bgra_inputs_give_same_composite():
    gray_rgb = _frame([60, 120], 2, 1, PixelFormat.GRAY8)
    bgra_rgb = _frame([60, 60, 60, 7, 120, 120, 120, 9], 2, 1, PixelFormat.BGRA8)
    gray_ir = _frame([30, 90], 2, 1, PixelFormat.GRAY8)
    bgra_ir = _frame([30, 30, 30, 0, 90, 90, 90, 0], 2, 1, PixelFormat.BGRA8)
    first = CompositeFrame()
    first.update(gray_rgb, gray_ir)
    second = CompositeFrame()
    second.update(bgra_rgb, bgra_ir)
    assert first.frame().view().tolist() == second.frame().view().tolist()


def test_update_rejects_size_mismatch():
    rgb = _frame([0] * 4, 2, 2, PixelFormat.GRAY8)
    ir = _frame([0] * 6, 3, 2, PixelFormat.GRAY8)
    with pytest.raises(ValueError):
        CompositeFrame().update(rgb, ir)


def test_uninitialized_composite():
    composite = CompositeFrame()
    assert composite.id() is None
    with pytest.raises(RuntimeError):
        composite.frame()


def test_latest_holds_published_frame():
    latest = LatestCompositeFrame()
    assert latest.latest() is None
    composite = CompositeFrame()
    composite.update(
        _frame([1], 1, 1, PixelFormat.GRAY8, frame_id=4),
        _frame([2], 1, 1, PixelFormat.GRAY8),
    )
    spare = latest.set_frame(composite)
    assert latest.latest() is composite
    assert latest.latest().id() == 4
    assert spare.id() is None


def test_latest_error_is_taken_once():
    latest = LatestCompositeFrame()
    assert latest.take_error() is None
    error = ValueError("stream failed")
    latest.set_error(error)
    assert latest.take_error() is error
    assert latest.take_error() is None