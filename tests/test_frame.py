import time

import numpy as np
import pytest

from tron.frame import (
    CaptureFormat,
    Frame,
    FrameMeta,
    FrameTimestamp,
    MirroredFrameSource,
    OpenedCameraInfo,
    PixelFormat,
    SensorKind,
    TimestampSource,
    row_bytes,
)
from tron.geometry import Size


def make_frame(data, width, height, format):
    stride = row_bytes(format, width)
    return Frame(
        FrameMeta(
            id=1,
            sensor=SensorKind.IR,
            size=Size(width, height),
            timestamp=FrameTimestamp(None, TimestampSource.UNKNOWN, time.monotonic()),
            sequence=None,
        ),
        format,
        stride,
        data,
    )


def test_mirrors_gray8_horizontally_without_copying():
    data = bytearray([1, 2, 3, 4, 5, 6])
    frame = make_frame(data, 3, 2, PixelFormat.GRAY8).mirrored(True, False)

    assert frame.data is data
    assert np.shares_memory(frame.view(), np.frombuffer(data, dtype=np.uint8))
    assert frame.view()[0, 0, 0] == 3
    assert frame.view()[0, 2, 0] == 1
    assert frame.view()[1, 2, 0] == 4


def test_mirrors_bgra8_horizontally_without_copying():
    data = bytearray([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 16])
    frame = make_frame(data, 2, 2, PixelFormat.BGRA8).mirrored(True, False)
    view = frame.view()

    assert frame.data is data
    assert np.shares_memory(view, np.frombuffer(data, dtype=np.uint8))
    assert view[0, 0, 0] == 5
    assert view[0, 1, 0] == 1
    assert view[1, 0, 2] == 15


def test_mirrors_gray8_vertically():
    data = bytearray([1, 2, 3, 4, 5, 6])
    view = make_frame(data, 3, 2, PixelFormat.GRAY8).mirrored(False, True).view()
    assert view[0, 0, 0] == 4
    assert view[1, 0, 0] == 1


def test_mirroring_twice_restores_original():
    data = bytearray([1, 2, 3, 4, 5, 6])
    frame = make_frame(data, 3, 2, PixelFormat.GRAY8)
    restored = frame.mirrored(True, True).mirrored(True, True)
    assert not restored.horizontally_mirrored
    assert not restored.vertically_mirrored
    assert np.array_equal(restored.view(), frame.view())


def test_view_respects_stride_padding():
    data = bytearray([1, 2, 0, 3, 4, 0])
    frame = Frame(
        make_frame(bytearray(4), 2, 2, PixelFormat.GRAY8).meta,
        PixelFormat.GRAY8,
        3,
        data,
    )
    assert frame.view()[:, :, 0].tolist() == [[1, 2], [3, 4]]


def test_row_bytes():
    assert row_bytes(PixelFormat.GRAY8, 3) == 3
    assert row_bytes(PixelFormat.BGRA8, 2) == 8
    with pytest.raises(ValueError):
        row_bytes(PixelFormat.GRAY8, -1)


def test_rejects_short_buffer():
    with pytest.raises(ValueError):
        make_frame(bytearray([1, 2, 3]), 3, 2, PixelFormat.GRAY8)


def test_rejects_small_stride():
    meta = make_frame(bytearray(6), 3, 2, PixelFormat.GRAY8).meta
    with pytest.raises(ValueError):
        Frame(meta, PixelFormat.GRAY8, 2, bytearray(6))


class ListSource:
    def __init__(self, frames):
        self._frames = list(frames)
        self._info = OpenedCameraInfo("test", SensorKind.IR, CaptureFormat.GRAY8, Size(3, 2))

    def info(self):
        return self._info

    def next_frame(self):
        return self._frames.pop(0) if self._frames else None


def test_mirrored_source_mirrors_frames():
    data = bytearray([1, 2, 3, 4, 5, 6])
    inner = ListSource([make_frame(data, 3, 2, PixelFormat.GRAY8)])
    source = MirroredFrameSource.horizontal(inner)
    frame = source.next_frame()
    assert frame.horizontally_mirrored
    assert not frame.vertically_mirrored
    assert frame.view()[0, 0, 0] == 3
    assert source.next_frame() is None


def test_mirrored_source_both_and_vertical():
    data = bytearray([1, 2, 3, 4, 5, 6])
    both = MirroredFrameSource.both(ListSource([make_frame(data, 3, 2, PixelFormat.GRAY8)]))
    assert both.next_frame().view()[0, 0, 0] == 6
    vertical = MirroredFrameSource.vertical(
        ListSource([make_frame(data, 3, 2, PixelFormat.GRAY8)])
    )
    assert vertical.next_frame().view()[0, 0, 0] == 4


def test_mirrored_source_forwards_info():
    inner = ListSource([])
    source = MirroredFrameSource.both(inner)
    assert source.info() is inner.info()