# tron

Building blocks for an RGB + infrared camera pipeline: frame views and
transforms, hand region-of-interest tracking, MediaPipe-style pre- and
post-processing of hand-landmark models, and RGB/IR calibration helpers.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

- `tron.geometry`: `Size`, `Rect` (with `clamp_to`), `RoiCandidate`,
  `OrientedBoundingBox` (with `enclosing_rect` and `translated`),
  `RoiResult`, and `clamp_rect`.
- `tron.frame`: `Frame`, `FrameMeta`, `FrameTimestamp`, `PixelFormat`,
  `CaptureFormat`, `SensorKind`, `TimestampSource`, `OpenedCameraInfo`
  and `row_bytes`. A `Frame` exposes a read-only
  `(height, width, channels)` array through `view()`, and `mirrored()`
  flips it without copying the storage. `MirroredFrameSource` wraps
  another source and mirrors every frame it yields (`both`, `horizontal`,
  `vertical`).
- `tron.fps_throttle`: `FpsThrottledFrameSource` drops frames by camera
  timestamp so that no more than `max_fps` get through; frames without a
  camera timestamp are dropped.
- `tron.projection`: `FrameProjectionMap`, `project_frame` and
  `ProjectedFrameSource`, which remap frames through a per-pixel lookup
  map into Gray8 frames of another size.
- `tron.blob_roi`: `BlobRoiDetector` thresholds a Gray8 frame and returns
  padded bounding boxes of its 8-connected bright blobs; `padded_rect`.
- `tron.hand_roi`: `HandRoiTracker` picks the best blob each frame, using
  motion pixels, overlap with the previous pick and blob size;
  `motion_overlap`, `rect_iou`, `center_distance`.
- `tron.camera_roi`: `CameraRoiFollowProcessor` maps an ROI from one
  frame size to another and widens it to a minimum edge inside allowed
  bounds; `map_rect`, `expand_to_min_edge`.
- `tron.landmark_roi`: `LandmarkRoiProcessor`,
  `LandmarkTrackingRoiProcessor` and `LandmarkVelocityRoiProcessor`,
  which derive or move an ROI from hand landmarks and their velocities.
- `tron.hand_landmarks`: `HandLandmarks` with `bounding_roi` and
  `tracking_roi`, `decode_landmarks` for raw landmark-model output,
  `crop_from_roi`, `normalize_radians`, and `classify_outputs`, which
  picks the landmark, presence and handedness outputs from
  `(name, shape)` pairs.
- `tron.mediapipe_common`: `Affine2`, `ModelInputLayout`,
  `ModelInputSpec`, `model_input_spec`, the affine maps
  `letterbox_inverse_affine` and `crop_inverse_affine`, the bilinear
  `warp_affine_inverse`, `preprocess_bgra` and `bgra_to_tensor` to build
  model input tensors, and debug drawing (`draw_line`, `draw_cross`,
  `write_rgb_ppm`, `dump_landmark_overlay`). `dump_landmark_overlay`
  writes a PPM only when the `TRON_MEDIAPIPE_DUMP_DIR` environment
  variable is set.
- `tron.composite`: `CompositeFrame` blends an IR frame over an RGB frame
  of the same size to check a calibration by eye; `LatestCompositeFrame`
  is a thread-safe slot for the newest composite and a producer error;
  `blend_ir`.
- `tron.latency`: `CalibrationLatencyLog` gathers per-stage timings and,
  once a window of at least a second has passed, logs a summary to the
  `calibration.latency` logger and returns it.
- `tron.sink`: `ComboSink` passes one value on to every added sink.
- `tron.capture`: `infer_metadata_node` returns the `/dev/videoN+1`
  metadata node that follows a `/dev/videoN` node.

## Example

```python
import time

from tron.frame import Frame, FrameMeta, FrameTimestamp, PixelFormat, SensorKind, TimestampSource
from tron.geometry import Size

meta = FrameMeta(
    id=1,
    sensor=SensorKind.IR,
    size=Size(3, 2),
    timestamp=FrameTimestamp(None, TimestampSource.UNKNOWN, time.monotonic()),
)
frame = Frame(meta, PixelFormat.GRAY8, 3, bytes([1, 2, 3, 4, 5, 6]))
print(frame.mirrored(True, False).view()[:, :, 0])
# [[3 2 1]
#  [6 5 4]]
```

## What it does not do

- It opens no cameras and reads no serial devices; frame sources are any
  objects with `info()` and `next_frame()` that you supply.
- It runs no neural-network models. It prepares input tensors and decodes
  hand-landmark outputs, but palm-detector output decoding is not
  included, and inference is left to you.
- It has no window, renderer or command-line program; the calibration
  helpers produce frames and statistics for you to display.