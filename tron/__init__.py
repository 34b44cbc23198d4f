"""Frame transforms, hand ROI tracking, landmark-model helpers and RGB/IR calibration utilities."""

__version__ = "0.1.0"