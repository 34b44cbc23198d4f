"""Helpers for locating the camera device nodes."""

from __future__ import annotations

import re
from typing import Optional

_VIDEO_PREFIX = "/dev/video"
_NUMBER = re.compile(r"\+?[0-9]+")
_U32_MAX = 0xFFFF_FFFF


def infer_metadata_node(video_node: str) -> Optional[str]:
    """Return the metadata node that follows ``/dev/videoN``, or None."""
    if not video_node.startswith(_VIDEO_PREFIX):
        return None
    suffix = video_node[len(_VIDEO_PREFIX):]
    if not _NUMBER.fullmatch(suffix):
        return None
    number = int(suffix)
    if number >= _U32_MAX:
        return None
    return f"{_VIDEO_PREFIX}{number + 1}"