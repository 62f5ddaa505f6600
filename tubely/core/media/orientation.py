"""
Orientation classification from stream geometry.

Pure functions only. The ffprobe call that produces the geometry lives in
the video processor; this module just does the arithmetic.
"""

import json
from typing import Any

from .errors import VideoProcessingError
from .models import Orientation, StreamGeometry

# Absolute, not relative. 16:9 and 9:16 are the only ratios we bucket.
ASPECT_RATIO_TOLERANCE = 0.05
LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16

# keeps ratio == target ± tolerance inside despite float rounding
_EPSILON = 1e-12


def approx_equal(a: float, b: float, tolerance: float = ASPECT_RATIO_TOLERANCE) -> bool:
    """True if a is within tolerance of b, boundary inclusive."""
    return abs(a - b) <= tolerance + _EPSILON


def classify_aspect_ratio(ratio: float) -> Orientation:
    """Map a width/height ratio onto an orientation."""
    if approx_equal(ratio, LANDSCAPE_RATIO):
        return Orientation.LANDSCAPE
    if approx_equal(ratio, PORTRAIT_RATIO):
        return Orientation.PORTRAIT
    return Orientation.OTHER


def classify_geometry(streams: list[StreamGeometry]) -> Orientation:
    """
    Classify a probed file by its first stream.

    Additional streams are ignored. Missing or zero-sized geometry is an
    error rather than OTHER: we'd rather fail the upload than file a broken
    video under the wrong prefix.
    """
    if not streams:
        raise VideoProcessingError("No streams found in video")

    first = streams[0]
    if first.width == 0 or first.height == 0:
        raise VideoProcessingError(
            f"Invalid width or height: {first.width}x{first.height}"
        )

    return classify_aspect_ratio(first.width / first.height)


def parse_probe_output(raw: str) -> list[StreamGeometry]:
    """
    Parse `ffprobe -print_format json -show_streams` output.

    Streams without width/height (audio, data) come back as 0x0, the same
    way a zero value would.
    """
    try:
        info: Any = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise VideoProcessingError(f"Failed to parse ffprobe output: {e}") from e

    if not isinstance(info, dict):
        raise VideoProcessingError("Failed to parse ffprobe output: expected an object")

    streams = info.get("streams") or []
    if not isinstance(streams, list):
        raise VideoProcessingError("Failed to parse ffprobe output: streams is not a list")

    return [
        StreamGeometry(width=_dimension(stream, "width"), height=_dimension(stream, "height"))
        for stream in streams
    ]


def _dimension(stream: Any, name: str) -> int:
    """A JSON integer, or 0 if absent. Floats and booleans are rejected."""
    if not isinstance(stream, dict):
        raise VideoProcessingError("Failed to parse ffprobe stream: expected an object")
    value = stream.get(name, 0)
    if not isinstance(value, int) or isinstance(value, bool):
        raise VideoProcessingError(f"Failed to parse ffprobe stream: {name} is {value!r}")
    return value
