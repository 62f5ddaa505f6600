"""
Video processing infrastructure.

Handles server-side video processing using FFmpeg:
- Fast-start remuxing (stream copy, no re-encode)
- Stream geometry probing for orientation classification
"""

from .processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    create_video_processor,
)

__all__ = [
    "FFmpegVideoProcessor",
    "MockVideoProcessor",
    "create_video_processor",
]
