"""
Video media logic: records, orientation, and the upload pipeline.
"""

from .models import Orientation, StorageReference, StreamGeometry, Video
from .orientation import classify_aspect_ratio, classify_geometry
from .thumbnails import ThumbnailService
from .uploads import VideoUploadService, sign_video

__all__ = [
    "Orientation",
    "StorageReference",
    "StreamGeometry",
    "Video",
    "classify_aspect_ratio",
    "classify_geometry",
    "ThumbnailService",
    "VideoUploadService",
    "sign_video",
]
