"""
Exceptions raised by the media pipeline.

Routes translate these into HTTP responses; the core never knows about
status codes.
"""


class MediaError(Exception):
    """Base class for all media pipeline errors."""
    pass


class VideoNotFoundError(MediaError):
    """Raised when a requested video record doesn't exist."""
    pass


class NotVideoOwnerError(MediaError):
    """Raised when the caller is authenticated but doesn't own the video."""
    pass


class UnsupportedMediaTypeError(MediaError):
    """Raised when the declared content type is missing, malformed or not allowed."""
    pass


class UploadTooLargeError(MediaError):
    """Raised when an upload exceeds the configured size limit."""
    pass


class StagingError(MediaError):
    """Raised when the upload can't be written to local temporary storage."""
    pass


class VideoProcessingError(MediaError):
    """Raised when ffmpeg/ffprobe fail or produce unusable output."""
    pass


class StorageError(MediaError):
    """Raised when object storage operations fail."""
    pass


class RecordStoreError(MediaError):
    """Raised when reading or writing a video record fails."""
    pass


class InvalidStorageReferenceError(MediaError):
    """Raised when a stored video reference is not a well-formed "bucket,key"."""
    pass
