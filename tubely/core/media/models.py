"""
Domain models for uploaded videos.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or object storage clients.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from .errors import InvalidStorageReferenceError


class Orientation(Enum):
    """
    Coarse screen orientation of a video.

    The value doubles as the first segment of the object key, so videos
    end up partitioned by orientation in the bucket.
    """
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


@dataclass(frozen=True)
class StreamGeometry:
    """Width and height of a single probed stream."""
    width: int
    height: int


@dataclass(frozen=True)
class StorageReference:
    """
    Where a video lives in object storage.

    Persisted on the video record as "bucket,key" rather than as a URL,
    so a fresh presigned URL can be issued on every read.
    """
    bucket: str
    key: str

    def __post_init__(self) -> None:
        if not self.bucket or not self.key:
            raise InvalidStorageReferenceError("Bucket and key cannot be empty")
        if "," in self.bucket or "," in self.key:
            raise InvalidStorageReferenceError("Bucket and key cannot contain commas")

    @classmethod
    def parse(cls, value: str) -> "StorageReference":
        """Split a stored "bucket,key" value. Anything else is corrupt."""
        parts = value.split(",")
        if len(parts) != 2:
            raise InvalidStorageReferenceError(
                f"Invalid video URL format; expected 'bucket,key', got {len(parts)} part(s)"
            )
        return cls(bucket=parts[0], key=parts[1])

    def __str__(self) -> str:
        return f"{self.bucket},{self.key}"


@dataclass
class Video:
    """
    A video record.

    user_id is fixed at creation; the repository never writes it on update.
    video_url holds the storage reference, thumbnail_url a plain URL.
    """
    user_id: UUID
    id: UUID = field(default_factory=uuid4)
    title: str = ""
    description: str = ""
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    @property
    def storage_reference(self) -> Optional[StorageReference]:
        """Parsed video_url, or None if nothing has been uploaded yet."""
        if self.video_url is None:
            return None
        return StorageReference.parse(self.video_url)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
