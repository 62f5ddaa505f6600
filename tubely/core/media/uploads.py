"""
Video upload pipeline.

Takes a raw upload from the API layer and turns it into a stored,
streamable, access-controlled asset:

1. Check the record exists and belongs to the caller
2. Check the declared content type
3. Stage the upload to a local temporary file
4. Remux it for fast start (moov atom first)
5. Probe the remuxed file to classify orientation
6. Upload it to object storage under {orientation}/{random}.{ext}
7. Save "bucket,key" on the record
8. Return the record with a freshly presigned URL

Steps 3-6 run blocking work (disk, ffmpeg, boto3) in worker threads so
one slow upload doesn't stall the event loop.

This module is framework-agnostic. It doesn't know about HTTP; the route
maps the exceptions in .errors onto status codes.
"""

import asyncio
import dataclasses
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import BinaryIO, Optional, Protocol
from uuid import UUID

from .content_types import (
    VIDEO_MEDIA_TYPES,
    extension_for,
    random_asset_name,
    require_media_type,
)
from .errors import (
    MediaError,
    NotVideoOwnerError,
    RecordStoreError,
    StagingError,
    UploadTooLargeError,
)
from .models import Orientation, StorageReference, Video
from .temp_files import owned_path, temporary_upload_path

logger = logging.getLogger(__name__)

MAX_VIDEO_UPLOAD_BYTES = 1 << 30
PRESIGNED_URL_EXPIRY_SECONDS = 15 * 60
COPY_CHUNK_BYTES = 1 << 20


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class VideoRecordStore(Protocol):
    """Read and write video records. Raises VideoNotFoundError / RecordStoreError."""

    def get_video(self, video_id: UUID) -> Video:
        ...

    def update_video(self, video: Video) -> None:
        ...


class VideoProcessor(Protocol):
    """
    Local file transformations backed by external tools.

    Tests pass a fake here instead of shelling out to ffmpeg.
    """

    async def remux_for_fast_start(self, path: Path) -> Path:
        """Rewrite the container with playback metadata first. Returns the new path."""
        ...

    async def get_video_orientation(self, path: Path) -> Orientation:
        """Probe the file and classify its first stream."""
        ...


class ObjectStore(Protocol):
    """The parts of object storage the pipeline needs."""

    async def upload_file(
        self,
        bucket: str,
        key: str,
        content_type: str,
        body: BinaryIO,
    ) -> None:
        ...

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = PRESIGNED_URL_EXPIRY_SECONDS,
    ) -> str:
        ...


# ---------------------------------------------------------------------------
# Presigned access
# ---------------------------------------------------------------------------

async def sign_video(
    video: Video,
    storage: ObjectStore,
    expiry_seconds: int = PRESIGNED_URL_EXPIRY_SECONDS,
) -> Video:
    """
    Return a copy of the record with video_url swapped for a presigned URL.

    The stored record keeps its "bucket,key" reference; only the returned
    copy carries the signed URL. A record without a video passes through.
    """
    reference = video.storage_reference
    if reference is None:
        return video

    signed_url = await storage.get_presigned_url(
        reference.bucket,
        reference.key,
        expiry_seconds=expiry_seconds,
    )
    return dataclasses.replace(video, video_url=signed_url)


def load_owned_video(records: VideoRecordStore, video_id: UUID, user_id: UUID) -> Video:
    """Fetch a record and check the caller owns it."""
    try:
        video = records.get_video(video_id)
    except MediaError:
        raise
    except Exception as e:
        raise RecordStoreError(f"Could not read video {video_id}: {e}") from e

    if not video.is_owned_by(user_id):
        logger.warning(
            "Rejected access to video owned by another user",
            extra={"video_id": str(video_id), "user_id": str(user_id)}
        )
        raise NotVideoOwnerError(f"User {user_id} does not own video {video_id}")

    return video


def copy_limited(source: BinaryIO, destination: BinaryIO, limit: int) -> int:
    """Copy source into destination, failing once more than `limit` bytes arrive."""
    total = 0
    while True:
        chunk = source.read(COPY_CHUNK_BYTES)
        if not chunk:
            return total
        total += len(chunk)
        if total > limit:
            raise UploadTooLargeError(f"Upload exceeds {limit} bytes")
        destination.write(chunk)


# ---------------------------------------------------------------------------
# Upload Orchestrator
# ---------------------------------------------------------------------------

class VideoUploadService:
    """
    Drives one video upload from raw bytes to a presigned record.

    Temporary files are owned by an ExitStack for the duration of the call
    and removed on every exit path. Nothing is removed from object storage:
    if the record update fails after a successful upload, the object is
    left orphaned and logged.
    """

    def __init__(
        self,
        records: VideoRecordStore,
        processor: VideoProcessor,
        storage: ObjectStore,
        bucket: str,
        temp_dir: Optional[str] = None,
        max_upload_bytes: int = MAX_VIDEO_UPLOAD_BYTES,
        presign_expiry_seconds: int = PRESIGNED_URL_EXPIRY_SECONDS,
    ) -> None:
        self._records = records
        self._processor = processor
        self._storage = storage
        self._bucket = bucket
        self._temp_dir = temp_dir
        self._max_upload_bytes = max_upload_bytes
        self._presign_expiry_seconds = presign_expiry_seconds

    async def upload_video(
        self,
        user_id: UUID,
        video_id: UUID,
        source: BinaryIO,
        content_type: Optional[str],
    ) -> Video:
        video = load_owned_video(self._records, video_id, user_id)
        media_type = require_media_type(content_type, VIDEO_MEDIA_TYPES)
        file_name = random_asset_name(extension_for(media_type))

        logger.info(
            "Video upload started",
            extra={
                "video_id": str(video_id),
                "user_id": str(user_id),
                "content_type": media_type,
            }
        )

        with ExitStack() as cleanup:
            staged_path = cleanup.enter_context(
                temporary_upload_path(directory=self._temp_dir)
            )
            size = await asyncio.to_thread(self._stage, source, staged_path)

            remuxed_path = cleanup.enter_context(
                owned_path(await self._processor.remux_for_fast_start(staged_path))
            )
            orientation = await self._processor.get_video_orientation(remuxed_path)
            key = f"{orientation.value}/{file_name}"
            # validated before anything is written remotely
            reference = StorageReference(bucket=self._bucket, key=key)

            with remuxed_path.open("rb") as body:
                await self._storage.upload_file(self._bucket, key, media_type, body)

        logger.info(
            "Video stored",
            extra={
                "video_id": str(video_id),
                "reference": str(reference),
                "orientation": orientation.value,
                "size_bytes": size,
            }
        )

        video.video_url = str(reference)
        video.touch()
        self._save(video, reference)

        return await sign_video(video, self._storage, self._presign_expiry_seconds)

    def _stage(self, source: BinaryIO, path: Path) -> int:
        try:
            with path.open("wb") as staged:
                return copy_limited(source, staged, self._max_upload_bytes)
        except UploadTooLargeError:
            raise
        except OSError as e:
            raise StagingError(f"Error copying upload to {path}: {e}") from e

    def _save(self, video: Video, reference: StorageReference) -> None:
        try:
            self._records.update_video(video)
        except Exception as e:
            logger.error(
                "Video metadata update failed; uploaded object is orphaned",
                extra={
                    "video_id": str(video.id),
                    "bucket": reference.bucket,
                    "key": reference.key,
                    "error": str(e),
                }
            )
            if isinstance(e, MediaError):
                raise
            raise RecordStoreError(f"Error updating video metadata: {e}") from e
