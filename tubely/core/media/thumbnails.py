"""
Thumbnail uploads.

The simpler sibling of the video pipeline: no processing and no object
storage. The image is written to the local assets directory and the
record points at its public URL.
"""

import asyncio
import logging
from typing import BinaryIO, Optional, Protocol
from uuid import UUID

from .content_types import (
    THUMBNAIL_MEDIA_TYPES,
    extension_for,
    random_asset_name,
    require_media_type,
)
from .errors import MediaError, RecordStoreError
from .models import Video
from .uploads import (
    PRESIGNED_URL_EXPIRY_SECONDS,
    ObjectStore,
    VideoRecordStore,
    load_owned_video,
    sign_video,
)

logger = logging.getLogger(__name__)

MAX_THUMBNAIL_UPLOAD_BYTES = 10 << 20


class AssetStore(Protocol):
    """Keyed store for publicly served assets."""

    def save(self, name: str, source: BinaryIO, limit: int) -> int:
        """Write source under name. Returns bytes written."""
        ...

    def url_for(self, name: str) -> str:
        ...


class ThumbnailService:
    """Stores a thumbnail image and links it from the video record."""

    def __init__(
        self,
        records: VideoRecordStore,
        assets: AssetStore,
        storage: ObjectStore,
        max_upload_bytes: int = MAX_THUMBNAIL_UPLOAD_BYTES,
        presign_expiry_seconds: int = PRESIGNED_URL_EXPIRY_SECONDS,
    ) -> None:
        self._records = records
        self._assets = assets
        self._storage = storage
        self._max_upload_bytes = max_upload_bytes
        self._presign_expiry_seconds = presign_expiry_seconds

    async def upload_thumbnail(
        self,
        user_id: UUID,
        video_id: UUID,
        source: BinaryIO,
        content_type: Optional[str],
    ) -> Video:
        video = load_owned_video(self._records, video_id, user_id)
        media_type = require_media_type(content_type, THUMBNAIL_MEDIA_TYPES)
        name = random_asset_name(extension_for(media_type))

        size = await asyncio.to_thread(
            self._assets.save, name, source, self._max_upload_bytes
        )

        video.thumbnail_url = self._assets.url_for(name)
        video.touch()
        try:
            self._records.update_video(video)
        except MediaError:
            raise
        except Exception as e:
            raise RecordStoreError(f"Error storing video metadata: {e}") from e

        logger.info(
            "Thumbnail stored",
            extra={"video_id": str(video_id), "asset_name": name, "size_bytes": size}
        )

        # the video reference may already exist, so the response is signed too
        return await sign_video(video, self._storage, self._presign_expiry_seconds)
