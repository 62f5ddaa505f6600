"""
Video API endpoints.

Records are created empty, then filled in by the two upload endpoints:
- /video_upload/{video_id}: remux, classify, store in S3 (the main pipeline)
- /thumbnail_upload/{video_id}: store an image in the local assets dir

Every response that carries a video goes through sign_video first, so
clients only ever see short-lived presigned URLs, never the stored
"bucket,key" reference.
"""

import logging
from datetime import datetime
from typing import Annotated, NoReturn, Optional
from uuid import UUID

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from ...core.media.errors import (
    InvalidStorageReferenceError,
    MediaError,
    NotVideoOwnerError,
    RecordStoreError,
    StagingError,
    StorageError,
    UnsupportedMediaTypeError,
    UploadTooLargeError,
    VideoNotFoundError,
    VideoProcessingError,
)
from ...core.media.models import Video
from ...core.media.uploads import load_owned_video, sign_video
from ..dependencies import (
    CurrentUserId,
    SettingsDep,
    StorageClientDep,
    ThumbnailServiceDep,
    UploadServiceDep,
    VideoRepositoryDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Form field names the web client posts files under
VIDEO_FORM_FIELD = "video"
THUMBNAIL_FORM_FIELD = "thumbnail"


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class VideoCreateRequest(BaseModel):
    """Request to create an empty video record."""
    title: str = Field(min_length=1, max_length=200, description="Video title")
    description: str = Field(default="", max_length=5000, description="Video description")


class VideoResponse(BaseModel):
    """A video record as clients see it."""
    id: UUID = Field(description="Video identifier")
    user_id: UUID = Field(description="Owner's user ID")
    title: str = Field(description="Video title")
    description: str = Field(description="Video description")
    thumbnail_url: Optional[str] = Field(None, description="Public thumbnail URL")
    video_url: Optional[str] = Field(
        None,
        description="Presigned URL for the video, or null if nothing was uploaded yet"
    )
    created_at: datetime = Field(description="When the record was created")
    updated_at: datetime = Field(description="Last update time")

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

# Most specific first; the first isinstance match wins.
_ERROR_RESPONSES: list[tuple[type[MediaError], int, str]] = [
    (VideoNotFoundError, status.HTTP_404_NOT_FOUND, "No video with videoID"),
    (NotVideoOwnerError, status.HTTP_401_UNAUTHORIZED, "Unauthorized to modify video"),
    (UnsupportedMediaTypeError, status.HTTP_400_BAD_REQUEST, "Media type is not allowed"),
    (UploadTooLargeError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "Upload is too large"),
    (StagingError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Error copying data to file"),
    (VideoProcessingError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Error processing video"),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Error accessing video storage"),
    (RecordStoreError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Error accessing video metadata"),
    (InvalidStorageReferenceError, status.HTTP_500_INTERNAL_SERVER_ERROR, "Stored video reference is corrupt"),
]


def raise_http_error(error: MediaError, video_id: Optional[UUID] = None) -> NoReturn:
    """Translate a pipeline error into the matching HTTPException."""
    status_code, detail = status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    for error_type, code, message in _ERROR_RESPONSES:
        if isinstance(error, error_type):
            status_code, detail = code, message
            break

    if status_code == status.HTTP_400_BAD_REQUEST:
        detail = str(error)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Video request failed",
        extra={
            "video_id": str(video_id) if video_id else None,
            "status_code": status_code,
            "error_type": type(error).__name__,
            "error": str(error),
        }
    )
    raise HTTPException(status_code=status_code, detail=detail) from error


def parse_video_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid ID",
        ) from e


def require_file(upload: Optional[UploadFile], field_name: str) -> UploadFile:
    if upload is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unable to parse form file: expected a '{field_name}' part",
        )
    return upload


# ---------------------------------------------------------------------------
# Record Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/videos",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a video record",
)
async def create_video(
    request: VideoCreateRequest,
    user_id: CurrentUserId,
    repository: VideoRepositoryDep,
) -> VideoResponse:
    video = Video(user_id=user_id, title=request.title, description=request.description)
    try:
        repository.create_video(video)
    except MediaError as e:
        raise_http_error(e, video.id)
    return VideoResponse.from_video(video)


@router.get(
    "/videos",
    response_model=list[VideoResponse],
    summary="List the caller's videos",
)
async def list_videos(
    user_id: CurrentUserId,
    repository: VideoRepositoryDep,
    storage: StorageClientDep,
    settings: SettingsDep,
) -> list[VideoResponse]:
    try:
        videos = repository.list_videos(user_id)
        signed = [
            await sign_video(video, storage, settings.presigned_url_expiry_seconds)
            for video in videos
        ]
    except MediaError as e:
        raise_http_error(e)
    return [VideoResponse.from_video(video) for video in signed]


@router.get(
    "/videos/{video_id}",
    response_model=VideoResponse,
    summary="Get a video",
    description="Returns the record with a presigned URL valid for 15 minutes by default.",
)
async def get_video(
    video_id: str,
    user_id: CurrentUserId,
    repository: VideoRepositoryDep,
    storage: StorageClientDep,
    settings: SettingsDep,
) -> VideoResponse:
    parsed_id = parse_video_id(video_id)
    try:
        video = load_owned_video(repository, parsed_id, user_id)
        signed = await sign_video(video, storage, settings.presigned_url_expiry_seconds)
    except MediaError as e:
        raise_http_error(e, parsed_id)
    return VideoResponse.from_video(signed)


# ---------------------------------------------------------------------------
# Upload Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/video_upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload the video file",
    description="Upload an MP4 (max 1 GiB). It is remuxed for fast start, "
                "filed under its orientation and stored in S3.",
)
async def upload_video(
    video_id: str,
    user_id: CurrentUserId,
    service: UploadServiceDep,
    video: Annotated[Optional[UploadFile], File(description="MP4 video")] = None,
) -> VideoResponse:
    parsed_id = parse_video_id(video_id)
    upload = require_file(video, VIDEO_FORM_FIELD)

    try:
        result = await service.upload_video(
            user_id=user_id,
            video_id=parsed_id,
            source=upload.file,
            content_type=upload.content_type,
        )
    except MediaError as e:
        raise_http_error(e, parsed_id)

    return VideoResponse.from_video(result)


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a thumbnail",
    description="Upload a JPEG or PNG thumbnail (max 10 MiB).",
)
async def upload_thumbnail(
    video_id: str,
    user_id: CurrentUserId,
    service: ThumbnailServiceDep,
    thumbnail: Annotated[Optional[UploadFile], File(description="JPEG or PNG image")] = None,
) -> VideoResponse:
    parsed_id = parse_video_id(video_id)
    upload = require_file(thumbnail, THUMBNAIL_FORM_FIELD)

    try:
        result = await service.upload_thumbnail(
            user_id=user_id,
            video_id=parsed_id,
            source=upload.file,
            content_type=upload.content_type,
        )
    except MediaError as e:
        raise_http_error(e, parsed_id)

    return VideoResponse.from_video(result)
