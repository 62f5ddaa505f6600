"""
Providers for FastAPI Depends.

Routes never build their own clients, so tests can swap any of them
through app.dependency_overrides.
"""

import logging
from typing import Annotated, Generator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ..config.settings import Settings, get_settings
from ..core.media.thumbnails import ThumbnailService
from ..core.media.uploads import ObjectStore, VideoProcessor, VideoUploadService
from ..infrastructure.auth.tokens import InvalidTokenError, get_bearer_token, validate_jwt
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository
from ..infrastructure.storage.assets import LocalAssetStore
from ..infrastructure.storage.client import StorageConfig, create_storage_client
from ..infrastructure.video.processor import create_video_processor

logger = logging.getLogger(__name__)

# Bearer token scheme. Read raw so we can return 401 (not 403) when it's missing.
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# Global mock instances (shared across requests so data persists in dev)
_mock_storage_client: Optional[ObjectStore] = None
_mock_snowflake_connection: Optional[MockSnowflakeConnection] = None
_video_processor: Optional[VideoProcessor] = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_user_id(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Optional[str] = Security(authorization_header),
) -> UUID:
    """
    Resolve the caller's user ID from the bearer token.

    Raises 401 if the header is missing or the token doesn't validate.
    Ownership checks happen later, against the record being touched.
    """
    try:
        token = get_bearer_token(authorization)
    except InvalidTokenError as e:
        logger.warning("Request missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Couldn't find JWT",
        ) from e

    try:
        return validate_jwt(token, settings.jwt_secret)
    except InvalidTokenError as e:
        logger.warning("Invalid bearer token", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Couldn't validate JWT",
        ) from e


# ---------------------------------------------------------------------------
# Infrastructure Dependencies
# ---------------------------------------------------------------------------

def snowflake_config(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


def get_video_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[VideoRepository, None, None]:
    """
    Provide VideoRepository with a database connection.

    A generator so the connection is closed after the request. In mock
    mode, the same in-memory connection is reused across requests so
    records persist during the dev session.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")
        yield VideoRepository(_mock_snowflake_connection)
    else:
        with create_snowflake_connection(config=snowflake_config(settings)) as conn:
            logger.debug("Created VideoRepository with Snowflake connection")
            yield VideoRepository(conn)


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ObjectStore:
    """
    Provide the object storage client.

    In mock mode, we reuse the same client across requests so uploaded
    objects persist during the dev session.
    """
    global _mock_storage_client

    if settings.s3_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        region=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
    )
    return create_storage_client(config=config)


def get_video_processor(
    settings: Annotated[Settings, Depends(get_settings)],
) -> VideoProcessor:
    """
    Provide the ffmpeg-backed processor.

    Built once per process: the constructor shells out to `ffmpeg -version`
    and there's nothing per-request about it.
    """
    global _video_processor

    if _video_processor is None:
        _video_processor = create_video_processor(
            mock_mode=settings.video_processor_mock_mode,
            ffmpeg_path=settings.ffmpeg_path,
            ffprobe_path=settings.ffprobe_path,
        )
    return _video_processor


def get_asset_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> LocalAssetStore:
    return LocalAssetStore(root=settings.assets_root, base_url=settings.assets_url)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_upload_service(
    settings: Annotated[Settings, Depends(get_settings)],
    repository: Annotated[VideoRepository, Depends(get_video_repository)],
    processor: Annotated[VideoProcessor, Depends(get_video_processor)],
    storage: Annotated[ObjectStore, Depends(get_storage_client)],
) -> VideoUploadService:
    return VideoUploadService(
        records=repository,
        processor=processor,
        storage=storage,
        bucket=settings.s3_bucket,
        temp_dir=settings.upload_temp_dir,
        max_upload_bytes=settings.max_video_upload_bytes,
        presign_expiry_seconds=settings.presigned_url_expiry_seconds,
    )


def get_thumbnail_service(
    settings: Annotated[Settings, Depends(get_settings)],
    repository: Annotated[VideoRepository, Depends(get_video_repository)],
    assets: Annotated[LocalAssetStore, Depends(get_asset_store)],
    storage: Annotated[ObjectStore, Depends(get_storage_client)],
) -> ThumbnailService:
    return ThumbnailService(
        records=repository,
        assets=assets,
        storage=storage,
        max_upload_bytes=settings.max_thumbnail_upload_bytes,
        presign_expiry_seconds=settings.presigned_url_expiry_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
VideoRepositoryDep = Annotated[VideoRepository, Depends(get_video_repository)]
StorageClientDep = Annotated[ObjectStore, Depends(get_storage_client)]
VideoProcessorDep = Annotated[VideoProcessor, Depends(get_video_processor)]
AssetStoreDep = Annotated[LocalAssetStore, Depends(get_asset_store)]
UploadServiceDep = Annotated[VideoUploadService, Depends(get_upload_service)]
ThumbnailServiceDep = Annotated[ThumbnailService, Depends(get_thumbnail_service)]
