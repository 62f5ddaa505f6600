"""
Object storage client for uploaded videos.

Talks to AWS S3 by default, or to any S3-compatible endpoint (Cloudflare
R2, MinIO) when an endpoint URL is configured.

MockStorageClient keeps objects in a dict so the API runs with no bucket.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from ...core.media.errors import StorageError
from ...core.media.uploads import PRESIGNED_URL_EXPIRY_SECONDS, ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """
    Configuration for S3-compatible storage.

    endpoint_url is None for AWS itself.
    """
    access_key_id: str
    secret_access_key: str
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None


class S3StorageClient:
    """
    S3 object storage client backed by boto3.

    boto3 is synchronous, so every call is pushed to a worker thread.
    The methods are async to match the ObjectStore protocol.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize the S3 client with boto3.

        Imported here, not at module level, so mock mode runs without
        boto3 installed.
        """
        import boto3
        from botocore.config import Config

        self._config = config

        # v4 signatures are required for presigned URLs on R2 and newer regions
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path' if config.endpoint_url else 'auto'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id or None,
            aws_secret_access_key=config.secret_access_key or None,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={
                "region": config.region,
                "endpoint": config.endpoint_url or "aws",
            }
        )

    async def upload_file(
        self,
        bucket: str,
        key: str,
        content_type: str,
        body: BinaryIO,
    ) -> None:
        """
        Stream a file object to bucket/key.

        Returns once S3 acknowledges the write. Failures are not retried
        and nothing is cleaned up on the remote side.
        """
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            raise StorageError(f"Failed to upload video to S3: {e}") from e

        logger.debug("Uploaded object", extra={"bucket": bucket, "key": key})

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = PRESIGNED_URL_EXPIRY_SECONDS,
    ) -> str:
        """
        Generate a time-limited GET URL for bucket/key.

        Signing happens locally with the client's credentials; no request
        reaches S3 until someone follows the URL.
        """
        try:
            return await asyncio.to_thread(
                self._s3_client.generate_presigned_url,
                'get_object',
                Params={
                    'Bucket': bucket,
                    'Key': key,
                },
                ExpiresIn=expiry_seconds,
            )
        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"bucket": bucket, "key": key, "error": str(e)}
            )
            raise StorageError(f"Failed to generate presigned URL: {e}") from e


# ---------------------------------------------------------------------------
# In-memory stand-in
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    Objects held in memory, for development and tests.

    Objects are kept in a dictionary keyed by (bucket, key) and "URLs"
    are mock URIs carrying the expiry.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], tuple[str, bytes]] = {}
        logger.info("Using in-memory object storage")

    async def upload_file(
        self,
        bucket: str,
        key: str,
        content_type: str,
        body: BinaryIO,
    ) -> None:
        data = await asyncio.to_thread(body.read)
        self._objects[(bucket, key)] = (content_type, data)

        logger.debug(
            "Stored object in mock storage",
            extra={"bucket": bucket, "key": key, "size_bytes": len(data)}
        )

    async def get_presigned_url(
        self,
        bucket: str,
        key: str,
        expiry_seconds: int = PRESIGNED_URL_EXPIRY_SECONDS,
    ) -> str:
        return f"mock://{bucket}/{key}?expires={expiry_seconds}"

    def get_object(self, bucket: str, key: str) -> Optional[tuple[str, bytes]]:
        """(content_type, data) for a stored object, or None."""
        return self._objects.get((bucket, key))

    def keys(self, bucket: str) -> list[str]:
        return [k for (b, k) in self._objects if b == bucket]


def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStore:
    """S3StorageClient for config, or a fresh MockStorageClient in mock mode."""
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
