"""
Object storage integration for uploaded videos, plus the local assets
directory used for thumbnails.

Supports S3 (AWS) and S3-compatible stores (R2, MinIO).
Includes mock mode for local development without credentials.
"""

from .assets import LocalAssetStore
from .client import (
    MockStorageClient,
    S3StorageClient,
    StorageConfig,
    create_storage_client,
)

__all__ = [
    "LocalAssetStore",
    "MockStorageClient",
    "S3StorageClient",
    "StorageConfig",
    "create_storage_client",
]
