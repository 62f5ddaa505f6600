"""
Shared fixtures.

The environment is set before anything imports tubely.main, because the
module-level app reads settings at import time.
"""

import io
import os
import tempfile
from uuid import uuid4

import pytest

# Set test environment
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["SNOWFLAKE_MOCK_MODE"] = "true"
os.environ["S3_MOCK_MODE"] = "true"
os.environ["VIDEO_PROCESSOR_MOCK_MODE"] = "true"
os.environ["ASSETS_ROOT"] = tempfile.mkdtemp(prefix="tubely-test-assets-")

from tubely.core.media.models import Video
from tubely.infrastructure.snowflake.client import MockSnowflakeConnection
from tubely.infrastructure.snowflake.repositories.videos import VideoRepository
from tubely.infrastructure.storage.client import MockStorageClient


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def repository():
    """VideoRepository over a fresh in-memory connection."""
    return VideoRepository(MockSnowflakeConnection())


@pytest.fixture
def storage():
    return MockStorageClient()


@pytest.fixture
def video(repository, owner_id):
    """An empty record owned by owner_id, already persisted."""
    return repository.create_video(Video(user_id=owner_id, title="Boots and cats"))


@pytest.fixture
def mp4_bytes():
    # The bytes are never decoded; processors are faked or mocked
    return b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 256


@pytest.fixture
def mp4_file(mp4_bytes):
    return io.BytesIO(mp4_bytes)
