"""
Unit tests for the video upload pipeline.

The processor is a fake that copies the staged file and reports a fixed
geometry; records and objects live in the in-memory mocks. Every test
passes tmp_path as the temp directory so leftover files are visible.
"""

import io
import re
import shutil
from pathlib import Path
from uuid import uuid4

import pytest

from tubely.core.media.errors import (
    InvalidStorageReferenceError,
    NotVideoOwnerError,
    RecordStoreError,
    StorageError,
    UnsupportedMediaTypeError,
    UploadTooLargeError,
    VideoNotFoundError,
    VideoProcessingError,
)
from tubely.core.media.models import StreamGeometry
from tubely.core.media.orientation import classify_geometry
from tubely.core.media.uploads import VideoUploadService, copy_limited

BUCKET = "tubely-test"
RANDOM_NAME = r"[A-Za-z0-9_-]{43}"


class FakeProcessor:
    """Copies instead of remuxing and reports a fixed geometry."""

    def __init__(self, width: int = 1920, height: int = 1080):
        self.geometry = StreamGeometry(width, height)
        self.remuxed: list[Path] = []

    async def remux_for_fast_start(self, path: Path) -> Path:
        output = path.with_name(path.name + ".processing")
        shutil.copyfile(path, output)
        self.remuxed.append(path)
        return output

    async def get_video_orientation(self, path: Path):
        return classify_geometry([self.geometry])


class FailingRepository:
    """Delegates reads, fails every update."""

    def __init__(self, inner):
        self._inner = inner

    def get_video(self, video_id):
        return self._inner.get_video(video_id)

    def update_video(self, video):
        raise ConnectionError("warehouse suspended")


class FailingRemuxProcessor(FakeProcessor):
    """ffmpeg exits non-zero after the staged file exists."""

    async def remux_for_fast_start(self, path: Path) -> Path:
        self.remuxed.append(path)
        raise VideoProcessingError("ffmpeg exited with status 1")


class FailingStorage:
    """Object store whose uploads always fail."""

    def __init__(self):
        self.attempts: list[tuple[str, str]] = []

    async def upload_file(self, bucket, key, content_type, body):
        self.attempts.append((bucket, key))
        raise StorageError(f"Error uploading {key}: connection reset")

    async def get_presigned_url(self, bucket, key, expiry_seconds=900):
        raise AssertionError("nothing was stored to sign")


def make_service(repository, storage, tmp_path, processor=None, **kwargs):
    return VideoUploadService(
        records=repository,
        processor=processor or FakeProcessor(),
        storage=storage,
        bucket=BUCKET,
        temp_dir=str(tmp_path),
        **kwargs,
    )


class TestUploadVideo:
    """Tests for the happy path."""

    @pytest.mark.asyncio
    async def test_landscape_upload_is_stored_under_landscape_prefix(
        self, repository, storage, video, owner_id, mp4_file, mp4_bytes, tmp_path
    ):
        service = make_service(repository, storage, tmp_path)

        result = await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        keys = storage.keys(BUCKET)
        assert len(keys) == 1
        assert re.fullmatch(rf"landscape/{RANDOM_NAME}\.mp4", keys[0])
        assert storage.get_object(BUCKET, keys[0]) == ("video/mp4", mp4_bytes)

        stored = repository.get_video(video.id)
        assert stored.video_url == f"{BUCKET},{keys[0]}"
        assert result.video_url == f"mock://{BUCKET}/{keys[0]}?expires=900"

    @pytest.mark.asyncio
    async def test_portrait_upload_is_stored_under_portrait_prefix(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository, storage, tmp_path, FakeProcessor(1080, 1920))

        await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert storage.keys(BUCKET)[0].startswith("portrait/")

    @pytest.mark.asyncio
    async def test_square_upload_is_stored_under_other_prefix(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository, storage, tmp_path, FakeProcessor(1000, 1000))

        await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert storage.keys(BUCKET)[0].startswith("other/")

    @pytest.mark.asyncio
    async def test_temporary_files_are_removed_after_success(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository, storage, tmp_path)

        await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_content_type_parameters_are_ignored(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository, storage, tmp_path)

        await service.upload_video(owner_id, video.id, mp4_file, "video/mp4; codecs=avc1")

        assert storage.get_object(BUCKET, storage.keys(BUCKET)[0])[0] == "video/mp4"

    @pytest.mark.asyncio
    async def test_reupload_replaces_the_reference(
        self, repository, storage, video, owner_id, mp4_bytes, tmp_path
    ):
        service = make_service(repository, storage, tmp_path)

        await service.upload_video(owner_id, video.id, io.BytesIO(mp4_bytes), "video/mp4")
        first = repository.get_video(video.id).video_url
        await service.upload_video(owner_id, video.id, io.BytesIO(mp4_bytes), "video/mp4")
        second = repository.get_video(video.id).video_url

        assert first != second
        # the first object is not deleted
        assert len(storage.keys(BUCKET)) == 2


class TestUploadVideoRejections:
    """Tests for requests rejected before or during processing."""

    @pytest.mark.asyncio
    async def test_unknown_video(self, repository, storage, owner_id, mp4_file, tmp_path):
        service = make_service(repository, storage, tmp_path)

        with pytest.raises(VideoNotFoundError):
            await service.upload_video(owner_id, uuid4(), mp4_file, "video/mp4")

    @pytest.mark.asyncio
    async def test_non_owner_never_stages(
        self, repository, storage, video, mp4_file, tmp_path
    ):
        processor = FakeProcessor()
        service = make_service(repository, storage, tmp_path, processor)

        with pytest.raises(NotVideoOwnerError):
            await service.upload_video(uuid4(), video.id, mp4_file, "video/mp4")

        assert processor.remuxed == []
        assert list(tmp_path.iterdir()) == []
        assert storage.keys(BUCKET) == []

    @pytest.mark.asyncio
    async def test_wrong_media_type_is_rejected_before_staging(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository, storage, tmp_path)

        with pytest.raises(UnsupportedMediaTypeError):
            await service.upload_video(owner_id, video.id, mp4_file, "image/png")

        assert list(tmp_path.iterdir()) == []
        assert repository.get_video(video.id).video_url is None

    @pytest.mark.asyncio
    async def test_zero_width_video_fails_without_side_effects(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository, storage, tmp_path, FakeProcessor(0, 1080))

        with pytest.raises(VideoProcessingError):
            await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert list(tmp_path.iterdir()) == []
        assert storage.keys(BUCKET) == []
        assert repository.get_video(video.id).video_url is None

    @pytest.mark.asyncio
    async def test_oversized_upload_is_rejected(
        self, repository, storage, video, owner_id, tmp_path
    ):
        service = make_service(repository, storage, tmp_path, max_upload_bytes=100)

        with pytest.raises(UploadTooLargeError):
            await service.upload_video(owner_id, video.id, io.BytesIO(b"x" * 101), "video/mp4")

        assert list(tmp_path.iterdir()) == []
        assert storage.keys(BUCKET) == []

    @pytest.mark.asyncio
    async def test_failed_metadata_update_leaves_object_orphaned(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = make_service(repository=FailingRepository(repository), storage=storage, tmp_path=tmp_path)

        with pytest.raises(RecordStoreError):
            await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert len(storage.keys(BUCKET)) == 1
        assert repository.get_video(video.id).video_url is None
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_remux_failure_removes_staged_file(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        processor = FailingRemuxProcessor()
        service = make_service(repository, storage, tmp_path, processor)

        with pytest.raises(VideoProcessingError, match="ffmpeg exited"):
            await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert len(processor.remuxed) == 1
        assert list(tmp_path.iterdir()) == []
        assert storage.keys(BUCKET) == []
        assert repository.get_video(video.id).video_url is None

    @pytest.mark.asyncio
    async def test_storage_failure_removes_temporary_files(
        self, repository, video, owner_id, mp4_file, tmp_path
    ):
        storage = FailingStorage()
        service = make_service(repository, storage, tmp_path)

        with pytest.raises(StorageError):
            await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        assert len(storage.attempts) == 1
        assert list(tmp_path.iterdir()) == []
        assert repository.get_video(video.id).video_url is None

    @pytest.mark.asyncio
    async def test_empty_bucket_is_rejected_before_upload(
        self, repository, storage, video, owner_id, mp4_file, tmp_path
    ):
        service = VideoUploadService(
            records=repository,
            processor=FakeProcessor(),
            storage=storage,
            bucket="",
            temp_dir=str(tmp_path),
        )

        with pytest.raises(InvalidStorageReferenceError):
            await service.upload_video(owner_id, video.id, mp4_file, "video/mp4")

        # no orphaned object without a reference pointing at it
        assert storage.keys("") == []
        assert list(tmp_path.iterdir()) == []
        assert repository.get_video(video.id).video_url is None


class TestCopyLimited:
    """Tests for the byte-counting copy."""

    def test_copies_up_to_the_limit(self):
        destination = io.BytesIO()
        assert copy_limited(io.BytesIO(b"x" * 10), destination, limit=10) == 10
        assert destination.getvalue() == b"x" * 10

    def test_fails_one_byte_over(self):
        with pytest.raises(UploadTooLargeError):
            copy_limited(io.BytesIO(b"x" * 11), io.BytesIO(), limit=10)
