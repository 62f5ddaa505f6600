"""Unit tests for presigning video records on the way out."""

from uuid import uuid4

import pytest

from tubely.core.media.errors import InvalidStorageReferenceError
from tubely.core.media.models import Video
from tubely.core.media.uploads import sign_video


class RecordingStorage:
    """Remembers every presign request and returns a numbered URL."""

    def __init__(self):
        self.calls = []

    async def upload_file(self, bucket, key, content_type, body):
        raise AssertionError("sign_video must not upload")

    async def get_presigned_url(self, bucket, key, expiry_seconds=900):
        self.calls.append((bucket, key, expiry_seconds))
        return f"https://signed.example/{key}?n={len(self.calls)}"


class TestSignVideo:
    """Tests for sign_video."""

    @pytest.mark.asyncio
    async def test_returns_copy_with_presigned_url(self):
        storage = RecordingStorage()
        video = Video(user_id=uuid4(), video_url="tubely-videos,landscape/a.mp4")

        signed = await sign_video(video, storage, expiry_seconds=900)

        assert signed.video_url == "https://signed.example/landscape/a.mp4?n=1"
        assert storage.calls == [("tubely-videos", "landscape/a.mp4", 900)]
        # the stored reference is untouched
        assert video.video_url == "tubely-videos,landscape/a.mp4"
        assert signed.id == video.id

    @pytest.mark.asyncio
    async def test_every_call_signs_the_same_object_afresh(self):
        storage = RecordingStorage()
        video = Video(user_id=uuid4(), video_url="b,portrait/p.mp4")

        first = await sign_video(video, storage)
        second = await sign_video(video, storage)

        assert first.video_url != second.video_url
        assert [c[:2] for c in storage.calls] == [("b", "portrait/p.mp4")] * 2

    @pytest.mark.asyncio
    async def test_record_without_video_passes_through(self):
        storage = RecordingStorage()
        video = Video(user_id=uuid4())

        assert await sign_video(video, storage) is video
        assert storage.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("corrupt", ["https://cdn.example/a.mp4", "a,b,c"])
    async def test_corrupt_reference_raises_and_leaves_record_alone(self, corrupt):
        storage = RecordingStorage()
        video = Video(user_id=uuid4(), video_url=corrupt)

        with pytest.raises(InvalidStorageReferenceError):
            await sign_video(video, storage)

        assert video.video_url == corrupt
        assert storage.calls == []
