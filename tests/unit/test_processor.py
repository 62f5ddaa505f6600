"""
Unit tests for the ffmpeg-backed video processor.

subprocess.run is replaced, so neither binary needs to be installed.
"""

import json
import subprocess
from pathlib import Path

import pytest

from tubely.core.media.errors import VideoProcessingError
from tubely.core.media.models import Orientation
from tubely.infrastructure.video.processor import (
    FFmpegVideoProcessor,
    MockVideoProcessor,
    create_video_processor,
    fast_start_output_path,
)


class FakeRun:
    """Stands in for subprocess.run and records every command."""

    def __init__(self, returncode=0, stdout="", write_output=True):
        self.returncode = returncode
        self.stdout = stdout
        self.write_output = write_output
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if cmd[1:] == ["-version"]:
            return subprocess.CompletedProcess(cmd, 0, stdout="ffmpeg version 6", stderr="")
        if cmd[0] == "ffmpeg" and self.write_output:
            # ffmpeg writes its output even when it later fails
            Path(cmd[-1]).write_bytes(b"remuxed")
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=self.stdout, stderr="")


@pytest.fixture
def staged(tmp_path):
    path = tmp_path / "tubely-upload-abc.mp4"
    path.write_bytes(b"raw")
    return path


class TestRemuxForFastStart:
    """Tests for the ffmpeg remux step."""

    @pytest.mark.asyncio
    async def test_runs_stream_copy_with_faststart(self, monkeypatch, staged):
        fake = FakeRun()
        monkeypatch.setattr(subprocess, "run", fake)
        processor = FFmpegVideoProcessor()

        output = await processor.remux_for_fast_start(staged)

        assert output == staged.with_name(staged.name + ".processing")
        assert output.read_bytes() == b"remuxed"
        assert fake.commands[-1] == [
            "ffmpeg", "-i", str(staged),
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            str(output),
        ]

    @pytest.mark.asyncio
    async def test_failure_removes_partial_output(self, monkeypatch, staged):
        monkeypatch.setattr(subprocess, "run", FakeRun(returncode=1))
        processor = FFmpegVideoProcessor()

        with pytest.raises(VideoProcessingError, match="fast start"):
            await processor.remux_for_fast_start(staged)

        assert not fast_start_output_path(staged).exists()
        assert staged.exists()

    def test_missing_ffmpeg_fails_at_construction(self, monkeypatch):
        def not_found(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", not_found)

        with pytest.raises(RuntimeError, match="FFmpeg not found"):
            FFmpegVideoProcessor()


class TestProbe:
    """Tests for the ffprobe step."""

    @pytest.mark.asyncio
    async def test_classifies_first_stream(self, monkeypatch, staged):
        probe = json.dumps({"streams": [{"width": 1080, "height": 1920}, {"codec_type": "audio"}]})
        fake = FakeRun(stdout=probe)
        monkeypatch.setattr(subprocess, "run", fake)
        processor = FFmpegVideoProcessor()

        assert await processor.get_video_orientation(staged) == Orientation.PORTRAIT
        assert fake.commands[-1] == [
            "ffprobe", "-v", "error", "-print_format", "json", "-show_streams", str(staged),
        ]

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_an_error(self, monkeypatch, staged):
        monkeypatch.setattr(subprocess, "run", FakeRun(returncode=1))
        processor = FFmpegVideoProcessor()

        with pytest.raises(VideoProcessingError, match="ffprobe"):
            await processor.probe_streams(staged)

    @pytest.mark.asyncio
    async def test_garbage_output_is_an_error(self, monkeypatch, staged):
        monkeypatch.setattr(subprocess, "run", FakeRun(stdout="Invalid data found"))
        processor = FFmpegVideoProcessor()

        with pytest.raises(VideoProcessingError, match="parse"):
            await processor.get_video_orientation(staged)


class TestMockVideoProcessor:
    """Tests for the no-ffmpeg development processor."""

    @pytest.mark.asyncio
    async def test_copies_and_reports_landscape(self, staged):
        processor = create_video_processor(mock_mode=True)
        assert isinstance(processor, MockVideoProcessor)

        output = await processor.remux_for_fast_start(staged)

        assert output.read_bytes() == b"raw"
        assert await processor.get_video_orientation(output) == Orientation.LANDSCAPE
