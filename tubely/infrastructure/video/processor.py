"""
ffmpeg and ffprobe behind the VideoProcessor protocol.

This module handles the two local-file steps of the upload pipeline:
1. Remux for fast start (move the moov atom ahead of the media data)
2. Probe stream geometry to classify orientation

Neither step re-encodes anything. Remuxing is a container-level stream
copy, so it's fast and lossless.

Both tools are run with fixed arguments and no timeout. A hung ffmpeg
holds its worker thread until it exits.
"""

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path

from ...core.media.errors import VideoProcessingError
from ...core.media.models import Orientation, StreamGeometry
from ...core.media.orientation import classify_geometry, parse_probe_output
from ...core.media.temp_files import remove_quietly
from ...core.media.uploads import VideoProcessor

logger = logging.getLogger(__name__)

FAST_START_SUFFIX = ".processing"


def fast_start_output_path(path: Path) -> Path:
    """The remuxed file sits next to the input with a fixed suffix."""
    return path.with_name(path.name + FAST_START_SUFFIX)


class FFmpegVideoProcessor:
    """
    Video processor using FFmpeg/FFprobe binaries.

    Subprocess calls are blocking, so each one runs in a worker thread
    via asyncio.to_thread.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        """Fails fast with RuntimeError if ffmpeg can't be run."""
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path

        # verify ffmpeg is available
        try:
            result = subprocess.run(
                [self._ffmpeg, "-version"],
                capture_output=True,
                text=True,
                timeout=5
            )
            if result.returncode != 0:
                raise RuntimeError(f"{self._ffmpeg} -version exited with {result.returncode}")
            logger.info("Using ffmpeg video processor", extra={"ffmpeg": self._ffmpeg, "ffprobe": self._ffprobe})
        except FileNotFoundError:
            raise RuntimeError(
                f"FFmpeg not found at {self._ffmpeg!r}. Install ffmpeg or set FFMPEG_PATH"
            )

    async def remux_for_fast_start(self, path: Path) -> Path:
        """
        Copy streams into a new MP4 with -movflags faststart.

        Output is discarded; a non-zero exit is fatal and not retried. A
        partially written output file is removed before raising.
        """
        output_path = fast_start_output_path(path)
        cmd = [
            self._ffmpeg,
            "-i", str(path),
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            str(output_path),
        ]

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            remove_quietly(output_path)
            raise VideoProcessingError(f"Failed to run ffmpeg: {e}") from e

        if result.returncode != 0:
            remove_quietly(output_path)
            raise VideoProcessingError(
                f"Failed to process video for fast start: ffmpeg exited with {result.returncode}"
            )

        logger.debug(
            "Remuxed video for fast start",
            extra={"input": str(path), "output": str(output_path)}
        )
        return output_path

    async def probe_streams(self, path: Path) -> list[StreamGeometry]:
        """Run ffprobe and return the geometry of every stream, in order."""
        cmd = [
            self._ffprobe,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            str(path),
        ]

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise VideoProcessingError(f"Failed to run ffprobe: {e}") from e

        if result.returncode != 0:
            raise VideoProcessingError(
                f"Failed to run ffprobe: exited with {result.returncode}"
            )

        return parse_probe_output(result.stdout)

    async def get_video_orientation(self, path: Path) -> Orientation:
        streams = await self.probe_streams(path)
        orientation = classify_geometry(streams)

        logger.info(
            "Classified video orientation",
            extra={
                "path": str(path),
                "resolution": f"{streams[0].width}x{streams[0].height}",
                "orientation": orientation.value,
            }
        )
        return orientation


class MockVideoProcessor:
    """
    Stand-in used when ffmpeg isn't installed.

    Remuxing copies the file byte for byte, and every video probes as the
    configured geometry (1920x1080 by default).
    """

    def __init__(self, width: int = 1920, height: int = 1080):
        self._geometry = StreamGeometry(width=width, height=height)
        logger.info("Using mock video processor", extra={"geometry": f"{width}x{height}"})

    async def remux_for_fast_start(self, path: Path) -> Path:
        output_path = fast_start_output_path(path)
        await asyncio.to_thread(shutil.copyfile, path, output_path)
        return output_path

    async def probe_streams(self, path: Path) -> list[StreamGeometry]:
        return [self._geometry]

    async def get_video_orientation(self, path: Path) -> Orientation:
        return classify_geometry(await self.probe_streams(path))


def create_video_processor(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
) -> VideoProcessor:
    """MockVideoProcessor in mock mode, else an FFmpegVideoProcessor on the given binaries."""
    if mock_mode:
        return MockVideoProcessor()

    return FFmpegVideoProcessor(ffmpeg_path=ffmpeg_path, ffprobe_path=ffprobe_path)
