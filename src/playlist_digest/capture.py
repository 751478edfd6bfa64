"""Screenshot capture with yt-dlp and FFmpeg.

Each screenshot is taken in two steps:
1. yt-dlp downloads a two-second section around the timestamp
2. FFmpeg extracts the first frame of that section as PNG

Per-timestamp failures are reported in the returned CaptureResult list,
never raised, so the capture executor can keep partial progress.
"""

import logging
import os
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import imageio_ffmpeg

from .jobs.backends import FrameCapturer
from .jobs.models import CaptureResult
from .jobs.naming import format_seconds, parse_timestamp, timestamp_to_filename

logger = logging.getLogger(__name__)

STDERR_SNIPPET_CHARS = 500


@dataclass
class CommandResult:
    """Result of one external command."""

    returncode: int
    stdout: str
    stderr: str
    duration_s: float
    timed_out: bool = False


def get_ffmpeg_cmd() -> str:
    return imageio_ffmpeg.get_ffmpeg_exe()


class YtDlpFrameCapturer(FrameCapturer):
    """Captures still frames from YouTube videos at given timestamps.

    Example:
        >>> capturer = YtDlpFrameCapturer(timeout_s=120)
        >>> results = capturer.capture_many(
        ...     "https://www.youtube.com/watch?v=abc",
        ...     ["00:01:30", "00:05:00"],
        ...     Path("output/01-intro/screenshots"),
        ... )
        >>> [r.filename for r in results if r.success]
        ['00-01-30.png', '00-05-00.png']
    """

    def __init__(
        self,
        ytdlp_path: str = "yt-dlp",
        temp_dir: Optional[str] = None,
        timestamp_offset_s: int = 0,
        max_height: int = 720,
        timeout_s: int = 300,
    ):
        """Initialize capturer.

        Args:
            ytdlp_path: yt-dlp executable
            temp_dir: Directory for downloaded sections (None = system temp)
            timestamp_offset_s: Seconds added to each timestamp before capture
            max_height: Maximum height of the downloaded stream
            timeout_s: Per-command timeout
        """
        self.ytdlp_path = ytdlp_path
        self.temp_dir = Path(temp_dir or os.path.join(tempfile.gettempdir(), "playlist_digest"))
        self.timestamp_offset_s = timestamp_offset_s
        self.max_height = max_height
        self.timeout_s = timeout_s

    def capture_many(
        self, video_url: str, timestamps: List[str], output_dir: Path
    ) -> List[CaptureResult]:
        results = []
        for timestamp in timestamps:
            output_path = Path(output_dir) / timestamp_to_filename(timestamp)
            results.append(self.capture_screenshot(video_url, timestamp, output_path))
        return results

    def capture_screenshot(
        self, video_url: str, timestamp: str, output_path: Path
    ) -> CaptureResult:
        filename = output_path.name
        target = parse_timestamp(timestamp) + self.timestamp_offset_s
        section = f"*{format_seconds(max(0, target - 1))}-{format_seconds(target + 1)}"

        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        temp_video = self.temp_dir / f"temp-{os.getpid()}-{time.time_ns()}-{filename}.mp4"

        try:
            download = self._run_command(
                [
                    self.ytdlp_path,
                    "--download-sections",
                    section,
                    "-f",
                    f"best[height<={self.max_height}]/best",
                    "-o",
                    str(temp_video),
                    "--force-keyframes-at-cuts",
                    "--ffmpeg-location",
                    get_ffmpeg_cmd(),
                    "--no-warnings",
                    video_url,
                ]
            )
            if download.returncode != 0:
                return self._failure(timestamp, filename, "yt-dlp", download)

            extract = self._run_command(
                [
                    get_ffmpeg_cmd(),
                    "-y",
                    "-i",
                    str(temp_video),
                    "-vf",
                    "select='eq(n,0)'",
                    "-vframes",
                    "1",
                    "-q:v",
                    "2",
                    str(output_path),
                ]
            )
            if extract.returncode != 0:
                return self._failure(timestamp, filename, "ffmpeg", extract)

            if not output_path.exists():
                return CaptureResult(
                    timestamp=timestamp,
                    filename=filename,
                    success=False,
                    error=f"ffmpeg produced no file at {output_path}",
                )

            logger.debug("[%s] screenshot saved: %s", timestamp, output_path)
            return CaptureResult(timestamp=timestamp, filename=filename, success=True)

        except OSError as e:
            logger.error("[%s] capture error: %s", timestamp, e)
            return CaptureResult(timestamp=timestamp, filename=filename, success=False, error=str(e))

        finally:
            temp_video.unlink(missing_ok=True)

    def _run_command(self, cmd: List[str]) -> CommandResult:
        start_time = time.time()
        logger.debug("Running: %s", " ".join(cmd))
        try:
            completed = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                returncode=-1,
                stdout="",
                stderr=f"timed out after {e.timeout}s",
                duration_s=time.time() - start_time,
                timed_out=True,
            )

        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            duration_s=time.time() - start_time,
        )

    @staticmethod
    def _failure(timestamp: str, filename: str, tool: str, result: CommandResult) -> CaptureResult:
        error = f"{tool} failed (code {result.returncode}): {result.stderr[:STDERR_SNIPPET_CHARS]}"
        logger.error("[%s] %s", timestamp, error)
        return CaptureResult(timestamp=timestamp, filename=filename, success=False, error=error)
