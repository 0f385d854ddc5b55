"""Subtitle-burn render backend (ffmpeg).

WHY: When the frame compositor is unavailable or fails mid-render we
still want a captioned video. ffmpeg's subtitles filter rasterizes an
SRT file straight into the picture; plain, but dependable.

HOW: Serialize the captions to SRT in the workspace, build the ffmpeg
argument list (video re-encoded with libx264, audio stream copied), run
it as a child process and wait. The exit code is the only success
signal.

RULES:
- Non-zero exit → TranscodeError carrying the exit code
- stdout/stderr are logged for diagnostics, never parsed
- -y: the output file is always overwritten
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from autocaption.config import FFMPEG_BINARY, SUBTITLE_FORCE_STYLE
from autocaption.formatters.subtitles import to_srt
from autocaption.render.base import RenderJob, SubtitleBurner, TranscodeError
from autocaption.render.workspace import timestamp_ms

logger = logging.getLogger(__name__)


def subtitles_filter(srt_path: Path, force_style: str = SUBTITLE_FORCE_STYLE) -> str:
    """Build the -vf value; the path is quoted for ffmpeg's filter parser."""
    escaped = str(srt_path).replace("\\", "/").replace("'", "\\'")
    return "subtitles='{}':force_style='{}'".format(escaped, force_style)


class FFmpegSubtitleBurner(SubtitleBurner):
    """Burns SRT captions into a video with the ffmpeg CLI."""

    def __init__(
        self,
        ffmpeg: str = FFMPEG_BINARY,
        force_style: str = SUBTITLE_FORCE_STYLE,
        timeout: Optional[float] = None,
    ) -> None:
        self.ffmpeg = ffmpeg
        self.force_style = force_style
        self._timeout = timeout

    def command(self, input_path: Path, srt_path: Path, output_path: Path) -> List[str]:
        return [
            self.ffmpeg,
            "-y",
            "-i", str(input_path),
            "-vf", subtitles_filter(srt_path, self.force_style),
            "-c:v", "libx264",
            "-preset", "fast",
            "-crf", "23",
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            "-c:a", "copy",
            str(output_path),
        ]

    def burn(self, job: RenderJob, video_path: Path, workdir: Path) -> Path:
        stamp = timestamp_ms()
        srt_path = workdir / "captions-{}.srt".format(stamp)
        output_path = workdir / "output-{}.mp4".format(stamp)

        try:
            srt_path.write_text(to_srt(job.captions), encoding="utf-8")
        except OSError as exc:
            raise TranscodeError("Could not write {}: {}".format(srt_path, exc)) from exc

        args = self.command(video_path, srt_path, output_path)
        logger.info("Running ffmpeg: %s", " ".join(args))

        try:
            proc = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise TranscodeError("Could not run {}: {}".format(self.ffmpeg, exc)) from exc

        if proc.stdout:
            logger.debug("[ffmpeg stdout] %s", proc.stdout)
        if proc.stderr:
            logger.debug("[ffmpeg stderr] %s", proc.stderr)

        if proc.returncode != 0:
            raise TranscodeError(
                "ffmpeg exited with code {}".format(proc.returncode),
                exit_code=proc.returncode,
            )

        return output_path
