"""Render orchestration: resolve source → render → publish, with fallback.

WHY: A render attempt touches the network (remote sources), the disk
(temp copies, exports) and a child process (compositor or ffmpeg). Each
can fail, and the preferred frame-composite path must degrade to the
subtitle-burn path instead of failing the export. This module owns that
sequence and the lifetime of each attempt's temp directory.

HOW: RenderOrchestrator holds the backends wired in at startup.

  render_stream():    frame-composite path; returns a RenderedVideo that
                       still lives in its workspace (caller streams it,
                       then cleans up).
  render_published(): subtitle-burn path; moves the MP4 into the public
                       exports directory and returns its URL.
  export():           render_stream(), falling back to render_published()
                       on any render-stage failure.

build_orchestrator() reads RENDER_BACKENDS and checks that each backend
can actually run, so a missing dependency is a startup error.

RULES:
- Every attempt gets a fresh RenderWorkspace; nothing is shared
- Workspaces are removed on success and failure unless KEEP_RENDER_TEMP
- Published files get timestamp-qualified, attempt-unique names
- The fallback is a second independent attempt, not a retry
"""

from __future__ import annotations

import importlib.util
import logging
import shutil
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Union

import httpx

from autocaption.config import (
    CAPTION_FONT,
    EXPORTS_DIR,
    EXPORTS_URL_PREFIX,
    FFMPEG_BINARY,
    KEEP_RENDER_TEMP,
    RENDER_BACKENDS,
)
from autocaption.render.base import (
    BackendConfigurationError,
    FrameCompositor,
    PublishedVideo,
    PublishError,
    RenderedVideo,
    RenderJob,
    RenderStageError,
    SubtitleBurner,
)
from autocaption.render.source import parse_video_source, resolve_video_source
from autocaption.render.workspace import RenderWorkspace, timestamp_ms

logger = logging.getLogger(__name__)

FRAME_COMPOSITE = "frame_composite"
SUBTITLE_BURN = "subtitle_burn"
KNOWN_BACKENDS = (FRAME_COMPOSITE, SUBTITLE_BURN)


class RenderOrchestrator:
    """Drives one render attempt per call through a wired-in backend."""

    def __init__(
        self,
        burner: SubtitleBurner,
        compositor: Optional[FrameCompositor] = None,
        exports_dir: Path = EXPORTS_DIR,
        url_prefix: str = EXPORTS_URL_PREFIX,
        keep_temp: bool = KEEP_RENDER_TEMP,
        download_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.burner = burner
        self.compositor = compositor
        self.exports_dir = Path(exports_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.keep_temp = keep_temp
        self._download_transport = download_transport

    @property
    def backends(self) -> List[str]:
        names = [SUBTITLE_BURN]
        if self.compositor is not None:
            names.insert(0, FRAME_COMPOSITE)
        return names

    def _new_workspace(self) -> RenderWorkspace:
        return RenderWorkspace(keep=self.keep_temp)

    def _prepare_source(self, job: RenderJob, workspace: RenderWorkspace) -> Path:
        source = parse_video_source(job.source)
        return resolve_video_source(source, workspace.path, transport=self._download_transport)

    # ------------------------------------------------------------------
    # Frame-composite path (stream flow)
    # ------------------------------------------------------------------

    def render_stream(self, job: RenderJob) -> RenderedVideo:
        """Render with the frame compositor and hand back the file to stream.

        The caller owns the returned workspace and must call
        ``rendered.workspace.cleanup()`` once the bytes are sent.
        """
        if self.compositor is None:
            raise BackendConfigurationError("The frame_composite backend is not configured")

        workspace = self._new_workspace()
        try:
            video_path = self._prepare_source(job, workspace)
            bundle_path = self.compositor.bundle(job, video_path, workspace.path)
            output_path = workspace.file("out", ".mp4")
            self.compositor.render(bundle_path, output_path)
            size = output_path.stat().st_size
        except BaseException:
            workspace.cleanup()
            raise

        logger.info("Frame composite finished: %s (%d bytes)", output_path, size)
        return RenderedVideo(path=output_path, size=size, workspace=workspace)

    # ------------------------------------------------------------------
    # Subtitle-burn path (URL flow)
    # ------------------------------------------------------------------

    def render_published(self, job: RenderJob) -> PublishedVideo:
        """Burn subtitles with ffmpeg and publish the result under exports_dir."""
        with self._new_workspace() as workspace:
            video_path = self._prepare_source(job, workspace)
            output_path = self.burner.burn(job, video_path, workspace.path)
            published = self.publish(output_path, captions_processed=len(job.captions))

        logger.info("Render completed, public URL: %s", published.url)
        return published

    def publish(self, output_path: Path, captions_processed: int) -> PublishedVideo:
        """Move a rendered file into the exports directory under a unique name."""
        file_name = "video-with-captions-{}-{}.mp4".format(timestamp_ms(), uuid.uuid4().hex[:8])
        dest = self.exports_dir / file_name
        try:
            self.exports_dir.mkdir(parents=True, exist_ok=True)
            # shutil.move falls back to copy + unlink across filesystems
            shutil.move(str(output_path), str(dest))
        except OSError as exc:
            raise PublishError("Could not publish {}: {}".format(output_path, exc)) from exc

        return PublishedVideo(
            url="{}/{}".format(self.url_prefix, file_name),
            path=dest,
            captions_processed=captions_processed,
        )

    # ------------------------------------------------------------------
    # Preferred path with fallback
    # ------------------------------------------------------------------

    def export(self, job: RenderJob) -> Union[RenderedVideo, PublishedVideo]:
        """Try the frame-composite path; on failure, run the subtitle-burn path.

        Errors from the subtitle-burn path are terminal and propagate.
        """
        if self.compositor is not None:
            try:
                return self.render_stream(job)
            except (RenderStageError, OSError) as exc:
                logger.warning(
                    "Frame composite failed, falling back to subtitle burn: %s", exc,
                )
        return self.render_published(job)


# ---------------------------------------------------------------------------
# Startup wiring
# ---------------------------------------------------------------------------


def _require_ffmpeg(ffmpeg: str) -> None:
    if shutil.which(ffmpeg) is None:
        raise BackendConfigurationError(
            "subtitle_burn needs ffmpeg, but '{}' was not found. "
            "Install ffmpeg or set FFMPEG_BINARY.".format(ffmpeg)
        )


def _require_moviepy() -> None:
    if importlib.util.find_spec("moviepy") is None:
        raise BackendConfigurationError(
            "frame_composite needs the moviepy package. "
            "Install it or remove frame_composite from RENDER_BACKENDS."
        )


def build_orchestrator(
    backends: Optional[Iterable[str]] = None,
    ffmpeg: str = FFMPEG_BINARY,
    exports_dir: Path = EXPORTS_DIR,
    url_prefix: str = EXPORTS_URL_PREFIX,
    keep_temp: bool = KEEP_RENDER_TEMP,
) -> RenderOrchestrator:
    """Build an orchestrator from configuration, verifying every backend.

    Raises:
        BackendConfigurationError: unknown backend names, subtitle_burn not
            listed, or a listed backend whose dependency is missing.
    """
    from autocaption.render.burn import FFmpegSubtitleBurner
    from autocaption.render.composite import MoviePyCompositor

    names = list(RENDER_BACKENDS if backends is None else backends)

    unknown = [name for name in names if name not in KNOWN_BACKENDS]
    if unknown:
        raise BackendConfigurationError(
            "Unknown render backend(s): {}. Available: {}".format(
                ", ".join(unknown), ", ".join(KNOWN_BACKENDS)
            )
        )
    if SUBTITLE_BURN not in names:
        raise BackendConfigurationError(
            "RENDER_BACKENDS must include subtitle_burn (the fallback path)"
        )

    _require_ffmpeg(ffmpeg)
    burner = FFmpegSubtitleBurner(ffmpeg=ffmpeg)

    compositor = None
    if FRAME_COMPOSITE in names:
        _require_moviepy()
        compositor = MoviePyCompositor(font=CAPTION_FONT)

    orchestrator = RenderOrchestrator(
        burner=burner,
        compositor=compositor,
        exports_dir=exports_dir,
        url_prefix=url_prefix,
        keep_temp=keep_temp,
    )
    logger.info("Render backends wired: %s", ", ".join(orchestrator.backends))
    return orchestrator
