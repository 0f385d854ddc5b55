"""Delivery of rendered videos: byte stream or public URL.

WHY: The two render paths finish in different shapes. The frame-composite
path leaves an MP4 in a temp workspace that should be streamed back and
then deleted; the subtitle-burn path publishes the MP4 and only a URL
needs to go back. Callers want one call that picks the right shape and
prefers streaming.

HOW: deliver() runs RenderOrchestrator.export() (stream first, URL flow
as fallback) and maps the result: RenderedVideo → stream_response(),
PublishedVideo → url_response().

RULES:
- Stream responses carry Content-Type, Content-Length and an attachment
  Content-Disposition
- The workspace is cleaned up after the last chunk is sent
- If a streaming response cannot be built, the file is buffered and
  returned whole; this is a degradation, not an error
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.background import BackgroundTask

from autocaption.config import STREAM_CHUNK_SIZE
from autocaption.render.base import PublishedVideo, RenderedVideo, RenderJob
from autocaption.render.orchestrator import RenderOrchestrator
from autocaption.server.models import RenderUrlResponse

logger = logging.getLogger(__name__)

DOWNLOAD_FILENAME = "video-with-captions.mp4"


def _iter_file(path: Path, chunk_size: int) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield chunk


def _download_headers(size: int) -> dict:
    return {
        "Content-Disposition": 'attachment; filename="{}"'.format(DOWNLOAD_FILENAME),
        "Content-Length": str(size),
    }


def buffered_response(rendered: RenderedVideo) -> Response:
    """Read the whole file into memory, clean up, and return it."""
    try:
        content = rendered.path.read_bytes()
    finally:
        rendered.workspace.cleanup()

    logger.info("Returning buffered video, size: %d", len(content))
    return Response(
        content=content,
        media_type="video/mp4",
        headers=_download_headers(len(content)),
    )


def stream_response(
    rendered: RenderedVideo,
    streaming: bool = True,
    chunk_size: int = STREAM_CHUNK_SIZE,
) -> Response:
    """Stream a rendered video, falling back to a buffered body."""
    if not streaming:
        return buffered_response(rendered)

    try:
        response = StreamingResponse(
            _iter_file(rendered.path, chunk_size),
            media_type="video/mp4",
            headers=_download_headers(rendered.size),
            background=BackgroundTask(rendered.workspace.cleanup),
        )
    except (TypeError, RuntimeError) as exc:
        logger.warning("Streaming unavailable (%s), buffering response", exc)
        return buffered_response(rendered)

    logger.info("Streaming video back, size: %d", rendered.size)
    return response


def url_response(published: PublishedVideo) -> JSONResponse:
    body = RenderUrlResponse(
        url=published.url,
        captions_processed=published.captions_processed,
    )
    return JSONResponse(content=body.model_dump(by_alias=True))


def deliver(
    orchestrator: RenderOrchestrator,
    job: RenderJob,
    streaming: bool = True,
) -> Response:
    """Render with fallback and return whichever response shape succeeded.

    Raises whatever the subtitle-burn path raises when both flows fail.
    """
    result = orchestrator.export(job)
    if isinstance(result, RenderedVideo):
        return stream_response(result, streaming=streaming)
    return url_response(result)
