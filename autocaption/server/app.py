"""FastAPI application: caption generation, export, and video rendering.

WHY: The editing front end (and curl, scripts, other tools) needs HTTP
endpoints to turn an uploaded video into captions, download those
captions as subtitle files, and render a captioned video, streamed
back when the frame compositor works, published as a URL otherwise.

HOW: A single FastAPI app groups endpoints by tag:
  captions: POST /captions (upload + transcribe + segment),
             POST /captions/export (SRT/VTT download)
  render:   POST /render/download (frame composite, streamed),
             POST /render/video (subtitle burn, URL),
             POST /render (delivery with fallback)
  health:   GET /health
The render orchestrator is built in the lifespan hook so a missing
backend stops the server at startup. Rendered exports are served as
static files under EXPORTS_URL_PREFIX.

RULES:
- Error bodies use ErrorResponse {error, details?}
- 400 bad input, 502/504 provider failure, 500 renderer failure
- Render endpoints are sync and run in the threadpool; they block on
  the backend process for the whole attempt
- API keys never appear in responses
"""

from __future__ import annotations

import logging
import re
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, AsyncIterator, Optional

import httpx
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from autocaption import __version__
from autocaption.api.client import (
    AssemblyAIClient,
    PollTimeoutError,
    TranscriptionAPIError,
    TranscriptionError,
)
from autocaption.config import EXPORTS_DIR, EXPORTS_URL_PREFIX, UPLOADS_DIR, api_key_configured
from autocaption.core.captions import detect_language, invalid_caption_indices
from autocaption.core.segmenter import segment_transcript
from autocaption.formatters import FORMATTERS
from autocaption.render.base import RenderJob, RenderStageError, SourcePreparationError
from autocaption.render.orchestrator import RenderOrchestrator, build_orchestrator
from autocaption.server.delivery import deliver, stream_response
from autocaption.server.models import (
    CaptionModel,
    CaptionsResponse,
    ErrorResponse,
    ExportRequest,
    HealthResponse,
    RenderRequest,
    RenderUrlResponse,
)

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Raised inside endpoints/dependencies to return an ErrorResponse."""

    def __init__(self, status_code: int, error: str, details: Optional[str] = None) -> None:
        self.status_code = status_code
        self.error = error
        self.details = details
        super().__init__(error)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Wire render backends at startup; a missing backend aborts startup."""
    EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
    app.state.orchestrator = build_orchestrator()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Autocaption API",
    description=(
        "Generate captions for a video with a speech-to-text provider, "
        "export them as SRT or WebVTT, and render a captioned MP4 either "
        "streamed back (frame composite) or published to a URL (subtitle burn)."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.mount(
    EXPORTS_URL_PREFIX,
    StaticFiles(directory=str(EXPORTS_DIR), check_dir=False),
    name="exports",
)


@app.exception_handler(APIError)
async def _api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return _error(exc.status_code, exc.error, exc.details)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_transcriber() -> AsyncIterator[AssemblyAIClient]:
    """Yield an authenticated provider client for one request."""
    try:
        client = AssemblyAIClient()
    except ValueError as exc:
        raise APIError(500, "Transcription provider not configured", str(exc))
    async with client:
        yield client


def get_orchestrator(request: Request) -> RenderOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise APIError(500, "Render backends not configured")
    return orchestrator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _render_error(exc: RenderStageError) -> JSONResponse:
    status = 400 if isinstance(exc, SourcePreparationError) else 500
    return _error(status, "Render failed at {}".format(exc.stage), exc.message)


def _sanitize_filename(raw: Optional[str]) -> str:
    name = Path(raw or "").name or "upload.mp4"
    return re.sub(r"[^a-zA-Z0-9.\-_]", "_", name)


def _save_upload(filename: str, data: bytes) -> Path:
    """Keep the uploaded video so it can be used later as a render source."""
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    upload_dir = Path(tempfile.mkdtemp(prefix="autocaption_upload_", dir=str(UPLOADS_DIR)))
    path = upload_dir / filename
    path.write_bytes(data)
    logger.info("Saved uploaded file to %s", path)
    return path


def _render_job(req: RenderRequest) -> RenderJob:
    captions = [c.to_caption() for c in req.captions]
    if req.validate_captions:
        invalid = invalid_caption_indices(captions)
        if invalid:
            raise APIError(
                400,
                "Invalid captions",
                "Captions at positions {} have empty text or an invalid time range".format(
                    ", ".join(str(i) for i in invalid)
                ),
            )
    return RenderJob(
        captions=captions,
        source=req.video_source,
        style=req.style,
        fps=req.fps,
        width=req.width,
        height=req.height,
    )


# ---------------------------------------------------------------------------
# Endpoints: Captions
# ---------------------------------------------------------------------------


@app.post(
    "/captions",
    response_model=CaptionsResponse,
    tags=["captions"],
    summary="Generate captions for a video",
    description=(
        "Upload a video or audio file. The file is transcribed by the "
        "speech-to-text provider and segmented into captions. The response "
        "includes a server-local path that can be passed as a render video source."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "No file provided"},
        500: {"model": ErrorResponse, "description": "Provider not configured"},
        502: {"model": ErrorResponse, "description": "Provider request failed"},
        504: {"model": ErrorResponse, "description": "Transcription timed out"},
    },
)
async def generate_captions(
    file: Annotated[UploadFile, File(description="Video or audio file to caption")],
    client: Annotated[AssemblyAIClient, Depends(get_transcriber)],
):
    data = await file.read()
    if not data:
        return _error(400, "No file provided")

    local_path = _save_upload(_sanitize_filename(file.filename), data)

    try:
        upload_url, transcript = await client.transcribe(data)
    except PollTimeoutError as exc:
        logger.warning("Transcription timed out: %s", exc)
        return _error(504, "Transcription timed out", str(exc))
    except (TranscriptionAPIError, TranscriptionError) as exc:
        logger.warning("Transcription failed: %s", exc)
        return _error(502, "Transcription failed", str(exc))
    except httpx.HTTPError as exc:
        logger.warning("Transcription provider unreachable: %s", exc)
        return _error(502, "Transcription provider unreachable", str(exc))

    result = segment_transcript(transcript)

    return CaptionsResponse(
        captions=[CaptionModel.from_caption(c) for c in result.captions],
        language=transcript.language or detect_language(result.captions),
        full_text=transcript.full_text,
        upload_url=upload_url,
        local_file_path=str(local_path),
        algorithm=result.algorithm,
    )


@app.post(
    "/captions/export",
    tags=["captions"],
    summary="Export captions as a subtitle file",
    description="Serialize captions as SRT or WebVTT and return them as a download.",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown format"},
    },
)
async def export_captions(req: ExportRequest) -> Response:
    key = req.format.lower()
    if key not in FORMATTERS:
        return _error(
            400,
            'Invalid format. Use {}'.format(" or ".join('"{}"'.format(k) for k in sorted(FORMATTERS))),
        )

    output = FORMATTERS[key]().format([c.to_caption() for c in req.captions])
    return Response(
        content=output.content,
        media_type=output.media_type,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(output.filename)},
    )


# ---------------------------------------------------------------------------
# Endpoints: Render
# ---------------------------------------------------------------------------


@app.post(
    "/render/download",
    tags=["render"],
    summary="Render with the frame compositor and stream the MP4",
    description=(
        "Composites styled captions onto every frame and streams the MP4 "
        "back as an attachment. Fails without fallback; use POST /render "
        "for automatic fallback to the subtitle-burn flow."
    ),
    responses={
        200: {"content": {"video/mp4": {}}, "description": "Rendered video"},
        400: {"model": ErrorResponse, "description": "Bad video source or captions"},
        500: {"model": ErrorResponse, "description": "Bundling or rendering failed"},
    },
)
def render_download(
    req: RenderRequest,
    orchestrator: Annotated[RenderOrchestrator, Depends(get_orchestrator)],
) -> Response:
    job = _render_job(req)
    try:
        rendered = orchestrator.render_stream(job)
    except RenderStageError as exc:
        logger.error("Frame composite render failed: %s", exc)
        return _render_error(exc)
    return stream_response(rendered)


@app.post(
    "/render/video",
    response_model=RenderUrlResponse,
    tags=["render"],
    summary="Burn subtitles with ffmpeg and return a URL",
    description=(
        "Burns the captions into the video as subtitles, publishes the MP4 "
        "in the exports directory, and returns its URL."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Bad video source or captions"},
        500: {"model": ErrorResponse, "description": "Transcoding failed"},
    },
)
def render_video(
    req: RenderRequest,
    orchestrator: Annotated[RenderOrchestrator, Depends(get_orchestrator)],
):
    job = _render_job(req)
    try:
        published = orchestrator.render_published(job)
    except RenderStageError as exc:
        logger.error("Subtitle burn render failed: %s", exc)
        return _render_error(exc)
    return RenderUrlResponse(url=published.url, captions_processed=published.captions_processed)


@app.post(
    "/render",
    tags=["render"],
    summary="Render a captioned video with fallback",
    description=(
        "Tries the frame-composite flow and streams the MP4 back. If that "
        "fails at any stage, runs the subtitle-burn flow and returns a JSON "
        "envelope with the published URL. Fails only if both flows fail."
    ),
    responses={
        200: {
            "content": {"video/mp4": {}, "application/json": {}},
            "description": "Streamed video, or {success, url, captionsProcessed}",
        },
        400: {"model": ErrorResponse, "description": "Bad video source or captions"},
        500: {"model": ErrorResponse, "description": "Both render flows failed"},
    },
)
def render(
    req: RenderRequest,
    orchestrator: Annotated[RenderOrchestrator, Depends(get_orchestrator)],
) -> Response:
    job = _render_job(req)
    try:
        return deliver(orchestrator, job)
    except RenderStageError as exc:
        logger.error("Render failed in both flows: %s", exc)
        return _render_error(exc)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check reporting which external services are configured.",
)
async def health_check(request: Request) -> HealthResponse:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    backends = ",".join(orchestrator.backends) if orchestrator is not None else "not_configured"
    return HealthResponse(
        status="ok",
        version=__version__,
        services={
            "transcription": "configured" if api_key_configured() else "not_configured",
            "render_backends": backends,
        },
    )


def run_api(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for the autocaption-api console script."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
