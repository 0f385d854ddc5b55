"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and the OpenAPI docs. Pydantic enforces field
types at runtime so malformed caption lists are rejected before any
render work starts.

HOW: One model per request/response body. Field names are snake_case in
Python; the render request also accepts the camelCase keys browser
clients send (``videoSource``, ``inputVideoUrl``) and the URL-flow
response serializes ``captionsProcessed`` in camelCase.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Error bodies always use ErrorResponse: {error, details?}
- Python 3.9+ compatible (Optional/List from typing)
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from autocaption.config import DEFAULT_FPS, DEFAULT_HEIGHT, DEFAULT_WIDTH
from autocaption.core.captions import Caption
from autocaption.render.base import RenderStyle


class CaptionModel(BaseModel):
    """A caption as exchanged with clients."""

    text: str = Field(description="Caption text.")
    start: float = Field(description="Start time in seconds.")
    end: float = Field(description="End time in seconds.")

    def to_caption(self) -> Caption:
        return Caption(text=self.text, start=self.start, end=self.end)

    @classmethod
    def from_caption(cls, caption: Caption) -> CaptionModel:
        return cls(text=caption.text, start=caption.start, end=caption.end)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ExportRequest(BaseModel):
    """Captions to serialize as a subtitle file."""

    captions: List[CaptionModel] = Field(description="Captions to export.")
    format: str = Field(description="Subtitle format: 'srt' or 'vtt'.")


class RenderRequest(BaseModel):
    """Parameters of one render attempt.

    RULES:
    - video_source accepts an http(s) URL, an absolute path, or a file:// URI
    - validate_captions rejects empty text / bad ranges with 400 before rendering
    """

    model_config = ConfigDict(populate_by_name=True)

    captions: List[CaptionModel] = Field(description="Captions to render.")
    style: RenderStyle = Field(
        default=RenderStyle.BOTTOM,
        description="Caption style preset: bottom, top or karaoke.",
    )
    video_source: str = Field(
        default="",
        validation_alias=AliasChoices("video_source", "videoSource", "inputVideoUrl"),
        description="Input video: http(s) URL, absolute path, or file:// URI.",
    )
    fps: int = Field(default=DEFAULT_FPS, gt=0, description="Output frame rate.")
    width: int = Field(default=DEFAULT_WIDTH, gt=0, description="Output width in pixels.")
    height: int = Field(default=DEFAULT_HEIGHT, gt=0, description="Output height in pixels.")
    validate_captions: bool = Field(
        default=False,
        description="Reject captions with empty text or invalid time ranges.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class CaptionsResponse(BaseModel):
    """Captions generated from an uploaded video."""

    captions: List[CaptionModel] = Field(description="Segmented captions.")
    language: str = Field(description="Provider language code, or a detected 'en'/'hi'/'mixed'.")
    full_text: str = Field(description="Full transcript text.")
    upload_url: str = Field(description="Provider URL of the uploaded media.")
    local_file_path: str = Field(description="Server-local copy usable as a render video source.")
    algorithm: str = Field(description="Segmentation used: 'words', 'chunks' or 'none'.")


class RenderUrlResponse(BaseModel):
    """Result of the URL flow: the rendered video is served from a public URL."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="Always true for a completed render.")
    url: str = Field(description="Public URL of the rendered video.")
    captions_processed: int = Field(
        serialization_alias="captionsProcessed",
        description="Number of captions burned into the video.",
    )


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - error names the failing stage
    - details carries the underlying message, never secrets
    """

    error: str = Field(description="Short description of what failed.")
    details: Optional[str] = Field(default=None, description="Underlying error message.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
    services: Dict[str, str] = Field(description="Configuration state of external services.")
