"""Render job types, backend interfaces, and render-stage errors.

WHY: Two very different renderers can produce a captioned MP4: a
frame compositor that draws styled overlays on every frame, and a
transcoder that burns an SRT file into the pixels. The orchestrator must
treat them as interchangeable capabilities chosen at configuration time,
not discovered by try/except at request time.

HOW: RenderJob is the immutable parameter tuple of one attempt.
FrameCompositor and SubtitleBurner are ABCs; concrete backends live in
composite.py and burn.py. Every failure in the render pipeline is a
RenderStageError subclass carrying the stage name.

RULES:
- A RenderJob parameterizes exactly one attempt
- Backends receive an already-resolved local video path
- Backends write only inside the workspace they are handed
- Errors name their stage so callers can tell input, provider and
  renderer failures apart
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from autocaption.config import DEFAULT_FPS, DEFAULT_HEIGHT, DEFAULT_WIDTH
from autocaption.core.captions import Caption

if TYPE_CHECKING:
    from autocaption.render.workspace import RenderWorkspace


class RenderStyle(str, enum.Enum):
    """On-screen caption placement/appearance presets."""

    BOTTOM = "bottom"
    TOP = "top"
    KARAOKE = "karaoke"


@dataclass(frozen=True)
class RenderJob:
    """Everything one render attempt needs.

    RULES:
    - source: the caller's video reference, resolved once per attempt
    - fps/width/height default to 30 / 1280 / 720
    """

    captions: List[Caption]
    source: str
    style: RenderStyle = RenderStyle.BOTTOM
    fps: int = DEFAULT_FPS
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT


@dataclass
class RenderedVideo:
    """A finished MP4 still inside its attempt's workspace (stream flow)."""

    path: Path
    size: int
    workspace: RenderWorkspace = field(repr=False)


@dataclass
class PublishedVideo:
    """A finished MP4 moved to the public exports directory (URL flow)."""

    url: str
    path: Path
    captions_processed: int


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RenderStageError(Exception):
    """Base class for failures anywhere in the render pipeline."""

    stage = "render"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{self.stage}: {message}")


class SourcePreparationError(RenderStageError):
    """The video source is missing, unsupported, or failed to download."""

    stage = "source preparation"


class BundlingError(RenderStageError):
    """The composition definition could not be assembled."""

    stage = "bundling"


class RenderError(RenderStageError):
    """The frame compositor process failed."""

    stage = "frame composite"


class TranscodeError(RenderStageError):
    """The subtitle-burn transcoder exited unsuccessfully.

    RULES:
    - exit_code is the process exit status, or None if it never started
    """

    stage = "subtitle burn"

    def __init__(self, message: str, exit_code: Optional[int] = None) -> None:
        self.exit_code = exit_code
        super().__init__(message)


class BackendConfigurationError(RenderStageError):
    """A required render backend is not available at startup."""

    stage = "configuration"


class PublishError(RenderStageError):
    """The rendered file could not be moved to the exports directory."""

    stage = "publish"


# ---------------------------------------------------------------------------
# Backend interfaces
# ---------------------------------------------------------------------------


class FrameCompositor(ABC):
    """Composites styled caption overlays onto each frame of a video.

    Two steps, each with its own failure type: bundle() writes the
    composition definition (BundlingError), render() turns it into an
    MP4 (RenderError).
    """

    name = "frame_composite"

    @abstractmethod
    def bundle(self, job: RenderJob, video_path: Path, workdir: Path) -> Path:
        """Write the composition definition and return its path."""

    @abstractmethod
    def render(self, bundle_path: Path, output_path: Path) -> Path:
        """Render the bundled composition to output_path (overwriting)."""


class SubtitleBurner(ABC):
    """Re-encodes a video with subtitles rasterized into the pixels."""

    name = "subtitle_burn"

    @abstractmethod
    def burn(self, job: RenderJob, video_path: Path, workdir: Path) -> Path:
        """Burn the job's captions into video_path; return the new MP4 path."""
