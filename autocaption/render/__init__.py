"""Video rendering: source resolution, backends, orchestration.

WHY: Burning captions into a video is the slow, failure-prone end of the
pipeline. This package isolates it behind RenderOrchestrator so the HTTP
layer and CLI only deal with a RenderJob in and a file or URL out.

HOW: base.py holds types, interfaces and errors; source.py and
workspace.py prepare each attempt; composite.py/compositor.py and burn.py
are the two backends; orchestrator.py sequences them.

RULES:
- Backends are chosen at startup by build_orchestrator()
- Frame-composite failures fall back to subtitle burn at runtime
"""

from autocaption.render.base import (
    PublishedVideo,
    RenderedVideo,
    RenderJob,
    RenderStageError,
    RenderStyle,
)
from autocaption.render.orchestrator import RenderOrchestrator, build_orchestrator

__all__ = [
    "PublishedVideo",
    "RenderJob",
    "RenderOrchestrator",
    "RenderStageError",
    "RenderStyle",
    "RenderedVideo",
    "build_orchestrator",
]
