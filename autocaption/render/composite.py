"""Frame-composite render backend.

WHY: The preferred output draws each caption as a styled overlay (boxed,
positioned, faded) rather than plain burned-in subtitles. That work is
heavy and crash-prone, so it runs in its own process: a crash or a
codec error fails the attempt instead of the server.

HOW: bundle() serializes the composition (captions, resolved video,
style, fps and size) to composition.json inside the workspace. render()
launches ``python -m autocaption.render.compositor <bundle> <output>``
and blocks until it exits. Exit code 0 plus an existing output file is
success.

RULES:
- bundle() failures raise BundlingError, render() failures RenderError
- stdout/stderr are captured for diagnostics only
- The output path is always overwritten
"""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from autocaption.render.base import (
    BundlingError,
    FrameCompositor,
    RenderError,
    RenderJob,
)

logger = logging.getLogger(__name__)

COMPOSITION_ID = "Main"
COMPOSITOR_MODULE = "autocaption.render.compositor"


def _tail(text: str, limit: int = 2000) -> str:
    text = (text or "").strip()
    return text[-limit:]


class MoviePyCompositor(FrameCompositor):
    """Runs the moviepy compositor worker as a child process."""

    def __init__(
        self,
        python: Optional[str] = None,
        font: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._python = python or sys.executable
        self._font = font
        self._timeout = timeout

    def bundle(self, job: RenderJob, video_path: Path, workdir: Path) -> Path:
        composition = {
            "composition": COMPOSITION_ID,
            "video": str(video_path),
            "captions": [c.to_dict() for c in job.captions],
            "style": job.style.value,
            "fps": job.fps,
            "width": job.width,
            "height": job.height,
            "font": self._font,
        }
        bundle_path = workdir / "composition.json"
        try:
            bundle_path.write_text(json.dumps(composition, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            raise BundlingError("Could not write composition bundle: {}".format(exc)) from exc

        logger.info("Bundled composition %s with %d captions", bundle_path, len(job.captions))
        return bundle_path

    def command(self, bundle_path: Path, output_path: Path) -> List[str]:
        return [self._python, "-m", COMPOSITOR_MODULE, str(bundle_path), str(output_path)]

    def render(self, bundle_path: Path, output_path: Path) -> Path:
        args = self.command(bundle_path, output_path)
        logger.info("Starting frame composite: %s", " ".join(args))

        try:
            proc = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise RenderError("Could not run compositor: {}".format(exc)) from exc

        if proc.stdout:
            logger.debug("[compositor stdout] %s", proc.stdout)
        if proc.stderr:
            logger.debug("[compositor stderr] %s", proc.stderr)

        if proc.returncode != 0:
            raise RenderError(
                "Compositor exited with code {}: {}".format(proc.returncode, _tail(proc.stderr))
            )
        if not output_path.is_file():
            raise RenderError("Compositor produced no output at {}".format(output_path))

        return output_path
