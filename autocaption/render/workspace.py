"""Per-attempt temporary working directory.

WHY: Every render attempt downloads or copies a source video, writes an
SRT or composition bundle, and produces an MP4. Attempts must never share
files, and their scratch space must not pile up on disk.

HOW: RenderWorkspace wraps tempfile.mkdtemp(). It is a context manager
whose exit calls cleanup(); cleanup() removes the tree unless the
KEEP_RENDER_TEMP debug flag (or keep=True) asks to leave it for
inspection. Output file names carry a millisecond timestamp.

RULES:
- A fresh directory per attempt; never reused
- cleanup() is idempotent and never raises; failures are logged
- Kept directories are logged so they can be found again
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from pathlib import Path
from typing import Optional

from autocaption.config import KEEP_RENDER_TEMP

logger = logging.getLogger(__name__)


def timestamp_ms() -> int:
    return int(time.time() * 1000)


class RenderWorkspace:
    """A private temp directory owned by one render attempt."""

    def __init__(
        self,
        prefix: str = "autocaption_render_",
        keep: Optional[bool] = None,
        base_dir: Optional[Path] = None,
    ) -> None:
        self.path = Path(tempfile.mkdtemp(prefix=prefix, dir=base_dir))
        self.keep = KEEP_RENDER_TEMP if keep is None else keep
        self._closed = False
        logger.debug("Created render workspace %s", self.path)

    def file(self, stem: str, suffix: str) -> Path:
        """Return a timestamp-qualified path inside the workspace."""
        return self.path / "{}-{}{}".format(stem, timestamp_ms(), suffix)

    def cleanup(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self.keep:
            logger.info("Keeping render workspace for inspection: %s", self.path)
            return

        if self.path.exists():
            try:
                shutil.rmtree(self.path)
            except OSError:
                logger.warning("Failed to clean up render workspace: %s", self.path)

    def __enter__(self) -> RenderWorkspace:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.cleanup()
