"""Configuration constants and .env loading.

WHY: Centralizes every tunable value (provider endpoint, polling cadence,
segmentation thresholds, transcoder binary, export directories, backend
wiring) so they are easy to find and override without touching logic.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values read with os.getenv and a default. load_api_key()
gives a clear error when the provider key is missing.

RULES:
- The API key is loaded from .env / environment, never hardcoded or logged
- All defaults can be overridden via environment variables
- Segmentation thresholds are defaults, not hard limits
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the app is run from)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Transcription provider
# ---------------------------------------------------------------------------

ASSEMBLYAI_BASE_URL = os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2")
POLL_INTERVAL_S = float(os.getenv("POLL_INTERVAL_S", "2"))
POLL_TIMEOUT_S = float(os.getenv("POLL_TIMEOUT_S", "300"))

# ---------------------------------------------------------------------------
# Caption segmentation
# ---------------------------------------------------------------------------

CAPTION_MAX_WORDS = int(os.getenv("CAPTION_MAX_WORDS", "10"))
CHUNK_WORDS = int(os.getenv("CHUNK_WORDS", "8"))
FALLBACK_DURATION_S = float(os.getenv("FALLBACK_DURATION_S", "60"))

# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")
SUBTITLE_FORCE_STYLE = os.getenv("SUBTITLE_FORCE_STYLE", "FontName=DejaVuSans,FontSize=36")
CAPTION_FONT = os.getenv("CAPTION_FONT") or None

RENDER_BACKENDS = [
    name.strip()
    for name in os.getenv("RENDER_BACKENDS", "frame_composite,subtitle_burn").split(",")
    if name.strip()
]
"""Backend keys wired in at startup, in preference order."""

KEEP_RENDER_TEMP = _env_bool("KEEP_RENDER_TEMP", "false")
"""Debug flag: leave each render attempt's temp directory on disk."""

DEFAULT_FPS = 30
DEFAULT_WIDTH = 1280
DEFAULT_HEIGHT = 720

# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

EXPORTS_DIR = Path(os.getenv("EXPORTS_DIR", os.path.join("public", "exports")))
EXPORTS_URL_PREFIX = os.getenv("EXPORTS_URL_PREFIX", "/exports").rstrip("/")
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", tempfile.gettempdir()))
STREAM_CHUNK_SIZE = int(os.getenv("STREAM_CHUNK_SIZE", "65536"))


def load_api_key() -> str:
    """Load the AssemblyAI API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("ASSEMBLYAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "AssemblyAI API key not configured. "
            "Set ASSEMBLYAI_API_KEY in the environment or the .env file."
        )
    return key


def api_key_configured() -> bool:
    """Return True when an API key is present, without exposing it."""
    return bool(os.getenv("ASSEMBLYAI_API_KEY", "").strip())
