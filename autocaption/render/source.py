"""Video source references and their resolution to a local file.

WHY: Callers name the input video three ways: an HTTP(S) URL, a local
absolute path (POSIX or Windows-style), or a file:// URI. Renderers only
understand a local path inside the attempt's workspace, so the reference
is classified once at job start and then resolved to a private copy.

HOW: parse_video_source() turns the raw string into a VideoSource tagged
with its SourceKind. resolve_video_source() copies local files into the
workspace, or streams a remote body to disk with httpx.

RULES:
- Exactly one kind per reference; classification happens once
- Local sources are copied so the renderer never depends on a path
  outside the workspace and survives deletion of the original
- Any failure raises SourcePreparationError
"""

from __future__ import annotations

import enum
import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from autocaption.render.base import SourcePreparationError
from autocaption.render.workspace import timestamp_ms

logger = logging.getLogger(__name__)

_WINDOWS_ABSOLUTE_RE = re.compile(r"^[A-Za-z]:[\\/]")
_DOWNLOAD_TIMEOUT = httpx.Timeout(300.0, connect=30.0)


class SourceKind(str, enum.Enum):
    REMOTE_URL = "remote_url"
    LOCAL_PATH = "local_path"
    FILE_URI = "file_uri"


@dataclass(frozen=True)
class VideoSource:
    """A classified video reference.

    RULES:
    - kind: which of the three forms the caller used
    - location: the URL for REMOTE_URL, a filesystem path otherwise
    """

    kind: SourceKind
    location: str

    @property
    def is_remote(self) -> bool:
        return self.kind == SourceKind.REMOTE_URL


def _file_uri_to_path(uri: str) -> str:
    parsed = urlparse(uri)
    path = unquote(parsed.path)
    if parsed.netloc and parsed.netloc != "localhost":
        # UNC share: file://server/share/video.mp4
        path = "//{}{}".format(parsed.netloc, path)
    # file:///C:/Users/... → C:/Users/...
    if re.match(r"^/[A-Za-z]:/", path):
        path = path[1:]
    return path


def parse_video_source(reference: str) -> VideoSource:
    """Classify a raw video reference.

    Raises:
        SourcePreparationError: empty or unrecognized references.
    """
    ref = (reference or "").strip()
    if not ref:
        raise SourcePreparationError("No video source provided")

    lowered = ref.lower()
    if lowered.startswith(("http://", "https://")):
        return VideoSource(SourceKind.REMOTE_URL, ref)
    if lowered.startswith("file://"):
        return VideoSource(SourceKind.FILE_URI, _file_uri_to_path(ref))
    if _WINDOWS_ABSOLUTE_RE.match(ref) or os.path.isabs(ref):
        return VideoSource(SourceKind.LOCAL_PATH, ref)

    raise SourcePreparationError("Unsupported video source format: {}".format(ref))


def _local_basename(location: str) -> str:
    if _WINDOWS_ABSOLUTE_RE.match(location):
        return PureWindowsPath(location).name
    return Path(location).name


def download_to_file(
    url: str,
    dest: Path,
    transport: Optional[httpx.BaseTransport] = None,
) -> Path:
    """Stream a remote body to dest. Raises SourcePreparationError on failure."""
    try:
        with httpx.Client(
            timeout=_DOWNLOAD_TIMEOUT,
            follow_redirects=True,
            transport=transport,
        ) as client:
            with client.stream("GET", url) as resp:
                if not resp.is_success:
                    raise SourcePreparationError(
                        "Failed to download {}: {}".format(url, resp.status_code)
                    )
                with open(dest, "wb") as f:
                    for chunk in resp.iter_bytes():
                        f.write(chunk)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise SourcePreparationError("Failed to download {}: {}".format(url, exc)) from exc
    except OSError as exc:
        raise SourcePreparationError("Failed to write {}: {}".format(dest, exc)) from exc

    return dest


def resolve_video_source(
    source: VideoSource,
    workdir: Path,
    transport: Optional[httpx.BaseTransport] = None,
) -> Path:
    """Materialize the source as a file inside workdir and return its path."""
    if source.is_remote:
        dest = workdir / "input-{}.mp4".format(timestamp_ms())
        logger.info("Downloading remote video %s", source.location)
        return download_to_file(source.location, dest, transport=transport)

    local = Path(source.location)
    if not local.is_file():
        raise SourcePreparationError("Local file not found: {}".format(source.location))

    dest = workdir / _local_basename(source.location)
    try:
        shutil.copyfile(local, dest)
    except OSError as exc:
        raise SourcePreparationError(
            "Failed to copy {}: {}".format(source.location, exc)
        ) from exc

    logger.info("Copied local video %s into %s", source.location, workdir)
    return dest
