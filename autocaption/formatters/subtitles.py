"""SRT and WebVTT serialization of captions.

WHY: Both render backends and the export endpoint need captions as a
standard subtitle file: SRT for the ffmpeg subtitles filter and for
download, WebVTT for browsers.

HOW: One timestamp routine formats seconds as HH:MM:SS,mmm; SRT uses it
as-is, WebVTT swaps the comma for a period. parse_timestamp and
parse_srt invert the formatting for import and round-trip checks.

RULES:
- Pure and total: any caption list, including empty, serializes
- Seconds are rounded half-up to whole milliseconds, then split with
  floor division; non-finite or negative input clamps to zero
- No ordering or overlap validation at this layer
- to_srt([]) == "" and to_vtt([]) == "WEBVTT\\n\\n"
"""

from __future__ import annotations

import math
import re
from typing import List, Sequence

from autocaption.core.captions import Caption
from autocaption.formatters.base import BaseFormatter, FormatterOutput

VTT_HEADER = "WEBVTT\n\n"

_TIMESTAMP_RE = re.compile(r"^\s*(\d+):(\d{1,2}):(\d{1,2})[,.](\d{1,3})\s*$")
_ARROW = " --> "


def format_timestamp(seconds: float, separator: str = ",") -> str:
    """Format seconds as HH:MM:SS,mmm (or HH:MM:SS.mmm with separator=".")."""
    if not math.isfinite(seconds):
        seconds = 0.0
    total_ms = max(0, int(math.floor(seconds * 1000 + 0.5)))

    ms = total_ms % 1000
    total_s = total_ms // 1000
    secs = total_s % 60
    minutes = (total_s // 60) % 60
    hours = total_s // 3600

    return "{:02d}:{:02d}:{:02d}{}{:03d}".format(hours, minutes, secs, separator, ms)


def parse_timestamp(value: str) -> float:
    """Parse HH:MM:SS,mmm or HH:MM:SS.mmm into float seconds.

    Raises ValueError on anything that is not a timestamp.
    """
    match = _TIMESTAMP_RE.match(value)
    if not match:
        raise ValueError("Not a subtitle timestamp: {!r}".format(value))
    hours, minutes, secs, ms = match.groups()
    total_ms = (
        int(hours) * 3_600_000
        + int(minutes) * 60_000
        + int(secs) * 1000
        + int(ms.ljust(3, "0"))
    )
    return total_ms / 1000


def _clean_text(text: str) -> str:
    return (text or "").replace("\r", "").strip()


def to_srt(captions: Sequence[Caption]) -> str:
    """Serialize captions as SRT: numbered blocks separated by a blank line."""
    blocks = []
    for idx, caption in enumerate(captions, start=1):
        blocks.append("{}\n{}{}{}\n{}\n".format(
            idx,
            format_timestamp(caption.start),
            _ARROW,
            format_timestamp(caption.end),
            _clean_text(caption.text),
        ))
    return "\n".join(blocks)


def to_vtt(captions: Sequence[Caption]) -> str:
    """Serialize captions as WebVTT: header, blank line, unnumbered cues."""
    cues = []
    for caption in captions:
        cues.append("{}{}{}\n{}".format(
            format_timestamp(caption.start, separator="."),
            _ARROW,
            format_timestamp(caption.end, separator="."),
            _clean_text(caption.text),
        ))
    return VTT_HEADER + "\n\n".join(cues)


def parse_srt(content: str) -> List[Caption]:
    """Parse SRT text back into captions.

    Blocks without a valid timing line are skipped. Multi-line cue text is
    joined with newlines.
    """
    captions: List[Caption] = []
    normalized = content.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")

    for block in re.split(r"\n\s*\n", normalized.strip()):
        lines = [line for line in block.split("\n") if line.strip()]
        timing_idx = next((i for i, line in enumerate(lines) if "-->" in line), None)
        if timing_idx is None:
            continue
        start_raw, _, end_raw = lines[timing_idx].partition("-->")
        # cue settings may follow the end time
        end_fields = end_raw.split()
        try:
            start = parse_timestamp(start_raw)
            end = parse_timestamp(end_fields[0] if end_fields else "")
        except ValueError:
            continue
        text = "\n".join(lines[timing_idx + 1:])
        captions.append(Caption(text=text, start=start, end=end))

    return captions


class SRTFormatter(BaseFormatter):
    """Caption export as a SubRip file."""

    @property
    def name(self) -> str:
        return "SubRip (SRT)"

    def format(self, captions: Sequence[Caption]) -> FormatterOutput:
        return FormatterOutput(
            filename="captions.srt",
            content=to_srt(captions),
            media_type="application/x-subrip",
        )


class VTTFormatter(BaseFormatter):
    """Caption export as a WebVTT file."""

    @property
    def name(self) -> str:
        return "WebVTT"

    def format(self, captions: Sequence[Caption]) -> FormatterOutput:
        return FormatterOutput(
            filename="captions.vtt",
            content=to_vtt(captions),
            media_type="text/vtt",
        )
