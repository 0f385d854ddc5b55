"""Subtitle formatter registry.

WHY: The export endpoint and the CLI select an output format by a short
key ("srt", "vtt"). A central dict keeps that lookup in one place.

HOW: FORMATTERS maps keys to formatter *classes*; callers instantiate as
needed: ``FORMATTERS["srt"]().format(captions)``.

RULES:
- Keys are lowercase file extensions
- Values are BaseFormatter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from autocaption.formatters.subtitles import SRTFormatter, VTTFormatter

if TYPE_CHECKING:
    from autocaption.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "srt": SRTFormatter,
    "vtt": VTTFormatter,
}
