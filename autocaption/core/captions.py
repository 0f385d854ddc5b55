"""Caption dataclass, validation, and script detection.

WHY: Every layer (segmenter, subtitle codec, both render backends, the
HTTP API) passes the same small record around: a text plus a start and
end time in seconds. Keeping it in one place (with the optional validity
pre-check) gives all of them one contract.

HOW: Caption is a plain dataclass with to_dict/from_dict for the JSON
shape used over HTTP and in composition bundles. Validation is a separate
function so that the codec and renderers stay total over any input.

RULES:
- Times are float seconds; ordering is by start, ascending
- Overlap is neither rejected nor merged here
- Validation never raises; it reports
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

_DEVANAGARI_RE = re.compile(r"[\u0900-\u097F]")
_LATIN_RE = re.compile(r"[a-zA-Z]")


@dataclass
class Caption:
    """A timestamped text segment displayed during playback.

    RULES:
    - text: non-empty after trim for a valid caption
    - start: seconds >= 0
    - end: seconds > start
    - No identity beyond list position
    """

    text: str
    start: float
    end: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Caption:
        return cls(
            text=str(data.get("text", "")),
            start=float(data["start"]),
            end=float(data["end"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "start": self.start, "end": self.end}


def is_valid_caption(caption: Caption) -> bool:
    """Return True if the caption has text and a sane, finite time range."""
    if not caption.text.strip():
        return False
    if not (math.isfinite(caption.start) and math.isfinite(caption.end)):
        return False
    return 0 <= caption.start < caption.end


def invalid_caption_indices(captions: Sequence[Caption]) -> list[int]:
    """Return the positions of captions that fail is_valid_caption()."""
    return [i for i, caption in enumerate(captions) if not is_valid_caption(caption)]


def captions_from_dicts(items: Iterable[dict[str, Any]]) -> list[Caption]:
    return [Caption.from_dict(item) for item in items]


def has_devanagari_script(text: str) -> bool:
    return bool(_DEVANAGARI_RE.search(text))


def detect_language(captions: Sequence[Caption]) -> str:
    """Guess the caption language from the scripts in use.

    Counts captions containing Devanagari and captions containing Latin
    letters. Both present → "mixed"; more Devanagari → "hi"; otherwise "en".
    """
    devanagari_count = 0
    english_count = 0

    for caption in captions:
        if has_devanagari_script(caption.text):
            devanagari_count += 1
        if _LATIN_RE.search(caption.text):
            english_count += 1

    if devanagari_count > 0 and english_count > 0:
        return "mixed"
    if devanagari_count > english_count:
        return "hi"
    return "en"
