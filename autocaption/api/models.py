"""AssemblyAI response dataclasses.

WHY: The provider returns loosely-typed JSON for transcript status and
word timings. Typed dataclasses make the fields the segmenter relies on
explicit and keep key-name quirks in one place.

HOW: Each dataclass maps to one provider JSON object. from_dict factories
parse raw responses; missing optional fields become None.

RULES:
- All provider timings are integer milliseconds
- end_ms may be absent; the segmenter supplies a fallback
- terminal_punctuation is taken from an explicit "punctuation" field when
  present, otherwise inferred from the word text ending in . ! or ?
- status is one of: "queued", "processing", "completed", "error"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

TERMINAL_PUNCTUATION = (".", "!", "?")


@dataclass
class TranscriptWord:
    """One word of a provider transcript with its timing.

    RULES:
    - text: the word as returned, punctuation attached (e.g. "world.")
    - start_ms: word start in milliseconds (0 when the provider omits it)
    - end_ms: word end in milliseconds, or None
    - terminal_punctuation: True if this word ends a sentence
    """

    text: str
    start_ms: float
    end_ms: float | None = None
    terminal_punctuation: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptWord:
        text = str(data.get("text", ""))
        start = data.get("start", data.get("s"))
        end = data.get("end", data.get("e"))

        punctuation = data.get("punctuation")
        if "terminal_punctuation" in data:
            terminal = bool(data["terminal_punctuation"])
        elif punctuation is not None:
            terminal = punctuation in TERMINAL_PUNCTUATION
        else:
            terminal = text.rstrip().endswith(TERMINAL_PUNCTUATION)

        return cls(
            text=text,
            start_ms=start if start is not None else 0,
            end_ms=end,
            terminal_punctuation=terminal,
        )


@dataclass
class Transcript:
    """A transcript job as reported by GET /transcript/{id}.

    WHY: The polling loop and the segmenter both read this object: the
    former for status/error, the latter for words, text and duration.

    RULES:
    - words is empty until status is "completed" (and may stay empty)
    - audio_length_sec is None when the provider did not report it
    - language prefers "language", falling back to "language_code"
    """

    id: str
    status: str
    words: list[TranscriptWord] = field(default_factory=list)
    text: str | None = None
    error: str | None = None
    language: str | None = None
    audio_length_sec: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transcript:
        raw_words = data.get("words") or []
        duration = data.get("audio_length_sec", data.get("duration"))
        return cls(
            id=str(data["id"]),
            status=str(data["status"]),
            words=[TranscriptWord.from_dict(w) for w in raw_words],
            text=data.get("text"),
            error=data.get("error"),
            language=data.get("language") or data.get("language_code"),
            audio_length_sec=float(duration) if duration is not None else None,
        )

    @property
    def full_text(self) -> str:
        """Provider text, or the space-joined word texts when text is absent."""
        if self.text:
            return self.text
        return " ".join(w.text for w in self.words)
