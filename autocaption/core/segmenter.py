"""Transcript-to-caption segmentation.

WHY: A word-timed transcript is far too granular to display, and a
sentence-level one can run for half a minute. Captions have to be short
enough to read on screen yet still break at natural sentence boundaries
when the provider gives us punctuation.

HOW: Two algorithms, chosen by what the transcript contains:

  group_words: word timings available. Accumulate words; close a group
                at max_words or after a word with terminal punctuation.
  chunk_text:  text only. Fixed chunks of chunk_words laid back-to-back
                from t=0, each lasting a proportional share of the total
                duration, floored at MIN_CHUNK_DURATION_S.

segment_transcript() tries group_words first and falls back to
chunk_text when that yields nothing and the transcript has text.

RULES:
- Pure functions: no I/O, no raising on empty or degenerate input
- Timestamps are rounded half-up to whole milliseconds, then to seconds
- A closed group without an end time ends 500ms after its last word
  starts; the trailing partial group uses 1000ms instead
- Defaults (10 words / 8 words / 60s) are configurable, not hard limits
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from autocaption.api.models import Transcript, TranscriptWord
from autocaption.config import CAPTION_MAX_WORDS, CHUNK_WORDS, FALLBACK_DURATION_S
from autocaption.core.captions import Caption

logger = logging.getLogger(__name__)

CLOSE_END_FALLBACK_MS = 500
TRAILING_END_FALLBACK_MS = 1000
MIN_CHUNK_DURATION_S = 1.5


@dataclass
class SegmenterSettings:
    """Tunable thresholds for both segmentation algorithms."""

    max_words: int = CAPTION_MAX_WORDS
    chunk_words: int = CHUNK_WORDS
    fallback_duration_s: float = FALLBACK_DURATION_S


@dataclass
class SegmentationResult:
    """Captions plus which algorithm produced them ("words", "chunks" or "none")."""

    captions: list[Caption]
    algorithm: str


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _ms_to_seconds(ms: float) -> float:
    return _round_half_up(ms) / 1000


def _round_seconds(seconds: float) -> float:
    return _round_half_up(seconds * 1000) / 1000


def group_words(
    words: Sequence[TranscriptWord],
    max_words: int = CAPTION_MAX_WORDS,
) -> list[Caption]:
    """Group word-timed transcript words into captions.

    A group closes when it reaches max_words or when the word just added
    carries terminal punctuation. Any leftover partial group is flushed
    as a final caption.
    """
    captions: list[Caption] = []
    current: list[str] = []
    start_ms: float = 0

    for word in words:
        if not current:
            start_ms = word.start_ms
        current.append(word.text)

        if len(current) >= max_words or word.terminal_punctuation:
            end_ms = word.end_ms
            if end_ms is None:
                end_ms = word.start_ms + CLOSE_END_FALLBACK_MS
            captions.append(Caption(
                text=" ".join(current),
                start=_ms_to_seconds(start_ms),
                end=_ms_to_seconds(end_ms),
            ))
            current = []

    if current:
        last = words[-1]
        end_ms = last.end_ms
        if end_ms is None:
            end_ms = last.start_ms + TRAILING_END_FALLBACK_MS
        captions.append(Caption(
            text=" ".join(current),
            start=_ms_to_seconds(start_ms),
            end=_ms_to_seconds(end_ms),
        ))

    return captions


def chunk_text(
    text: str | None,
    duration_s: float = FALLBACK_DURATION_S,
    chunk_words: int = CHUNK_WORDS,
) -> list[Caption]:
    """Split untimed text into fixed-size captions spread over duration_s."""
    if not text or not text.strip():
        return []

    words = text.split()
    est_duration = max(
        MIN_CHUNK_DURATION_S,
        (chunk_words / max(1, len(words))) * duration_s,
    )

    captions: list[Caption] = []
    start_s = 0.0
    for i in range(0, len(words), chunk_words):
        captions.append(Caption(
            text=" ".join(words[i:i + chunk_words]),
            start=_round_seconds(start_s),
            end=_round_seconds(start_s + est_duration),
        ))
        start_s += est_duration

    return captions


def segment_transcript(
    transcript: Transcript,
    settings: SegmenterSettings | None = None,
) -> SegmentationResult:
    """Turn a completed transcript into captions, choosing the algorithm.

    Word-grouping runs first. If it yields no captions and the transcript
    has text, the fixed-chunk fallback runs over the provider's reported
    duration (or settings.fallback_duration_s when none was reported).
    """
    settings = settings or SegmenterSettings()

    captions = group_words(transcript.words, max_words=settings.max_words)
    algorithm = "words"

    if not captions and transcript.text and transcript.text.strip():
        duration = transcript.audio_length_sec
        if duration is None:
            duration = settings.fallback_duration_s
        captions = chunk_text(
            transcript.text,
            duration_s=duration,
            chunk_words=settings.chunk_words,
        )
        algorithm = "chunks"
    elif not captions:
        algorithm = "none"

    logger.info(
        "Segmented transcript %s into %d captions (%s)",
        transcript.id, len(captions), algorithm,
        extra={"captions": len(captions), "algorithm": algorithm},
    )
    return SegmentationResult(captions=captions, algorithm=algorithm)
