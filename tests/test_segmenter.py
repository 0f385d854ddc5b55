"""Tests for transcript-to-caption segmentation.

WHY: Caption boundaries and timings decide what viewers read and when.
Off-by-one word counts or a missing end-time fallback shift every
following caption.

HOW: group_words and chunk_text are exercised directly with small word
lists; segment_transcript is tested for algorithm selection using
Transcript objects built from provider-shaped dicts.

RULES:
- No I/O, no network
- Expected timestamps are written out in seconds
"""

import math

from autocaption.api.models import Transcript, TranscriptWord
from autocaption.core.segmenter import (
    SegmenterSettings,
    chunk_text,
    group_words,
    segment_transcript,
)


def _word(text, start_ms, end_ms=None, terminal=None):
    if terminal is None:
        terminal = text.endswith((".", "!", "?"))
    return TranscriptWord(text=text, start_ms=start_ms, end_ms=end_ms, terminal_punctuation=terminal)


class TestGroupWords:
    """Word-timed grouping."""

    def test_sentence_closes_at_terminal_punctuation(self):
        words = [_word("Hello", 0, 400), _word("world.", 450, 900)]
        captions = group_words(words)
        assert len(captions) == 1
        assert captions[0].text == "Hello world."
        assert captions[0].start == 0.0
        assert captions[0].end == 0.9

    def test_group_capped_at_max_words(self):
        words = [_word("w{}".format(i), i * 100, i * 100 + 80) for i in range(25)]
        captions = group_words(words, max_words=10)
        assert [len(c.text.split()) for c in captions] == [10, 10, 5]

    def test_word_count_preserved(self, sample_transcript):
        captions = group_words(sample_transcript.words)
        total = sum(len(c.text.split()) for c in captions)
        assert total == len(sample_transcript.words)

    def test_long_mixed_transcript_is_ordered_and_complete(self):
        words = []
        for i in range(37):
            text = "w{}".format(i)
            if i % 7 == 6:
                text += "."
            elif i % 11 == 10:
                text += "?"
            elif i % 5 == 4:
                text += ","
            start = i * 600
            end = None if i % 3 == 2 else start + 300
            words.append(_word(text, start, end))

        captions = group_words(words)

        assert sum(len(c.text.split()) for c in captions) == len(words)
        assert " ".join(c.text for c in captions) == " ".join(w.text for w in words)
        starts = [c.start for c in captions]
        ends = [c.end for c in captions]
        assert starts == sorted(starts)
        assert ends == sorted(ends)
        assert all(c.start < c.end for c in captions)
        assert all(len(c.text.split()) <= 10 for c in captions)

    def test_sample_transcript_splits_on_sentences(self, sample_transcript):
        captions = group_words(sample_transcript.words)
        assert [c.text for c in captions] == [
            "Welcome to the weekly update.",
            "Let's get started.",
        ]
        assert captions[0].start == 0.12
        assert captions[0].end == 1.49
        assert captions[1].start == 1.8
        assert captions[1].end == 2.75

    def test_closed_group_without_end_uses_500ms(self):
        words = [_word("Hi", 1000, 1200), _word("there.", 1300, None)]
        captions = group_words(words)
        assert captions[0].end == 1.8

    def test_trailing_group_without_end_uses_1000ms(self):
        words = [_word("no", 2000, 2100), _word("punctuation", 2200, None)]
        captions = group_words(words)
        assert len(captions) == 1
        assert captions[0].start == 2.0
        assert captions[0].end == 3.2

    def test_start_taken_from_first_word_of_group(self):
        words = [_word("One.", 100, 300), _word("Two", 700, 900), _word("three.", 950, 1200)]
        captions = group_words(words)
        assert captions[1].start == 0.7

    def test_explicit_punctuation_flag(self):
        words = [_word("stop", 0, 100, terminal=True), _word("go", 200, 300, terminal=False)]
        captions = group_words(words)
        assert [c.text for c in captions] == ["stop", "go"]

    def test_empty_words_give_no_captions(self):
        assert group_words([]) == []

    def test_milliseconds_rounded_half_up(self):
        words = [_word("Tick.", 1234.5, 2000.5)]
        captions = group_words(words)
        assert captions[0].start == 1.235
        assert captions[0].end == 2.001


class TestChunkText:
    """Text-only fallback."""

    def test_chunk_count_is_ceiling(self):
        text = " ".join("w{}".format(i) for i in range(20))
        captions = chunk_text(text, duration_s=60, chunk_words=8)
        assert len(captions) == math.ceil(20 / 8)
        assert [len(c.text.split()) for c in captions] == [8, 8, 4]

    def test_chunks_are_back_to_back_from_zero(self):
        text = " ".join("w{}".format(i) for i in range(16))
        captions = chunk_text(text, duration_s=60, chunk_words=8)
        assert captions[0].start == 0.0
        assert captions[0].end == 30.0
        assert captions[1].start == 30.0
        assert captions[1].end == 60.0

    def test_minimum_chunk_duration(self):
        text = " ".join("w{}".format(i) for i in range(80))
        captions = chunk_text(text, duration_s=5, chunk_words=8)
        for caption in captions:
            assert round(caption.end - caption.start, 3) == 1.5

    def test_blank_text_gives_no_captions(self):
        assert chunk_text("") == []
        assert chunk_text("   \n ") == []
        assert chunk_text(None) == []


class TestSegmentTranscript:
    """Algorithm selection."""

    def test_uses_words_when_present(self, sample_transcript):
        result = segment_transcript(sample_transcript)
        assert result.algorithm == "words"
        assert len(result.captions) == 2

    def test_falls_back_to_chunks_with_reported_duration(self):
        transcript = Transcript.from_dict({
            "id": "t1",
            "status": "completed",
            "text": " ".join("w{}".format(i) for i in range(16)),
            "words": [],
            "audio_length_sec": 20,
        })
        result = segment_transcript(transcript)
        assert result.algorithm == "chunks"
        assert len(result.captions) == 2
        assert result.captions[-1].end == 20.0

    def test_falls_back_to_default_duration(self):
        transcript = Transcript(
            id="t2",
            status="completed",
            text=" ".join("w{}".format(i) for i in range(16)),
        )
        result = segment_transcript(transcript)
        assert result.algorithm == "chunks"
        assert result.captions[-1].end == 60.0

    def test_reported_zero_duration_is_kept(self):
        transcript = Transcript.from_dict({
            "id": "t4",
            "status": "completed",
            "text": " ".join("w{}".format(i) for i in range(16)),
            "audio_length_sec": 0,
        })
        result = segment_transcript(transcript)
        assert result.algorithm == "chunks"
        assert [(c.start, c.end) for c in result.captions] == [(0.0, 1.5), (1.5, 3.0)]

    def test_empty_transcript_gives_nothing(self):
        transcript = Transcript(id="t3", status="completed", text="")
        result = segment_transcript(transcript)
        assert result.captions == []
        assert result.algorithm == "none"

    def test_settings_override_thresholds(self, sample_transcript):
        result = segment_transcript(sample_transcript, SegmenterSettings(max_words=2))
        assert all(len(c.text.split()) <= 2 for c in result.captions)
