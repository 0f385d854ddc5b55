"""Shared test fixtures for the autocaption test suite.

WHY: The segmenter, client, server and CLI tests all need the same
provider payloads. Centralizing them keeps the sample transcript
consistent across modules.

HOW: Plain module-level data plus pytest fixtures returning fresh copies
so tests can mutate them freely.

RULES:
- Word timings are integer milliseconds, as the provider returns them
- The sample transcript has two sentences: 5 words, then 3 words
"""

import copy
from typing import Any, Dict, List

import pytest

from autocaption.api.models import Transcript
from autocaption.core.captions import Caption


SAMPLE_WORDS: List[Dict[str, Any]] = [
    {"text": "Welcome",  "start": 120,  "end": 480},
    {"text": "to",       "start": 500,  "end": 610},
    {"text": "the",      "start": 620,  "end": 700},
    {"text": "weekly",   "start": 710,  "end": 1050},
    {"text": "update.",  "start": 1060, "end": 1490},
    {"text": "Let's",    "start": 1800, "end": 2010},
    {"text": "get",      "start": 2020, "end": 2200},
    {"text": "started.", "start": 2210, "end": 2750},
]

SAMPLE_TRANSCRIPT: Dict[str, Any] = {
    "id": "tr_123",
    "status": "completed",
    "text": "Welcome to the weekly update. Let's get started.",
    "words": SAMPLE_WORDS,
    "language_code": "en_us",
    "audio_length_sec": 3.1,
}


@pytest.fixture
def sample_transcript_dict() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_TRANSCRIPT)


@pytest.fixture
def sample_transcript() -> Transcript:
    return Transcript.from_dict(copy.deepcopy(SAMPLE_TRANSCRIPT))


@pytest.fixture
def sample_captions() -> List[Caption]:
    return [
        Caption(text="Welcome to the weekly update.", start=0.12, end=1.49),
        Caption(text="Let's get started.", start=1.8, end=2.75),
    ]
