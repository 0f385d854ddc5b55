"""AssemblyAI client package: async HTTP interface to the speech-to-text service.

WHY: Captioning starts with a word-timed transcript from a third-party
provider. This package encapsulates the upload → create job → poll
workflow behind one async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Response data is parsed
into typed dataclasses defined in models.py.

RULES:
- All provider HTTP calls go through AssemblyAIClient
- Failed HTTP calls are surfaced, never retried here
"""

from autocaption.api.client import AssemblyAIClient
from autocaption.api.models import Transcript, TranscriptWord

__all__ = ["AssemblyAIClient", "Transcript", "TranscriptWord"]
