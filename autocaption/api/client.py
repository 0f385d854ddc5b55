"""Async HTTP client for the AssemblyAI transcription API.

WHY: Captioning needs a word-timed transcript of the uploaded video. The
provider works asynchronously: upload the media, create a transcript job,
then poll until it finishes. This module hides that workflow behind one
client class so the server, CLI and tests don't deal with HTTP details.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. AssemblyAIClient is an
async context manager; enter it to get an authenticated client, exit to
close the connection pool. Each API step is a separate method:
upload → create_job → poll_until_done, with transcribe() chaining them.

RULES:
- Always use the async context manager (async with AssemblyAIClient() as client:)
- Non-2xx responses raise typed errors carrying status code and body
- Failed HTTP calls are never retried here; the caller decides
- Polling sleeps a fixed interval between queries and gives up after
  the timeout; clock and sleep are injectable for tests
- The API key is sent as a header and never included in errors or logs
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx

from autocaption.api.models import Transcript
from autocaption.config import (
    ASSEMBLYAI_BASE_URL,
    POLL_INTERVAL_S,
    POLL_TIMEOUT_S,
    load_api_key,
)

logger = logging.getLogger(__name__)

_HTTP_TIMEOUT = httpx.Timeout(300.0, connect=30.0)


class TranscriptionAPIError(Exception):
    """Raised when the provider returns a non-2xx response.

    RULES:
    - Always carries status_code and the response body text
    - Subclasses name the stage that failed
    """

    stage = "transcription"

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"AssemblyAI {self.stage} failed: {status_code} {body}")


class UploadError(TranscriptionAPIError):
    """Raised when POST /upload fails."""

    stage = "upload"


class JobCreationError(TranscriptionAPIError):
    """Raised when POST /transcript fails."""

    stage = "job creation"


class TranscriptionError(Exception):
    """Raised when a transcript job enters the "error" status.

    RULES:
    - message contains the provider's error field
    """


class PollTimeoutError(TimeoutError):
    """Raised when polling exceeds the configured timeout.

    RULES:
    - Message includes the transcript ID and the timeout
    """


class AssemblyAIClient:
    """Async client for the AssemblyAI upload/transcript API.

    WHY: Provides a typed interface for the transcription workflow:
    upload → create job → poll. Handles auth and error wrapping.

    HOW: Wraps httpx.AsyncClient with the provider's ``authorization``
    header. Use as an async context manager so the connection pool is
    closed. ``transport`` lets tests plug in httpx.MockTransport; ``clock``
    and ``sleep`` let them run the polling loop without real time passing.

    RULES:
    - api_key defaults to load_api_key() from .env
    - base_url defaults to ASSEMBLYAI_BASE_URL from config
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or ASSEMBLYAI_BASE_URL).rstrip("/")
        self._transport = transport
        self._clock = clock
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AssemblyAIClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"authorization": self._api_key},
            timeout=_HTTP_TIMEOUT,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "AssemblyAIClient must be used as an async context manager: "
                "async with AssemblyAIClient() as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Step 1: Upload media
    # ------------------------------------------------------------------

    async def upload(
        self,
        data: bytes,
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Upload raw media bytes and return the provider's upload_url.

        Raises:
            UploadError: on a non-2xx response or a body without upload_url.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Uploading media...")

        resp = await client.post(
            "/upload",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        if not resp.is_success:
            raise UploadError(resp.status_code, resp.text)

        try:
            upload_url = resp.json()["upload_url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UploadError(resp.status_code, resp.text) from exc
        logger.info("Uploaded %d bytes to provider", len(data))
        return upload_url

    # ------------------------------------------------------------------
    # Step 2: Create transcript job
    # ------------------------------------------------------------------

    async def create_job(
        self,
        upload_url: str,
        on_status: Callable[[str], None] | None = None,
    ) -> str:
        """Request transcription of uploaded media and return the job id.

        Raises:
            JobCreationError: on a non-2xx response or a body without an id.
        """
        client = self._ensure_client()
        if on_status:
            on_status("Creating transcript job...")

        resp = await client.post("/transcript", json={"audio_url": upload_url})
        if not resp.is_success:
            raise JobCreationError(resp.status_code, resp.text)

        try:
            job_id = resp.json()["id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise JobCreationError(resp.status_code, resp.text) from exc
        logger.info("Created transcript job %s", job_id)
        return job_id

    # ------------------------------------------------------------------
    # Step 3: Poll until done
    # ------------------------------------------------------------------

    async def get_transcript(self, job_id: str) -> Transcript:
        """Fetch the current state of a transcript job.

        Raises:
            TranscriptionAPIError: on a non-2xx response or an unreadable body.
        """
        client = self._ensure_client()
        resp = await client.get(f"/transcript/{job_id}")
        if not resp.is_success:
            raise TranscriptionAPIError(resp.status_code, resp.text)
        try:
            return Transcript.from_dict(resp.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise TranscriptionAPIError(resp.status_code, resp.text) from exc

    async def poll_until_done(
        self,
        job_id: str,
        interval: float = POLL_INTERVAL_S,
        timeout: float = POLL_TIMEOUT_S,
        on_status: Callable[[str], None] | None = None,
    ) -> Transcript:
        """Poll a transcript job until it completes, fails, or times out.

        HOW: Query, inspect status, sleep ``interval``; repeat while the
        elapsed time is under ``timeout``. A single caller waits; there
        is no cancellation other than the timeout.

        Raises:
            TranscriptionError: when the provider reports status "error".
            PollTimeoutError: when ``timeout`` elapses first.
            TranscriptionAPIError: when a status query itself fails.
        """
        start = self._clock()

        while self._clock() - start < timeout:
            transcript = await self.get_transcript(job_id)

            if transcript.status == "completed":
                logger.info(
                    "Transcript %s completed (%d words)", job_id, len(transcript.words),
                )
                if on_status:
                    on_status("Transcription complete.")
                return transcript

            if transcript.status == "error":
                if on_status:
                    on_status(f"Transcription error: {transcript.error}")
                raise TranscriptionError(f"Transcript error: {transcript.error}")

            if on_status:
                elapsed = int(self._clock() - start)
                on_status(f"Transcribing... ({transcript.status}, {elapsed}s elapsed)")

            await self._sleep(interval)

        raise PollTimeoutError(
            f"Transcript {job_id} polling timed out after {timeout:.0f}s"
        )

    # ------------------------------------------------------------------
    # Full workflow
    # ------------------------------------------------------------------

    async def transcribe(
        self,
        data: bytes,
        interval: float = POLL_INTERVAL_S,
        timeout: float = POLL_TIMEOUT_S,
        on_status: Callable[[str], None] | None = None,
    ) -> tuple[str, Transcript]:
        """Upload, create a job and wait for it. Returns (upload_url, transcript)."""
        upload_url = await self.upload(data, on_status=on_status)
        job_id = await self.create_job(upload_url, on_status=on_status)
        transcript = await self.poll_until_done(
            job_id, interval=interval, timeout=timeout, on_status=on_status,
        )
        return upload_url, transcript

    async def transcribe_file(
        self,
        file_path: Path,
        on_status: Callable[[str], None] | None = None,
    ) -> tuple[str, Transcript]:
        """Read a media file from disk and run transcribe() on its bytes."""
        data = Path(file_path).read_bytes()
        return await self.transcribe(data, on_status=on_status)
