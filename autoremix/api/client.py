"""Async HTTP client for the media worker service.

WHY: The remote backend needs to register source media (by URL or by
upload), run transcription jobs, and submit render jobs for a locked remix
plan. This module wraps that workflow in a single client class so the
adapters never touch HTTP details.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. MediaServiceClient is
an async context manager: enter it to get an authenticated client, exit to
close the connection pool. Long-running work is job based:
create_transcription → poll_transcription, create_render → poll_render.

RULES:
- Always use the async context manager (async with MediaServiceClient() as c:)
- Polling uses exponential backoff: 2s initial, 1.5x factor, 15s max, 60min timeout
- Non-2xx responses raise MediaServiceError
- A job reporting status "error" raises MediaJobError
- Polling past the timeout raises MediaJobTimeoutError
- Status callback (on_status) is optional; when provided, called with status strings
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from autoremix.api.models import JobStatus, MediaInfo, RenderJob, TranscriptionJob
from autoremix.config import MEDIA_SERVICE_TOKEN, MEDIA_SERVICE_URL

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_POLL_INITIAL_INTERVAL_S = 2.0
_POLL_BACKOFF_FACTOR = 1.5
_POLL_MAX_INTERVAL_S = 15.0
_POLL_TIMEOUT_S = 60 * 60  # 60 minutes


class MediaServiceError(Exception):
    """Raised when the media service returns an error response.

    RULES:
    - Always include status_code and message
    - message is the response body text
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Media service error {status_code}: {message}")


class MediaJobError(Exception):
    """Raised when a transcription or render job enters the "error" status."""


class MediaJobTimeoutError(TimeoutError):
    """Raised when polling a job exceeds the maximum timeout."""


class MediaServiceClient:
    """Async client for the media worker API.

    WHY: Provides a typed interface for ingest, transcription, and render
    jobs. Handles auth, backoff, and error wrapping.

    HOW: Wraps httpx.AsyncClient with optional Bearer token auth. Each API
    step is an async method.

    RULES:
    - base_url defaults to MEDIA_SERVICE_URL from config
    - token defaults to MEDIA_SERVICE_TOKEN; no Authorization header when unset
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        poll_interval: float = _POLL_INITIAL_INTERVAL_S,
        poll_timeout: float = _POLL_TIMEOUT_S,
    ) -> None:
        self._base_url = (base_url or MEDIA_SERVICE_URL).rstrip("/")
        self._token = token if token is not None else MEDIA_SERVICE_TOKEN
        self._transport = transport
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> MediaServiceClient:
        headers = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(300.0, connect=30.0),
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
                "MediaServiceClient must be used as an async context manager: "
                "async with MediaServiceClient() as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    async def ingest_url(self, url: str) -> MediaInfo:
        """Register remote media by URL and return its record.

        The service fetches the video itself; the response carries the
        media id, title, and duration in seconds.
        """
        client = self._ensure_client()
        resp = await client.post("/media", json={"url": url})
        return MediaInfo.from_dict(_json_or_raise(resp))

    async def upload_file(self, file_path: Path, filename: str | None = None) -> MediaInfo:
        """Upload a local video file and return its media record."""
        client = self._ensure_client()
        file_path = Path(file_path)
        with open(file_path, "rb") as f:
            resp = await client.post(
                "/media",
                files={"file": (filename or file_path.name, f)},
            )
        return MediaInfo.from_dict(_json_or_raise(resp))

    # ------------------------------------------------------------------
    # Transcription
    # ------------------------------------------------------------------

    async def create_transcription(self, media_id: str) -> str:
        """Start a transcription job for a media record and return its id."""
        client = self._ensure_client()
        resp = await client.post("/transcriptions", json={"media_id": media_id})
        return str(_json_or_raise(resp)["id"])

    async def poll_transcription(
        self,
        job_id: str,
        on_status: Callable[[str], None] | None = None,
    ) -> TranscriptionJob:
        """Poll a transcription job until it completes; return the final job."""
        return await self._poll(
            "/transcriptions/{}".format(job_id),
            TranscriptionJob.from_dict,
            "Transcription",
            on_status,
        )

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    async def create_render(self, media_id: str, segments: list[dict]) -> str:
        """Submit a render job for a locked plan and return its id.

        segments use the camelCase remix segment shape (RemixSegment.to_dict).
        """
        client = self._ensure_client()
        resp = await client.post(
            "/renders",
            json={"media_id": media_id, "segments": segments},
        )
        return str(_json_or_raise(resp)["id"])

    async def poll_render(
        self,
        job_id: str,
        on_status: Callable[[str], None] | None = None,
    ) -> RenderJob:
        """Poll a render job until it completes; return the final job."""
        return await self._poll(
            "/renders/{}".format(job_id),
            RenderJob.from_dict,
            "Render",
            on_status,
        )

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def _poll(
        self,
        path: str,
        parse: Callable[[dict], Any],
        label: str,
        on_status: Callable[[str], None] | None,
    ) -> Any:
        """Poll a job resource with exponential backoff.

        RULES:
        - Returns the parsed job when status is "completed"
        - Raises MediaJobError when status is "error"
        - Raises MediaJobTimeoutError once poll_timeout is exceeded
        """
        client = self._ensure_client()
        interval = self._poll_interval
        start_time = time.monotonic()

        while True:
            elapsed = time.monotonic() - start_time
            if elapsed > self._poll_timeout:
                raise MediaJobTimeoutError(
                    f"{label} job {path} timed out after "
                    f"{elapsed:.0f}s (limit: {self._poll_timeout:.0f}s)"
                )

            resp = await client.get(path)
            job = parse(_json_or_raise(resp))

            if on_status:
                on_status(f"{label} {job.status.value}...")

            if job.status is JobStatus.COMPLETED:
                return job
            if job.status is JobStatus.ERROR:
                raise MediaJobError(
                    f"{label} failed: {job.error_message or 'unknown error'}"
                )

            await asyncio.sleep(interval)
            interval = min(interval * _POLL_BACKOFF_FACTOR, _POLL_MAX_INTERVAL_S)


def _json_or_raise(resp: httpx.Response) -> dict:
    if resp.status_code not in (200, 201, 202):
        raise MediaServiceError(resp.status_code, resp.text)
    return resp.json()
