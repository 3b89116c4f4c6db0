"""Async HTTP client for the meeting-assistant backend server.

WHY: The recorder (and the CLI) talk to the backend for clip
transcription, summaries, Q&A and health checks. One client class keeps
the URLs, the multipart shape and error wrapping in a single place.

HOW: Uses httpx.AsyncClient against BACKEND_URL. Use as an async context
manager. Each endpoint is one method; non-2xx responses and transport
failures are raised as BackendError, except check_health() which never
raises and returns False instead.

RULES:
- Clips are posted as multipart "audio" (recording.webm) + "speakerCount"
- speakerCount is at least 1
- Summary requests fall back to the default participant name when the
  roster is empty
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from meet_assistant.api.models import TranscriptionResult
from meet_assistant.config import BACKEND_URL, DEFAULT_PARTICIPANT
from meet_assistant.core.ir import TranscriptEntry

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when a backend call fails or returns a non-OK status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class BackendClient:
    """Async client for the /api endpoints of the backend server.

    RULES:
    - Use as: async with BackendClient() as backend: ...
    - transport is injectable for tests (httpx.MockTransport or ASGITransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 120.0,
    ) -> None:
        self._base_url = (base_url or BACKEND_URL).rstrip("/")
        self._transport = transport
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> BackendClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "BackendClient must be used as an async context manager: "
                "async with BackendClient() as backend: ..."
            )
        return self._client

    async def _post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        client = self._ensure_client()
        try:
            resp = await client.post(path, **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError("Request to {} failed: {}".format(path, exc)) from exc
        if resp.status_code != 200:
            raise BackendError(
                "HTTP error! status: {}, message: {}".format(resp.status_code, resp.text),
                status_code=resp.status_code,
            )
        return resp.json()

    async def check_health(self) -> bool:
        """Return True when GET /api/health answers 200."""
        client = self._ensure_client()
        try:
            resp = await client.get("/api/health", timeout=5.0)
        except httpx.HTTPError as exc:
            logger.info("Server connection failed: %s", exc)
            return False
        return resp.status_code == 200

    async def transcribe(self, clip: bytes, speaker_count: int) -> TranscriptionResult:
        """Send one audio clip for diarized transcription."""
        data = await self._post(
            "/api/transcribe",
            files={"audio": ("recording.webm", clip, "audio/webm")},
            data={"speakerCount": str(max(1, speaker_count))},
        )
        result = TranscriptionResult.from_dict(data)
        logger.info("Transcription returned %d segments", len(result.segments))
        return result

    async def generate_summary(
        self,
        entries: Sequence[TranscriptEntry],
        speaker_names: Sequence[str],
    ) -> str:
        names: List[str] = list(speaker_names) or [DEFAULT_PARTICIPANT]
        data = await self._post(
            "/api/generate-summary",
            json={
                "transcript": [e.to_dict() for e in entries],
                "speakerNames": names,
            },
        )
        return data["summary"]

    async def ask(
        self,
        question: str,
        context: Sequence[TranscriptEntry],
        speaker_names: Sequence[str],
    ) -> str:
        data = await self._post(
            "/api/ask-ai",
            json={
                "question": question,
                "context": [e.to_dict() for e in context],
                "speakerNames": list(speaker_names),
            },
        )
        return data["response"]
