"""Async HTTP client for the Google Cloud Speech-to-Text REST API.

WHY: The backend's /api/transcribe endpoint hands each recorded clip to
Google Speech with speaker diarization enabled and needs the flat word
list back. This module hides the request shape and auth behind one
client class so the server and tests don't deal with HTTP details.

HOW: Uses httpx.AsyncClient. GoogleSpeechClient is an async context
manager. Enter it to get a client bound to the API key, exit to close
the connection pool. recognize() sends a synchronous recognize request
with the clip inlined as base64 and parses the response.

RULES:
- Always use the async context manager (async with GoogleSpeechClient() as c:)
- Language defaults to fa-IR, model to latest_long, encoding to WEBM_OPUS
- Diarization is always on; min and max speaker count = speaker_count
- Word time offsets are always requested (the assembler needs them)
- Raises SpeechAPIError on non-2xx responses
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from meet_assistant.api.models import SpeechResponse
from meet_assistant.config import (
    DEFAULT_SPEAKER_COUNT,
    SPEECH_BASE_URL,
    SPEECH_ENCODING,
    SPEECH_LANGUAGE,
    SPEECH_MODEL,
    SPEECH_SAMPLE_RATE_HZ,
    load_google_api_key,
)

logger = logging.getLogger(__name__)


class SpeechAPIError(Exception):
    """Raised when the speech service returns an error response.

    RULES:
    - Always include status_code and message
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Speech API error {status_code}: {message}")


def build_recognition_config(
    speaker_count: int,
    language: str = SPEECH_LANGUAGE,
    model: str = SPEECH_MODEL,
) -> Dict[str, Any]:
    """Return the RecognitionConfig JSON for a diarized Persian clip."""
    speaker_count = max(1, speaker_count)
    return {
        "encoding": SPEECH_ENCODING,
        "sampleRateHertz": SPEECH_SAMPLE_RATE_HZ,
        "languageCode": language,
        "enableAutomaticPunctuation": True,
        "enableWordTimeOffsets": True,
        "model": model,
        "diarizationConfig": {
            "enableSpeakerDiarization": True,
            "minSpeakerCount": speaker_count,
            "maxSpeakerCount": speaker_count,
        },
    }


class GoogleSpeechClient:
    """Async client for the speech:recognize endpoint.

    RULES:
    - Use as: async with GoogleSpeechClient() as client: ...
    - api_key defaults to load_google_api_key() from .env
    - transport is injectable for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        language: str = SPEECH_LANGUAGE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key or load_google_api_key()
        self._base_url = (base_url or SPEECH_BASE_URL).rstrip("/")
        self._language = language
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> GoogleSpeechClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            params={"key": self._api_key},
            timeout=httpx.Timeout(120.0, connect=15.0),
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
                "GoogleSpeechClient must be used as an async context manager: "
                "async with GoogleSpeechClient() as client: ..."
            )
        return self._client

    async def recognize(
        self,
        audio: bytes,
        speaker_count: int = DEFAULT_SPEAKER_COUNT,
    ) -> SpeechResponse:
        """Transcribe one audio clip with speaker diarization.

        Args:
            audio: Raw WebM/Opus clip bytes.
            speaker_count: Diarization hint (number of participants).

        Returns:
            SpeechResponse with the flat word list and overall confidence.
        """
        client = self._ensure_client()
        body = {
            "config": build_recognition_config(speaker_count, language=self._language),
            "audio": {"content": base64.b64encode(audio).decode("ascii")},
        }

        logger.debug("Recognizing %d bytes (speakers=%d)", len(audio), speaker_count)
        resp = await client.post("/speech:recognize", json=body)
        if resp.status_code != 200:
            raise SpeechAPIError(resp.status_code, resp.text)

        return SpeechResponse.from_dict(resp.json())
