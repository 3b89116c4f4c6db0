"""External service clients — speech, LLM and the backend server.

WHY: The assistant consumes three request/response services: Google
Speech-to-Text (from the server), an LLM chat-completion API (from the
server), and the backend server itself (from the recorder and CLI).

HOW: httpx.AsyncClient for the two HTTP APIs, openai.AsyncOpenAI for the
LLM. Each client is an async context manager or a plain object with an
injectable transport/client, and wraps failures in its own error type.

RULES:
- All HTTP calls go through these clients (no direct httpx use elsewhere)
- Errors surface as SpeechAPIError, LLMError or BackendError
"""

from meet_assistant.api.backend import BackendClient, BackendError
from meet_assistant.api.llm import LLMError, MeetingLLM
from meet_assistant.api.models import SpeechResponse, TranscriptionResult
from meet_assistant.api.speech import GoogleSpeechClient, SpeechAPIError

__all__ = [
    "BackendClient",
    "BackendError",
    "GoogleSpeechClient",
    "LLMError",
    "MeetingLLM",
    "SpeechAPIError",
    "SpeechResponse",
    "TranscriptionResult",
]
