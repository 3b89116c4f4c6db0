"""Configuration constants, service defaults, and .env loading.

WHY: Centralizes every tunable value (service URLs, speech settings,
capture-loop timings, storage paths) so they are easy to find, update,
and override without digging through logic.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values read from the environment with sensible defaults.
The load_*_api_key() functions give a clear error when a key is missing.

RULES:
- API keys are loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
- Times are float seconds unless the name says otherwise
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Backend server
# ---------------------------------------------------------------------------

BACKEND_URL = os.getenv("MEET_ASSISTANT_BACKEND_URL", "http://localhost:5173")
SERVER_HOST = os.getenv("MEET_ASSISTANT_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("PORT", "5173"))

# ---------------------------------------------------------------------------
# Speech-to-text (Google Cloud Speech REST API)
# ---------------------------------------------------------------------------

SPEECH_BASE_URL = os.getenv("GOOGLE_SPEECH_BASE_URL", "https://speech.googleapis.com/v1")
SPEECH_LANGUAGE = os.getenv("SPEECH_LANGUAGE", "fa-IR")
SPEECH_MODEL = os.getenv("SPEECH_MODEL", "latest_long")
SPEECH_ENCODING = os.getenv("SPEECH_ENCODING", "WEBM_OPUS")
SPEECH_SAMPLE_RATE_HZ = int(os.getenv("SPEECH_SAMPLE_RATE_HZ", "16000"))
DEFAULT_SPEAKER_COUNT = 2

SUPPORTED_AUDIO_FORMATS: set[str] = {".webm", ".ogg", ".opus"}
"""Clip extensions the transcribe command accepts (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# LLM (chat completions)
# ---------------------------------------------------------------------------

LLM_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
SUMMARY_MAX_TOKENS = 800
SUMMARY_TEMPERATURE = 0.5
ASK_MAX_TOKENS = 500
ASK_TEMPERATURE = 0.7

# ---------------------------------------------------------------------------
# Capture loop
# ---------------------------------------------------------------------------

CLIP_SECONDS = float(os.getenv("CLIP_SECONDS", "30"))
RESTART_AFTER_END_S = 0.1
RESTART_AFTER_ERROR_S = 1.0
MIN_FLUSH_CHARS = 10
PERMISSION_ERROR_CODES = frozenset({"not-allowed", "service-not-allowed"})

# ---------------------------------------------------------------------------
# Storage and participants
# ---------------------------------------------------------------------------

STORE_PATH = Path(os.getenv("MEET_ASSISTANT_STORE", "transcripts.json"))
STORE_KEY = "transcripts"
RETENTION_DAYS = int(os.getenv("RETENTION_DAYS", "7"))
CLEANUP_INTERVAL_S = 24 * 60 * 60

DEFAULT_PARTICIPANT = "شرکت‌کننده"
"""Display name used when no participant is known."""

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def load_google_api_key() -> str:
    """Load the Google Cloud Speech API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("GOOGLE_SPEECH_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Google Speech API key not configured. "
            "Add GOOGLE_SPEECH_API_KEY to the .env file."
        )
    return key


def load_openai_api_key() -> str:
    """Load the OpenAI API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    """
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Add OPENAI_API_KEY to the .env file."
        )
    return key
