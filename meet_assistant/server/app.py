"""FastAPI application with the meeting assistant's /api routes.

WHY: The browser side cannot hold API keys for the speech and LLM
services, so a small server wraps them: diarized clip transcription,
meeting summaries, Q&A, question detection and a health check that the
recorder uses to decide between server-assisted and local behaviour.

HOW: One FastAPI app. Service clients are provided through Depends()
so tests override them with fakes. The transcribe route forwards the
clip to Google Speech and runs the segment assembler over the word list.
A lifespan task periodically drops expired entries from the local
transcript store.

RULES:
- Error responses use a consistent ErrorResponse schema (HTTPException)
- 400 for missing input, 500 when an upstream service fails
- Missing API keys surface as 500 with a configuration message
- CORS is open: the client runs on the meeting page's origin
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Annotated, AsyncIterator, Optional

import httpx
from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from meet_assistant import __version__
from meet_assistant.api.llm import LLMError, MeetingLLM
from meet_assistant.api.speech import GoogleSpeechClient, SpeechAPIError
from meet_assistant.config import (
    CLEANUP_INTERVAL_S,
    DEFAULT_SPEAKER_COUNT,
    SERVER_HOST,
    SERVER_PORT,
    SUPPORTED_AUDIO_FORMATS,
)
from meet_assistant.core.assembler import assemble
from meet_assistant.core.questions import detect_questions
from meet_assistant.server.models import (
    AskRequest,
    AskResponse,
    DetectQuestionsRequest,
    DetectQuestionsResponse,
    ErrorResponse,
    HealthResponse,
    SegmentModel,
    SummaryRequest,
    SummaryResponse,
    TranscribeResponse,
    TranscriptEntryModel,
)
from meet_assistant.storage import TranscriptStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

transcript_store = TranscriptStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic transcript cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(transcript_store.run_periodic_cleanup(CLEANUP_INTERVAL_S))
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Meeting Assistant API",
    description=(
        "Backend for the Google Meet meeting assistant: diarized Persian "
        "transcription of audio clips, LLM meeting summaries and Q&A, and "
        "heuristic question detection."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_speech_client() -> AsyncIterator[GoogleSpeechClient]:
    """Yield an entered GoogleSpeechClient for one request."""
    try:
        client = GoogleSpeechClient()
    except ValueError as exc:
        logger.error("Speech client not configured: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    async with client:
        yield client


@lru_cache(maxsize=1)
def _default_llm() -> MeetingLLM:
    return MeetingLLM()


def get_llm() -> MeetingLLM:
    try:
        return _default_llm()
    except ValueError as exc:
        logger.error("LLM client not configured: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _validate_file_extension(filename: str) -> None:
    """Raise HTTPException if the upload has an unsupported extension."""
    ext = Path(filename).suffix.lower()
    if ext and ext not in SUPPORTED_AUDIO_FORMATS:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(SUPPORTED_AUDIO_FORMATS))
            ),
        )


# ---------------------------------------------------------------------------
# Endpoints: Transcription
# ---------------------------------------------------------------------------


@app.post(
    "/api/transcribe",
    response_model=TranscribeResponse,
    tags=["transcription"],
    summary="Transcribe one audio clip with speaker diarization",
    description=(
        "Upload a WebM/Opus clip as multipart field 'audio'. The clip is "
        "recognized in Persian with diarization and returned as "
        "per-speaker segments."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "No audio file provided"},
        500: {"model": ErrorResponse, "description": "Transcription failed"},
    },
)
async def transcribe(
    speech: Annotated[GoogleSpeechClient, Depends(get_speech_client)],
    audio: Annotated[
        Optional[UploadFile],
        File(description="Recorded audio clip (WebM/Opus)."),
    ] = None,
    speaker_count: Annotated[
        int,
        Form(alias="speakerCount", description="Expected number of speakers."),
    ] = DEFAULT_SPEAKER_COUNT,
) -> TranscribeResponse:
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio file provided")
    _validate_file_extension(Path(audio.filename or "").name)

    content = await audio.read()
    if not content:
        raise HTTPException(status_code=400, detail="No audio file provided")

    if speaker_count < 1:
        speaker_count = DEFAULT_SPEAKER_COUNT

    try:
        response = await speech.recognize(content, speaker_count=speaker_count)
    except (SpeechAPIError, httpx.HTTPError) as exc:
        logger.exception("Transcription error")
        raise HTTPException(status_code=500, detail="Transcription failed: {}".format(exc))

    segments = assemble(response.words)
    logger.info(
        "Transcribed %d bytes into %d segments (speakers=%d)",
        len(content), len(segments), speaker_count,
    )
    return TranscribeResponse(
        transcription=[SegmentModel.from_segment(s) for s in segments],
        confidence=response.confidence,
    )


# ---------------------------------------------------------------------------
# Endpoints: LLM
# ---------------------------------------------------------------------------


@app.post(
    "/api/generate-summary",
    response_model=SummaryResponse,
    tags=["llm"],
    summary="Summarize a meeting transcript",
    responses={
        400: {"model": ErrorResponse, "description": "Transcript is required"},
        500: {"model": ErrorResponse, "description": "Summary generation failed"},
    },
)
async def generate_summary(
    body: SummaryRequest,
    llm: Annotated[MeetingLLM, Depends(get_llm)],
) -> SummaryResponse:
    if not body.transcript:
        raise HTTPException(status_code=400, detail="Transcript is required")

    entries = [item.to_entry() for item in body.transcript]
    names = body.names_or_default()
    try:
        summary = await llm.summarize(entries, names)
    except LLMError as exc:
        logger.error("Summary generation error: %s", exc)
        raise HTTPException(status_code=500, detail="Summary generation failed")
    return SummaryResponse(summary=summary)


@app.post(
    "/api/ask-ai",
    response_model=AskResponse,
    tags=["llm"],
    summary="Answer a question about the meeting",
    responses={
        400: {"model": ErrorResponse, "description": "Question is required"},
        500: {"model": ErrorResponse, "description": "AI response failed"},
    },
)
async def ask_ai(
    body: AskRequest,
    llm: Annotated[MeetingLLM, Depends(get_llm)],
) -> AskResponse:
    question = (body.question or "").strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question is required")

    entries = [item.to_entry() for item in body.context]
    try:
        answer = await llm.ask(question, entries, body.speaker_names or [])
    except LLMError as exc:
        logger.error("AI response error: %s", exc)
        raise HTTPException(status_code=500, detail="AI response failed")
    return AskResponse(response=answer)


# ---------------------------------------------------------------------------
# Endpoints: Questions and health
# ---------------------------------------------------------------------------


@app.post(
    "/api/detect-questions",
    response_model=DetectQuestionsResponse,
    tags=["questions"],
    summary="Return the transcript entries that look like questions",
)
async def detect_questions_endpoint(body: DetectQuestionsRequest) -> DetectQuestionsResponse:
    questions = detect_questions(item.to_entry() for item in body.transcript)
    return DetectQuestionsResponse(
        questions=[TranscriptEntryModel.from_entry(e) for e in questions],
    )


@app.get(
    "/api/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Used by the recorder to decide between server-assisted and local mode.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc).isoformat())


def run_api(host: str = SERVER_HOST, port: int = SERVER_PORT) -> None:
    """Entry point for the meet-assistant-api console script."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
