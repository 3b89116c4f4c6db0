"""Pydantic request/response models for the HTTP API.

WHY: The endpoints are called from browser code that speaks camelCase
JSON (speakerTag, speakerNames, isQuestion). Pydantic models validate
those bodies, serialize responses and document the API in /docs.

HOW: Fields are snake_case in Python with camelCase aliases on the wire.
populate_by_name lets server code build models by field name; FastAPI
serializes response models by alias.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Wire names match the browser client exactly (camelCase)
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from meet_assistant.config import DEFAULT_PARTICIPANT
from meet_assistant.core.ir import TranscriptEntry, TranscriptSegment


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class TranscriptEntryModel(BaseModel):
    """One transcript line as sent by the client."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(description="Transcribed text.")
    speaker: str = Field(description="Resolved speaker display name.")
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the entry was created (ISO-8601).",
    )
    confidence: Optional[float] = Field(
        default=None,
        description="Recognition confidence in [0, 1], absent for live recognition.",
    )
    is_question: bool = Field(
        default=False,
        alias="isQuestion",
        description="Whether the text was classified as a question.",
    )

    def to_entry(self) -> TranscriptEntry:
        timestamp = self.timestamp or datetime.now(timezone.utc)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return TranscriptEntry(
            text=self.text,
            speaker=self.speaker,
            timestamp=timestamp,
            confidence=self.confidence,
            is_question=self.is_question,
        )

    @classmethod
    def from_entry(cls, entry: TranscriptEntry) -> TranscriptEntryModel:
        return cls(
            text=entry.text,
            speaker=entry.speaker,
            timestamp=entry.timestamp,
            confidence=entry.confidence,
            is_question=entry.is_question,
        )


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SummaryRequest(BaseModel):
    """Body of POST /api/generate-summary."""

    model_config = ConfigDict(populate_by_name=True)

    transcript: List[TranscriptEntryModel] = Field(
        default_factory=list,
        description="Transcript entries to summarize.",
    )
    speaker_names: Optional[List[str]] = Field(
        default=None,
        alias="speakerNames",
        description="Participant names; defaults to a single generic participant.",
    )

    def names_or_default(self) -> List[str]:
        """speaker_names, or the default participant when none were sent."""
        return list(self.speaker_names) if self.speaker_names else [DEFAULT_PARTICIPANT]


class AskRequest(BaseModel):
    """Body of POST /api/ask-ai."""

    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = Field(default=None, description="Question about the meeting.")
    context: List[TranscriptEntryModel] = Field(
        default_factory=list,
        description="Transcript entries used as context.",
    )
    speaker_names: Optional[List[str]] = Field(
        default=None,
        alias="speakerNames",
        description="Participant names.",
    )


class DetectQuestionsRequest(BaseModel):
    """Body of POST /api/detect-questions."""

    transcript: List[TranscriptEntryModel] = Field(
        default_factory=list,
        description="Transcript entries to scan for questions.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class SegmentModel(BaseModel):
    """One per-speaker segment of a diarized transcription."""

    model_config = ConfigDict(populate_by_name=True)

    speaker_tag: int = Field(alias="speakerTag", description="1-based diarization speaker tag.")
    transcript: str = Field(description="Segment text.")
    start_time: float = Field(alias="startTime", description="Start offset in seconds.")
    end_time: float = Field(alias="endTime", description="End offset in seconds.")

    @classmethod
    def from_segment(cls, segment: TranscriptSegment) -> SegmentModel:
        return cls(
            speaker_tag=segment.speaker_tag,
            transcript=segment.text,
            start_time=segment.start_s,
            end_time=segment.end_s,
        )


class TranscribeResponse(BaseModel):
    """Diarized transcription of one uploaded clip."""

    transcription: List[SegmentModel] = Field(description="Per-speaker segments in order.")
    confidence: Optional[float] = Field(
        default=None,
        description="Confidence of the first result's top alternative.",
    )

    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "transcription": [
                    {"speakerTag": 1, "transcript": "سلام خوبم", "startTime": 0.0, "endTime": 2.0},
                    {"speakerTag": 2, "transcript": "من", "startTime": 2.0, "endTime": 3.0},
                ],
                "confidence": 0.92,
            }
        ]
    })


class SummaryResponse(BaseModel):
    summary: str = Field(description="Generated meeting summary.")


class AskResponse(BaseModel):
    response: str = Field(description="Answer to the question.")


class DetectQuestionsResponse(BaseModel):
    questions: List[TranscriptEntryModel] = Field(description="Entries classified as questions.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "OK"})
    timestamp: str = Field(description="Server time (ISO-8601).")
