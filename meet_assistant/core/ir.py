"""Intermediate representation dataclasses for recognized speech and transcripts.

WHY: The speech service returns a flat list of timestamped, speaker-tagged
words. The recorder, storage, server and exporters all need the same
well-typed shapes for words, speaker segments and persisted entries.

HOW: Four dataclasses form the pipeline:
  RecognizedWord     — one word from the speech service (immutable)
  TranscriptSegment  — contiguous words from one speaker tag
  TranscriptEntry    — a persisted, speaker-resolved transcript line
  MeetingTranscript  — everything an exporter needs

RULES:
- All times are float seconds relative to the start of the audio clip
- speaker_tag is 1-based; 1 is the default/unknown speaker
- TranscriptEntry.is_question is computed once, at creation
- Entry timestamps are timezone-aware and serialize as ISO-8601
- Wire format for entries uses camelCase ("isQuestion")
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RecognizedWord:
    """A single word returned by the speech-to-text service."""

    text: str
    start_s: float
    end_s: float
    speaker_tag: int = 1


@dataclass
class TranscriptSegment:
    """A contiguous run of words attributed to one speaker tag.

    RULES:
    - speaker_tag never changes after the segment is opened
    - start_s is the first word's start, end_s the last word's end
    """

    speaker_tag: int
    text: str
    start_s: float
    end_s: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "speakerTag": self.speaker_tag,
            "transcript": self.text,
            "startTime": self.start_s,
            "endTime": self.end_s,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptSegment:
        return cls(
            speaker_tag=int(data.get("speakerTag") or 1),
            text=data.get("transcript", ""),
            start_s=float(data.get("startTime") or 0.0),
            end_s=float(data.get("endTime") or 0.0),
        )


@dataclass
class TranscriptEntry:
    """One persisted transcript line with a resolved speaker name.

    WHY: Both the live-recognition path and the server-transcription path
    produce entries; storage, summary and export only deal with these.

    RULES:
    - text is stripped of surrounding whitespace
    - confidence is None for live-recognition entries
    - is_question is fixed at creation time and never recomputed
    """

    text: str
    speaker: str
    timestamp: datetime
    confidence: Optional[float] = None
    is_question: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "text": self.text,
            "speaker": self.speaker,
            "timestamp": self.timestamp.isoformat(),
            "isQuestion": self.is_question,
        }
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptEntry:
        """Parse an entry from its stored/wire form.

        Naive timestamps are assumed to be UTC.
        """
        raw_ts = data["timestamp"]
        if isinstance(raw_ts, datetime):
            timestamp = raw_ts
        else:
            timestamp = datetime.fromisoformat(str(raw_ts).replace("Z", "+00:00"))
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        confidence = data.get("confidence")
        return cls(
            text=data["text"],
            speaker=data["speaker"],
            timestamp=timestamp,
            confidence=float(confidence) if confidence is not None else None,
            is_question=bool(data.get("isQuestion", False)),
        )


@dataclass
class MeetingTranscript:
    """Complete input for the exporters.

    RULES:
    - entries are in the order they were stored
    - summary is None until one was generated
    - generated_at drives the dates printed in exports and file names
    """

    entries: List[TranscriptEntry]
    speaker_names: List[str]
    generated_at: datetime
    summary: Optional[str] = None
