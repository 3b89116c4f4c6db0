"""Speech-service response parsing and backend response dataclasses.

WHY: Google Speech-to-Text returns nested JSON (results → alternatives →
words) with durations encoded as strings like "1.300s". The assembler
wants a flat, typed list of RecognizedWord. The backend's /api/transcribe
response is parsed into TranscriptionResult for the recorder.

HOW: from_dict factory methods convert raw dicts into dataclasses.
parse_duration accepts both the REST string form and the
{"seconds", "nanos"} object form used by the gRPC-style clients.

RULES:
- Missing or zero speakerTag → 1
- Confidence comes from the first result's first alternative, or None
- With diarization, Google repeats every word with its speaker tag in
  the last result; when that result is tagged, only its words are used
- Otherwise words of all results are concatenated in order
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from meet_assistant.core.ir import RecognizedWord, TranscriptSegment


def parse_duration(value: Union[str, float, int, Dict[str, Any], None]) -> float:
    """Convert a Google duration value to float seconds.

    RULES:
    - "1.300s" → 1.3
    - {"seconds": "1", "nanos": 300000000} → 1.3
    - None / "" → 0.0
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        seconds = float(value.get("seconds") or 0)
        nanos = float(value.get("nanos") or 0)
        return seconds + nanos / 1e9
    return float(str(value).rstrip("s"))


def _parse_word(data: Dict[str, Any]) -> RecognizedWord:
    return RecognizedWord(
        text=data.get("word", ""),
        start_s=parse_duration(data.get("startTime")),
        end_s=parse_duration(data.get("endTime")),
        speaker_tag=int(data.get("speakerTag") or 1),
    )


def _first_alternative(result: Dict[str, Any]) -> Dict[str, Any]:
    alternatives = result.get("alternatives") or []
    return alternatives[0] if alternatives else {}


@dataclass
class SpeechResponse:
    """Flattened Google Speech recognize response."""

    words: List[RecognizedWord]
    confidence: Optional[float]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SpeechResponse:
        results = data.get("results") or []

        confidence = None
        if results:
            confidence = _first_alternative(results[0]).get("confidence")

        raw_words: List[Dict[str, Any]] = []
        if results:
            last_words = _first_alternative(results[-1]).get("words") or []
            if last_words and all(w.get("speakerTag") for w in last_words):
                raw_words = list(last_words)
            else:
                for result in results:
                    raw_words.extend(_first_alternative(result).get("words") or [])

        return cls(
            words=[_parse_word(w) for w in raw_words],
            confidence=float(confidence) if confidence is not None else None,
        )


@dataclass
class TranscriptionResult:
    """Backend /api/transcribe response: assembled segments plus confidence."""

    segments: List[TranscriptSegment]
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TranscriptionResult:
        confidence = data.get("confidence")
        return cls(
            segments=[TranscriptSegment.from_dict(s) for s in data.get("transcription") or []],
            confidence=float(confidence) if confidence is not None else None,
        )
