"""Shared test fixtures for the meet_assistant test suite.

WHY: The assembler, API, recorder and storage tests all need the same
sample words, Google responses and transcript entries; the capture loop
and recorder tests need in-memory fakes of the microphone and recognizer
ports.

HOW: Plain fixtures for sample data, plus Fake* implementations of the
capture ports that record every call and expose helpers (push, emit,
end, fail) to drive the loop from a test.

RULES:
- Timestamps are fixed and timezone-aware for reproducible assertions
- Fakes never sleep; tests control timing with small loop delays
- Stores always live under tmp_path
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from meet_assistant.capture.ports import (
    AudioCapture,
    AudioSource,
    AudioStream,
    PermissionDeniedError,
    RecognitionBusyError,
    Recognizer,
)
from meet_assistant.core.ir import RecognizedWord, TranscriptEntry
from meet_assistant.storage import TranscriptStore

FIXED_NOW = datetime(2024, 5, 1, 10, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def greeting_words() -> List[RecognizedWord]:
    """سلام/خوبم from speaker 1, then من from speaker 2."""
    return [
        RecognizedWord("سلام", 0.0, 1.0, 1),
        RecognizedWord("خوبم", 1.0, 2.0, 1),
        RecognizedWord("من", 2.0, 3.0, 2),
    ]


@pytest.fixture
def diarized_google_response() -> Dict[str, Any]:
    """A speech:recognize response with diarization enabled.

    The last result repeats every word with its speakerTag, as Google
    does when diarization is on.
    """
    return {
        "results": [
            {
                "alternatives": [{
                    "transcript": "سلام خوبم",
                    "confidence": 0.92,
                    "words": [
                        {"word": "سلام", "startTime": "0s", "endTime": "1s"},
                        {"word": "خوبم", "startTime": "1s", "endTime": "2s"},
                    ],
                }],
            },
            {
                "alternatives": [{
                    "transcript": "من",
                    "confidence": 0.88,
                    "words": [
                        {"word": "من", "startTime": "2s", "endTime": "3s"},
                    ],
                }],
            },
            {
                "alternatives": [{
                    "words": [
                        {"word": "سلام", "startTime": "0s", "endTime": "1s", "speakerTag": 1},
                        {"word": "خوبم", "startTime": "1s", "endTime": "2s", "speakerTag": 1},
                        {"word": "من", "startTime": "2s", "endTime": "3.500s", "speakerTag": 2},
                    ],
                }],
            },
        ],
    }


def make_entry(
    text: str,
    speaker: str = "علی",
    timestamp: datetime = FIXED_NOW,
    confidence: Optional[float] = None,
    is_question: bool = False,
) -> TranscriptEntry:
    return TranscriptEntry(
        text=text,
        speaker=speaker,
        timestamp=timestamp,
        confidence=confidence,
        is_question=is_question,
    )


@pytest.fixture
def sample_entries() -> List[TranscriptEntry]:
    return [
        make_entry("سلام به همه، جلسه را شروع می‌کنیم", "علی"),
        make_entry("گزارش فروش این ماه کجاست؟", "سارا", confidence=0.9, is_question=True),
        make_entry("باشه", "علی"),
    ]


@pytest.fixture
def store(tmp_path) -> TranscriptStore:
    return TranscriptStore(tmp_path / "transcripts.json")


# ---------------------------------------------------------------------------
# Capture port fakes
# ---------------------------------------------------------------------------


class FakeCapture(AudioCapture):
    def __init__(self) -> None:
        self.on_data: Optional[Callable[[bytes], None]] = None
        self.pending: List[bytes] = []
        self.started = False
        self.stopped = False

    def start(self, on_data):
        self.on_data = on_data
        self.started = True

    def push(self, data: bytes) -> None:
        """Deliver a chunk immediately."""
        assert self.on_data is not None
        self.on_data(data)

    def stop(self):
        self.stopped = True
        for data in self.pending:
            self.on_data(data)
        self.pending = []


class FakeStream(AudioStream):
    def __init__(self) -> None:
        self.captures: List[FakeCapture] = []
        self.closed = False

    @property
    def current(self) -> FakeCapture:
        return self.captures[-1]

    def new_capture(self):
        capture = FakeCapture()
        self.captures.append(capture)
        return capture

    def close(self):
        self.closed = True


class FakeSource(AudioSource):
    """Microphone fake; delay keeps open() pending and error replaces the stream."""

    def __init__(
        self,
        deny: bool = False,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ) -> None:
        self.deny = deny
        self.delay = delay
        self.error = error
        self.stream = FakeStream()
        self.open_calls = 0

    async def open(self):
        self.open_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.deny:
            raise PermissionDeniedError("Permission denied")
        return self.stream


class FakeRecognizer(Recognizer):
    def __init__(self) -> None:
        self.active = False
        self.start_calls = 0
        self.stop_calls = 0
        self.on_result = None
        self.on_error = None
        self.on_end = None

    def start(self, on_result, on_error, on_end):
        self.start_calls += 1
        if self.active:
            raise RecognitionBusyError("recognition has already started")
        self.active = True
        self.on_result = on_result
        self.on_error = on_error
        self.on_end = on_end

    def stop(self):
        self.stop_calls += 1
        if self.active:
            self.end()

    # Helpers used by tests to simulate the engine

    def emit(self, text: str, is_final: bool = True) -> None:
        self.on_result(text, is_final)

    def fail(self, code: str) -> None:
        self.on_error(code)

    def end(self) -> None:
        self.active = False
        if self.on_end is not None:
            self.on_end()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()
