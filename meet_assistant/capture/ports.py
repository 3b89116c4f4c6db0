"""Abstract ports for microphone capture and live speech recognition.

WHY: The capture loop must keep audio capture and live recognition alive
for hours, but the concrete primitives (a browser MediaRecorder, a
sounddevice stream, an on-device recognizer) only support bounded
sessions and live outside this package. The loop is written against
these small interfaces so any host can plug in its own implementation,
and tests can plug in fakes.

HOW: Three ABCs:
  AudioSource  — asks for microphone access and opens an AudioStream
  AudioStream  — a live microphone stream that hands out capture units
  AudioCapture — one bounded capture unit; pushes data chunks while running
  Recognizer   — a live recognition session that can be started repeatedly

RULES:
- AudioSource.open() raises PermissionDeniedError when access is refused
- AudioCapture.stop() delivers any pending data through on_data before
  returning
- Recognizer.start() raises RecognitionBusyError when a session is
  already running
- Recognizer reports through the three callbacks given to start():
  on_result(text, is_final), on_error(code), on_end()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

DataCallback = Callable[[bytes], None]
ResultCallback = Callable[[str, bool], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]


class PermissionDeniedError(Exception):
    """Raised when microphone or recognition permission is refused."""


class RecognitionBusyError(RuntimeError):
    """Raised by Recognizer.start() when a session is already open."""


class AudioCapture(ABC):
    """One bounded audio capture unit (e.g. a single MediaRecorder run)."""

    @abstractmethod
    def start(self, on_data: DataCallback) -> None:
        """Begin capturing; encoded chunks are passed to on_data."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing after flushing pending data through on_data."""


class AudioStream(ABC):
    """A live microphone stream."""

    @abstractmethod
    def new_capture(self) -> AudioCapture:
        """Return a fresh, not yet started capture unit on this stream."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying device/tracks."""


class AudioSource(ABC):
    """Entry point to the microphone."""

    @abstractmethod
    async def open(self) -> AudioStream:
        """Request access and open a stream.

        Raises:
            PermissionDeniedError: access was refused.
        """


class Recognizer(ABC):
    """A live, on-device speech recognition engine."""

    @abstractmethod
    def start(
        self,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        on_end: EndCallback,
    ) -> None:
        """Open a recognition session.

        Raises:
            RecognitionBusyError: a session is already open.
        """

    @abstractmethod
    def stop(self) -> None:
        """Close the current session; on_end may fire as a result."""
