"""Continuous capture loop — gapless audio capture plus self-healing live recognition.

WHY: A meeting can run for hours, but the capture and recognition
primitives only support bounded sessions: a capture unit produces one
clip, and live recognition sessions end on their own (silence, network
hiccups, browser limits). While the user is recording, both must appear
to run without interruption.

HOW: A small state machine (IDLE → STARTING → ACTIVE → STOPPING → IDLE)
driven by the asyncio event loop. Audio is captured in units; on every
time slice, and whenever the recognition session ends, a fresh unit is
started before the old one is stopped, and the old unit's chunks are
emitted as one clip. Recognition sessions that end or fail are reopened
after a short fixed delay via loop.call_later. Final recognized text is
buffered until it is long enough to be worth an entry.

RULES:
- start() while not IDLE is a no-op
- Permission denied on start → IDLE, error reported, no retry
- Recognition end while ACTIVE → flush text, rotate capture, reopen after 0.1 s
- Recognition error: permission codes are terminal; others reopen after 1.0 s
- A reopen that raises is logged and ignored (no state change, no error)
- No retry cap: reopening continues while ACTIVE
- A capture unit that fails to open is reopened at the next rotation
- Final text is emitted once its buffer is longer than min_flush_chars and
  the host is not busy; residual text is flushed when a session ends
- stop() cancels timers, closes recognition (best effort), flushes text,
  emits the last clip, closes the stream
- Exceptions raised by callbacks are logged and never escape the loop
- Recognizer and capture callbacks must run on the event loop thread
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set, Tuple

from meet_assistant.capture.ports import (
    AudioCapture,
    AudioSource,
    AudioStream,
    PermissionDeniedError,
    RecognitionBusyError,
    Recognizer,
)
from meet_assistant.config import (
    CLIP_SECONDS,
    MIN_FLUSH_CHARS,
    PERMISSION_ERROR_CODES,
    RESTART_AFTER_END_S,
    RESTART_AFTER_ERROR_S,
)

logger = logging.getLogger(__name__)


class CaptureState(str, enum.Enum):
    """Lifecycle states of the capture loop."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


@dataclass
class CaptureError:
    """A user-visible failure reported through on_error.

    kind is "permission" (terminal), "capture" (stream could not be
    opened) or "recognition" (live recognition blocked).
    """

    kind: str
    message: str


class ContinuousCaptureLoop:
    """Keeps microphone capture and live recognition running until stop().

    Callbacks:
        on_transcript(text): finalized recognized text, one entry's worth.
        on_interim(text): interim (non-final) recognized text.
        on_clip(audio): one finished audio clip.
        on_error(CaptureError): user-visible failure.
        is_busy(): when True, final text keeps buffering instead of flushing.
    """

    def __init__(
        self,
        source: AudioSource,
        recognizer: Recognizer,
        on_transcript: Optional[Callable[[str], Any]] = None,
        on_interim: Optional[Callable[[str], Any]] = None,
        on_clip: Optional[Callable[[bytes], Any]] = None,
        on_error: Optional[Callable[[CaptureError], Any]] = None,
        is_busy: Optional[Callable[[], bool]] = None,
        clip_seconds: float = CLIP_SECONDS,
        min_flush_chars: int = MIN_FLUSH_CHARS,
        restart_after_end_s: float = RESTART_AFTER_END_S,
        restart_after_error_s: float = RESTART_AFTER_ERROR_S,
    ) -> None:
        self._source = source
        self._recognizer = recognizer
        self._on_transcript = on_transcript
        self._on_interim = on_interim
        self._on_clip = on_clip
        self._on_error = on_error
        self._is_busy = is_busy or (lambda: False)
        self._clip_seconds = clip_seconds
        self._min_flush_chars = min_flush_chars
        self._restart_after_end_s = restart_after_end_s
        self._restart_after_error_s = restart_after_error_s

        self.state = CaptureState.IDLE
        self.recognizing = False
        self.restart_attempts = 0

        self._stream: Optional[AudioStream] = None
        self._capture: Optional[AudioCapture] = None
        self._chunks: List[bytes] = []
        self._final_buffer = ""
        self._recognition_blocked = False
        self._stop_requested = False
        self._restart_timers: Set[asyncio.TimerHandle] = set()
        self._slice_timer: Optional[asyncio.TimerHandle] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        return self.state is CaptureState.ACTIVE

    @property
    def pending_restarts(self) -> int:
        return len(self._restart_timers)

    async def start(self) -> bool:
        """Open the microphone and start capture and recognition.

        Returns True when the loop is ACTIVE afterwards.
        """
        if self.state is not CaptureState.IDLE:
            logger.debug("start() ignored in state %s", self.state.value)
            return False

        self.state = CaptureState.STARTING
        self._stop_requested = False
        try:
            stream = await self._source.open()
        except PermissionDeniedError as exc:
            self.state = CaptureState.IDLE
            logger.warning("Microphone permission denied: %s", exc)
            self._emit(self._on_error, CaptureError("permission", str(exc)))
            return False
        except Exception as exc:
            self.state = CaptureState.IDLE
            logger.exception("Error starting recording")
            self._emit(self._on_error, CaptureError("capture", str(exc)))
            return False

        if self._stop_requested:
            self._close_stream(stream)
            self.state = CaptureState.IDLE
            return False

        self._stream = stream
        self._final_buffer = ""
        self._recognition_blocked = False
        self._capture, self._chunks = self._open_capture()
        self.state = CaptureState.ACTIVE
        self._open_recognition()
        self._schedule_slice()
        logger.info("Recording started")
        return True

    def stop(self) -> None:
        """Stop recording and release every handle."""
        if self.state is CaptureState.STARTING:
            self._stop_requested = True
            return
        if self.state is not CaptureState.ACTIVE:
            return

        self.state = CaptureState.STOPPING
        self._cancel_timers()

        try:
            self._recognizer.stop()
        except Exception:
            logger.debug("Recognition stop failed", exc_info=True)
        self.recognizing = False
        self._flush_final(force=True)

        capture, chunks = self._capture, self._chunks
        self._capture, self._chunks = None, []
        if capture is not None:
            self._stop_capture(capture)
            self._emit_clip(chunks)

        if self._stream is not None:
            self._close_stream(self._stream)
            self._stream = None

        self._final_buffer = ""
        self.state = CaptureState.IDLE
        logger.info("Recording stopped")

    # ------------------------------------------------------------------
    # Audio capture
    # ------------------------------------------------------------------

    def _open_capture(self) -> Tuple[AudioCapture, List[bytes]]:
        if self._stream is None:
            raise RuntimeError("No open audio stream; call start() first")
        chunks: List[bytes] = []

        def _on_data(data: bytes) -> None:
            if data:
                chunks.append(data)

        capture = self._stream.new_capture()
        capture.start(_on_data)
        return capture, chunks

    def _rotate_capture(self) -> None:
        """Start a new capture unit, then close the old one and emit its clip.

        When the previous rotation failed to open a unit there is nothing
        to close; the open is simply retried.
        """
        if self._stream is None:
            return
        old_capture, old_chunks = self._capture, self._chunks
        try:
            self._capture, self._chunks = self._open_capture()
        except Exception:
            logger.exception("Failed to open a new capture unit")
            self._capture, self._chunks = None, []
        if old_capture is not None:
            self._stop_capture(old_capture)
            self._emit_clip(old_chunks)

    def _stop_capture(self, capture: AudioCapture) -> None:
        try:
            capture.stop()
        except Exception:
            logger.warning("Capture stop failed", exc_info=True)

    def _close_stream(self, stream: AudioStream) -> None:
        try:
            stream.close()
        except Exception:
            logger.warning("Closing audio stream failed", exc_info=True)

    def _emit_clip(self, chunks: List[bytes]) -> None:
        if chunks:
            self._emit(self._on_clip, b"".join(chunks))

    def _schedule_slice(self) -> None:
        if self._clip_seconds <= 0:
            return
        loop = asyncio.get_running_loop()
        self._slice_timer = loop.call_later(self._clip_seconds, self._on_slice)

    def _on_slice(self) -> None:
        self._slice_timer = None
        if self.state is not CaptureState.ACTIVE:
            return
        self._rotate_capture()
        self._schedule_slice()

    # ------------------------------------------------------------------
    # Live recognition
    # ------------------------------------------------------------------

    def _open_recognition(self) -> None:
        try:
            self._recognizer.start(
                self._on_result,
                self._on_recognition_error,
                self._on_recognition_end,
            )
        except RecognitionBusyError:
            logger.info("Recognition already started")
            self.recognizing = True
            return
        except Exception:
            logger.warning("Failed to start recognition", exc_info=True)
            return
        self.recognizing = True

    def _schedule_restart(self, delay: float) -> None:
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            self._restart_timers.discard(handle)
            if self.state is not CaptureState.ACTIVE or self._recognition_blocked:
                return
            self.restart_attempts += 1
            self._open_recognition()

        handle = loop.call_later(delay, _fire)
        self._restart_timers.add(handle)

    def _cancel_timers(self) -> None:
        for handle in self._restart_timers:
            handle.cancel()
        self._restart_timers.clear()
        if self._slice_timer is not None:
            self._slice_timer.cancel()
            self._slice_timer = None

    def _on_result(self, text: str, is_final: bool) -> None:
        if is_final:
            self._final_buffer += text
            self._flush_final()
        elif text:
            self._emit(self._on_interim, text)

    def _on_recognition_error(self, code: str) -> None:
        logger.warning("Speech recognition error: %s", code)
        if code in PERMISSION_ERROR_CODES:
            self._recognition_blocked = True
            self._emit(self._on_error, CaptureError("recognition", code))
            return
        if self.state is CaptureState.ACTIVE:
            self._schedule_restart(self._restart_after_error_s)

    def _on_recognition_end(self) -> None:
        self.recognizing = False
        self._flush_final(force=True)
        if self.state is not CaptureState.ACTIVE or self._recognition_blocked:
            return
        self._rotate_capture()
        self._schedule_restart(self._restart_after_end_s)

    def _flush_final(self, force: bool = False) -> None:
        text = self._final_buffer.strip()
        if not text:
            self._final_buffer = ""
            return
        if self._is_busy():
            return
        if not force and len(self._final_buffer) <= self._min_flush_chars:
            return
        self._final_buffer = ""
        self._emit(self._on_transcript, text)

    # ------------------------------------------------------------------
    # Callback dispatch
    # ------------------------------------------------------------------

    def _emit(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Capture loop callback %r failed", callback)
