"""Meeting recorder — the controller behind the assistant's record button.

WHY: Live recognition, server-side diarized transcription, the speaker
roster, persistence and summaries all have to be coordinated around one
recording session. The recorder is constructed explicitly by the host
(browser bridge, CLI, tests) and owns every one of those pieces.

HOW: Wraps one ContinuousCaptureLoop. Finalized live text becomes an
entry attributed to the currently selected speaker; each audio clip is
sent to the backend and the returned segments become entries attributed
via roster.resolve(). Entries are appended to the TranscriptStore. The
host is told about progress through on_status(text, level) instead of
touching any UI directly.

RULES:
- One is_processing flag guards both transcript paths; a flush attempted
  while another is outstanding is dropped, not queued
- Server results arriving after close() are discarded
- stop() and close() also cancel a start that is still opening the microphone
- Clips are only sent while the backend is reachable (see check_connection)
- Summary: empty store → fixed message; backend when connected; local
  heuristic otherwise or when the backend call fails
- BackendError and StorageError never escape to the capture loop
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from meet_assistant.api.backend import BackendClient, BackendError
from meet_assistant.api.models import TranscriptionResult
from meet_assistant.capture.loop import CaptureError, ContinuousCaptureLoop
from meet_assistant.capture.ports import AudioSource, Recognizer
from meet_assistant.config import CLIP_SECONDS
from meet_assistant.core.ir import MeetingTranscript, TranscriptEntry
from meet_assistant.core.questions import is_question
from meet_assistant.core.roster import SpeakerRoster
from meet_assistant.core.summary import EMPTY_TRANSCRIPT_MESSAGE, generate_local_summary
from meet_assistant.formatters import FORMATTERS
from meet_assistant.formatters.base import FormatterOutput
from meet_assistant.storage import StorageError, TranscriptStore

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str, str], None]

STATUS_READY = "آماده"
STATUS_REQUESTING_MIC = "درخواست مجوز میکروفون..."
STATUS_RECORDING = "در حال ضبط..."
STATUS_MIC_DENIED = "دسترسی به میکروفون رد شد"
STATUS_RECORDING_FAILED = "خطا در شروع ضبط"
STATUS_RECOGNITION_DENIED = "دسترسی به تشخیص گفتار رد شد"
STATUS_SAVED = "متن ذخیره شد ✓"
STATUS_SAVE_FAILED = "خطا در ذخیره‌سازی"
STATUS_LOAD_FAILED = "خطا در بارگذاری متن‌ها"
STATUS_PROCESSING_AUDIO = "پردازش صوت توسط AI..."
STATUS_AI_RECEIVED = "متن از AI دریافت شد ✓"
STATUS_AI_FAILED = "خطا در پردازش AI"
STATUS_SUMMARY_FALLBACK = "خطا در اتصال به سرور، خلاصه محلی تولید شد"
STATUS_CLEARED = "همه متن‌ها پاک شد"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_entry(
    text: str,
    speaker: str,
    timestamp: datetime,
    confidence: Optional[float] = None,
) -> TranscriptEntry:
    """Build a stored entry; the question flag is fixed here."""
    text = text.strip()
    return TranscriptEntry(
        text=text,
        speaker=speaker,
        timestamp=timestamp,
        confidence=confidence,
        is_question=is_question(text),
    )


class MeetingRecorder:
    """Coordinates one meeting's capture, attribution, storage and summary.

    Args:
        source: Microphone port handed to the capture loop.
        recognizer: Live recognition port handed to the capture loop.
        store: Where transcript entries are persisted.
        roster: Known participants; a roster with the default name is
            created when omitted.
        backend: An entered BackendClient, or None for local-only mode.
        on_status: Receives (text, level) notifications; level is one of
            "info", "recording", "success", "error".
        clock: Returns the current timezone-aware time.
    """

    def __init__(
        self,
        source: AudioSource,
        recognizer: Recognizer,
        store: TranscriptStore,
        roster: Optional[SpeakerRoster] = None,
        backend: Optional[BackendClient] = None,
        on_status: Optional[StatusCallback] = None,
        clock: Callable[[], datetime] = _utcnow,
        clip_seconds: float = CLIP_SECONDS,
    ) -> None:
        self.store = store
        self.roster = roster if roster is not None else SpeakerRoster()
        if not len(self.roster):
            self.roster.add(self.roster.default_name)
        self.backend = backend
        self._on_status = on_status
        self._clock = clock

        self.is_processing = False
        self.is_generating_summary = False
        self.connected = False
        self.closed = False
        self.summary: Optional[str] = None
        self.interim_text = ""
        self._tasks: Set[asyncio.Task] = set()

        self.capture = ContinuousCaptureLoop(
            source,
            recognizer,
            on_transcript=self.handle_transcript,
            on_interim=self._on_interim,
            on_clip=self._on_clip,
            on_error=self._on_capture_error,
            is_busy=lambda: self.is_processing,
            clip_seconds=clip_seconds,
        )

    # ------------------------------------------------------------------
    # Recording lifecycle
    # ------------------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        return self.capture.is_recording

    async def start(self) -> bool:
        if self.closed:
            return False
        if self.backend is not None:
            await self.check_connection()
            if self.closed:
                return False
        self._status(STATUS_REQUESTING_MIC, "info")
        started = await self.capture.start()
        if started:
            self._status(STATUS_RECORDING, "recording")
        return started

    def stop(self) -> None:
        """Stop recording; a start still opening the microphone is cancelled."""
        was_recording = self.capture.is_recording
        self.capture.stop()
        self.interim_text = ""
        if was_recording:
            self._status(STATUS_READY, "info")

    async def toggle(self) -> bool:
        """Start when idle, stop when recording; returns is_recording."""
        if self.capture.is_recording:
            self.stop()
        else:
            await self.start()
        return self.capture.is_recording

    def close(self) -> None:
        """Stop recording and refuse every later transcript mutation."""
        self.stop()
        self.closed = True

    async def drain(self) -> None:
        """Wait for every outstanding save and transcription task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Capture loop callbacks
    # ------------------------------------------------------------------

    def _on_interim(self, text: str) -> None:
        self.interim_text = text
        self._status("در حال تشخیص: {}".format(text), "recording")

    def _on_clip(self, clip: bytes) -> None:
        if self.backend is None or not self.connected or self.closed:
            logger.debug("Dropping %d-byte clip (no backend connection)", len(clip))
            return
        self._spawn(self.process_audio(clip))

    def _on_capture_error(self, error: CaptureError) -> None:
        if error.kind == "permission":
            self._status(STATUS_MIC_DENIED, "error")
        elif error.kind == "recognition":
            self._status(STATUS_RECOGNITION_DENIED, "error")
        else:
            self._status(STATUS_RECORDING_FAILED, "error")

    # ------------------------------------------------------------------
    # Transcript paths
    # ------------------------------------------------------------------

    def handle_transcript(self, text: str) -> Optional[asyncio.Task]:
        """Save one finalized live-recognition text for the current speaker.

        Returns the save task, or None when the text was dropped.
        """
        text = (text or "").strip()
        if not text or self.closed:
            return None
        if self.is_processing:
            logger.debug("Transcript dropped while another save is in flight")
            return None
        self.is_processing = True
        entry = make_entry(text, self.roster.current_name, self._clock())
        logger.info("Transcript received: %s", text)
        return self._spawn(self._save([entry]))

    def handle_server_transcription(self, result: TranscriptionResult) -> Optional[asyncio.Task]:
        """Save one entry per diarized segment, speakers resolved by tag."""
        if self.closed:
            logger.info("Discarding transcription result received after close")
            return None
        if not result.segments:
            return None
        if self.is_processing:
            logger.debug("Server transcription dropped while another save is in flight")
            return None
        self.is_processing = True
        now = self._clock()
        entries = [
            make_entry(segment.text, self.roster.resolve(segment.speaker_tag), now, result.confidence)
            for segment in result.segments
            if segment.text.strip()
        ]
        return self._spawn(self._save(entries, STATUS_AI_RECEIVED))

    async def process_audio(self, clip: bytes) -> None:
        """Send one clip to the backend and save the returned segments."""
        if self.backend is None:
            return
        self._status(STATUS_PROCESSING_AUDIO, "info")
        try:
            result = await self.backend.transcribe(clip, max(1, len(self.roster)))
        except BackendError as exc:
            logger.error("Error processing audio: %s", exc)
            self._status(STATUS_AI_FAILED, "error")
            return
        task = self.handle_server_transcription(result)
        if task is not None:
            await task

    async def _save(self, entries: List[TranscriptEntry], success_status: str = STATUS_SAVED) -> None:
        try:
            saved = await self.store.append(entries)
        except StorageError as exc:
            logger.error("Failed to save transcript: %s", exc)
            self._status(STATUS_SAVE_FAILED, "error")
        else:
            logger.info("Transcript saved, total entries: %d", len(saved))
            self._status(success_status, "success")
        finally:
            self.is_processing = False

    # ------------------------------------------------------------------
    # Backend, summary and export
    # ------------------------------------------------------------------

    async def check_connection(self) -> bool:
        if self.backend is None:
            self.connected = False
        else:
            self.connected = await self.backend.check_health()
        logger.info("Backend connected: %s", self.connected)
        return self.connected

    async def _load_entries(self) -> List[TranscriptEntry]:
        try:
            return await self.store.load()
        except StorageError as exc:
            logger.error("Failed to load transcripts: %s", exc)
            self._status(STATUS_LOAD_FAILED, "error")
            raise

    async def generate_summary(self) -> str:
        entries = await self._load_entries()
        if not entries:
            self.summary = EMPTY_TRANSCRIPT_MESSAGE
            return self.summary

        names = self.roster.names
        self.is_generating_summary = True
        try:
            if self.backend is not None and self.connected:
                try:
                    summary = await self.backend.generate_summary(entries, names)
                except BackendError as exc:
                    logger.warning("Summary generation failed, using local summary: %s", exc)
                    self._status(STATUS_SUMMARY_FALLBACK, "error")
                    summary = generate_local_summary(entries, names, self._clock())
            else:
                summary = generate_local_summary(entries, names, self._clock())
        finally:
            self.is_generating_summary = False

        self.summary = summary
        return summary

    async def ask(self, question: str) -> str:
        """Ask the backend a question about the stored meeting."""
        if self.backend is None:
            raise BackendError("No backend configured")
        entries = await self._load_entries()
        return await self.backend.ask(question, entries, self.roster.names)

    async def export(self, kind: str = "transcript") -> FormatterOutput:
        """Render the stored transcript with the named exporter.

        Raises:
            KeyError: unknown exporter name.
            ValueError: nothing stored yet.
        """
        formatter = FORMATTERS[kind]()
        entries = await self._load_entries()
        if not entries:
            raise ValueError("هیچ متنی برای دانلود وجود ندارد")
        meeting = MeetingTranscript(
            entries=entries,
            speaker_names=self.roster.names,
            generated_at=self._clock(),
            summary=self.summary,
        )
        return formatter.format(meeting)[0]

    # ------------------------------------------------------------------
    # Roster and store maintenance
    # ------------------------------------------------------------------

    def add_speaker(self, name: str) -> bool:
        return self.roster.add(name)

    def select_speaker(self, index: int) -> None:
        self.roster.select(index)

    async def rename_speaker(self, index: int, new_name: str) -> bool:
        """Rename a speaker and re-attribute their stored entries."""
        old_name = self.roster.rename(index, new_name)
        if old_name is None or self.closed:
            return False
        new_name = self.roster.names[index]
        if new_name != old_name:
            await self.store.rename_speaker(old_name, new_name)
        return True

    async def remove_speaker(self, index: int) -> bool:
        """Remove a speaker and their stored entries."""
        removed = self.roster.remove(index)
        if removed is None or self.closed:
            return False
        await self.store.remove_speaker(removed)
        return True

    async def clear_transcripts(self) -> None:
        await self.store.clear()
        self.summary = None
        self._status(STATUS_CLEARED, "info")

    async def stats(self) -> Tuple[int, int]:
        """Return (entry count, question count) of the stored transcript."""
        entries = await self._load_entries()
        return len(entries), sum(1 for e in entries if e.is_question)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _status(self, text: str, level: str) -> None:
        if self._on_status is None:
            return
        try:
            self._on_status(text, level)
        except Exception:
            logger.exception("Status callback failed")
