"""JSON-file transcript store with async read-modify-write operations.

WHY: Transcript entries must survive restarts, be cleared on request,
and expire after a retention period. The store is the single persisted
list of TranscriptEntry records under one key.

HOW: The file holds {"transcripts": [...]}. Every mutation reads the
full current list, changes it, and writes it back. Writes go to a
temporary sibling file that is then renamed over the original. An
asyncio.Lock serializes mutations inside one process; file I/O runs in
a worker thread so the event loop is not blocked.

RULES:
- A missing file reads as an empty list
- OSError and malformed JSON are raised as StorageError (no retry)
- Writers in other processes are not coordinated; the last write wins
- remove_older_than() keeps entries strictly newer than the cutoff
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from meet_assistant.config import CLEANUP_INTERVAL_S, RETENTION_DAYS, STORE_KEY, STORE_PATH
from meet_assistant.core.ir import TranscriptEntry

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the transcript file cannot be read or written."""


class TranscriptStore:
    """Persisted list of transcript entries.

    RULES:
    - All mutating methods hold self._lock for the whole read-modify-write
    - Returned lists are copies; mutate through the store methods only
    """

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path is not None else STORE_PATH
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # File access (runs in a worker thread)
    # ------------------------------------------------------------------

    def _read_sync(self) -> List[TranscriptEntry]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            return [TranscriptEntry.from_dict(item) for item in raw.get(STORE_KEY, [])]
        except OSError as exc:
            raise StorageError("Failed to read {}: {}".format(self.path, exc)) from exc
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StorageError("Malformed transcript file {}: {}".format(self.path, exc)) from exc

    def _write_sync(self, entries: List[TranscriptEntry]) -> None:
        payload = {STORE_KEY: [e.to_dict() for e in entries]}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError("Failed to write {}: {}".format(self.path, exc)) from exc

    async def _modify(
        self, change: Callable[[List[TranscriptEntry]], List[TranscriptEntry]]
    ) -> List[TranscriptEntry]:
        async with self._lock:
            entries = await asyncio.to_thread(self._read_sync)
            updated = change(entries)
            await asyncio.to_thread(self._write_sync, updated)
        return list(updated)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def load(self) -> List[TranscriptEntry]:
        return await asyncio.to_thread(self._read_sync)

    async def append(self, entries: Iterable[TranscriptEntry]) -> List[TranscriptEntry]:
        """Append entries and return the full updated list."""
        new_entries = list(entries)
        return await self._modify(lambda current: current + new_entries)

    async def clear(self) -> None:
        await self._modify(lambda current: [])
        logger.info("Transcript store cleared: %s", self.path)

    async def remove_older_than(
        self,
        max_age: timedelta = timedelta(days=RETENTION_DAYS),
        now: Optional[datetime] = None,
    ) -> int:
        """Drop entries older than max_age; returns how many were removed."""
        cutoff = (now or datetime.now().astimezone()) - max_age
        removed = 0

        def _filter(current: List[TranscriptEntry]) -> List[TranscriptEntry]:
            nonlocal removed
            kept = [e for e in current if e.timestamp > cutoff]
            removed = len(current) - len(kept)
            return kept

        await self._modify(_filter)
        if removed:
            logger.info("Removed %d transcript entries older than %s", removed, cutoff.isoformat())
        return removed

    async def rename_speaker(self, old_name: str, new_name: str) -> int:
        """Re-attribute every entry of old_name to new_name."""
        changed = 0

        def _rename(current: List[TranscriptEntry]) -> List[TranscriptEntry]:
            nonlocal changed
            for entry in current:
                if entry.speaker == old_name:
                    entry.speaker = new_name
                    changed += 1
            return current

        await self._modify(_rename)
        return changed

    async def remove_speaker(self, name: str) -> int:
        """Delete every entry attributed to name."""
        removed = 0

        def _remove(current: List[TranscriptEntry]) -> List[TranscriptEntry]:
            nonlocal removed
            kept = [e for e in current if e.speaker != name]
            removed = len(current) - len(kept)
            return kept

        await self._modify(_remove)
        return removed

    async def run_periodic_cleanup(
        self,
        interval_s: float = CLEANUP_INTERVAL_S,
        max_age: timedelta = timedelta(days=RETENTION_DAYS),
    ) -> None:
        """Run remove_older_than every interval_s seconds until cancelled.

        Storage errors are logged and the loop keeps going.
        """
        while True:
            await asyncio.sleep(interval_s)
            try:
                await self.remove_older_than(max_age)
            except StorageError:
                logger.exception("Periodic transcript cleanup failed")
