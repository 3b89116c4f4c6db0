"""Speaker roster — maps diarization tags to participant display names.

WHY: The speech service labels speakers with numbers (1, 2, ...). Users
see participant names. The roster is the ordered, deduplicated list of
known names plus the speaker currently selected for live recognition.

HOW: A plain list with a current index. Diarization tags resolve to
names[clamp(tag - 1, 0, len - 1)], so tags beyond the roster collapse
onto the last known speaker.

RULES:
- Names are stripped; blanks and duplicates are ignored on add
- An empty roster resolves every tag to DEFAULT_PARTICIPANT
- The last remaining speaker cannot be removed
- Removing a speaker before the current one shifts current_index down;
  removing the current speaker resets it to 0
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from meet_assistant.config import DEFAULT_PARTICIPANT


class SpeakerRoster:
    """Ordered list of participant names with a selected current speaker."""

    def __init__(
        self,
        names: Optional[Iterable[str]] = None,
        default_name: str = DEFAULT_PARTICIPANT,
    ) -> None:
        self._names: List[str] = []
        self.default_name = default_name
        self.current_index = 0
        for name in names or ():
            self.add(name)

    def __len__(self) -> int:
        return len(self._names)

    @property
    def names(self) -> List[str]:
        return list(self._names)

    @property
    def current_name(self) -> str:
        if not self._names:
            return self.default_name
        return self._names[min(self.current_index, len(self._names) - 1)]

    def add(self, name: str) -> bool:
        """Append a name; returns False when blank or already present."""
        name = (name or "").strip()
        if not name or name in self._names:
            return False
        self._names.append(name)
        return True

    def rename(self, index: int, new_name: str) -> Optional[str]:
        """Rename the speaker at index and return the old name.

        Returns None (and changes nothing) for a blank or duplicate name.
        Raises IndexError for an unknown index.
        """
        new_name = (new_name or "").strip()
        old_name = self._names[index]
        if not new_name or (new_name != old_name and new_name in self._names):
            return None
        self._names[index] = new_name
        return old_name

    def remove(self, index: int) -> Optional[str]:
        """Remove the speaker at index and return its name.

        Returns None when only one speaker is left.
        """
        if len(self._names) <= 1:
            return None
        removed = self._names.pop(index)
        if self.current_index == index:
            self.current_index = 0
        elif self.current_index > index:
            self.current_index -= 1
        return removed

    def select(self, index: int) -> None:
        if not 0 <= index < len(self._names):
            raise IndexError("speaker index {} out of range".format(index))
        self.current_index = index

    def resolve(self, speaker_tag: int) -> str:
        """Map a 1-based diarization tag to a participant name."""
        if not self._names:
            return self.default_name
        index = max(0, min(speaker_tag - 1, len(self._names) - 1))
        return self._names[index]
