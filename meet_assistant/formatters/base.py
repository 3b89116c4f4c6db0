"""Abstract base exporter and output container.

WHY: The recorder and the CLI export the same MeetingTranscript in more
than one text layout. A shared interface lets them pick an exporter by
name without knowing its layout.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles the download file name with its content
and MIME type.

RULES:
- Subclasses MUST implement ``name`` and ``format()``
- ``format()`` returns a list; current exporters return exactly one item
- File names carry the generation date as YYYY-MM-DD
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from meet_assistant.core.ir import MeetingTranscript


@dataclass
class FormatterOutput:
    """One exported file.

    Attributes:
        filename: Download file name, e.g. ``"google-meet-2024-05-01.txt"``.
        content: The file content.
        media_type: MIME type for the content.
    """

    filename: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all transcript exporters.

    To add a new export layout:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name."""

    @abstractmethod
    def format(self, meeting: MeetingTranscript) -> list[FormatterOutput]:
        """Render the meeting into one or more files."""
