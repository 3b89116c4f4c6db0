"""Export formatter registry.

WHY: The recorder, CLI and server look up an exporter by a short name.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["transcript"]()``.

RULES:
- Keys are snake_case identifiers (used as CLI choices)
- Values are BaseFormatter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from meet_assistant.formatters.summary_export import SummaryExportFormatter
from meet_assistant.formatters.transcript_export import TranscriptExportFormatter

if TYPE_CHECKING:
    from meet_assistant.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "transcript": TranscriptExportFormatter,
    "summary": SummaryExportFormatter,
}
