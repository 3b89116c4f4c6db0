"""Summary export: the generated summary followed by the full transcript."""

from __future__ import annotations

from typing import List

from meet_assistant.core.ir import MeetingTranscript
from meet_assistant.formatters.base import BaseFormatter, FormatterOutput


class SummaryExportFormatter(BaseFormatter):
    """Formatter for the "download summary" file.

    RULES:
    - File name: meeting-summary-YYYY-MM-DD.txt
    - Transcript lines: "<ISO timestamp> - <speaker>: <text>"
    - A missing summary leaves the summary block empty
    """

    @property
    def name(self) -> str:
        return "Summary Export"

    def format(self, meeting: MeetingTranscript) -> List[FormatterOutput]:
        date = meeting.generated_at.date().isoformat()
        transcript_lines = [
            "{} - {}: {}".format(entry.timestamp.isoformat(), entry.speaker, entry.text)
            for entry in meeting.entries
        ]
        content = "\n".join([
            "خلاصه جلسه",
            "تاریخ: {}".format(date),
            "",
            meeting.summary or "",
            "",
            "متن کامل جلسه:",
            *transcript_lines,
        ]) + "\n"

        return [
            FormatterOutput(
                filename="meeting-summary-{}.txt".format(date),
                content=content,
                media_type="text/plain; charset=utf-8",
            )
        ]
