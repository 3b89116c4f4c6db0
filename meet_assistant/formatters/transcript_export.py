"""Numbered plain-text transcript export.

WHY: Users download the stored transcript of a call for archival. This
is the layout of the "download transcript" button.

HOW: A header block (title, date, time, message count, participants),
then one numbered block per entry with its time, speaker, confidence
percentage and a question marker, then the summary when one was
generated, then a footer.

RULES:
- File name: google-meet-YYYY-MM-DD.txt (date of generated_at)
- Confidence is shown as a rounded percentage, only when present
- Question entries are marked with 💭
- Entry times are printed in the generation time's timezone
- Media type: "text/plain; charset=utf-8"
"""

from __future__ import annotations

from typing import List

from meet_assistant.core.ir import MeetingTranscript, TranscriptEntry
from meet_assistant.formatters.base import BaseFormatter, FormatterOutput

_RULE = "============================"
QUESTION_MARKER = "💭"


def _format_entry(index: int, entry: TranscriptEntry, meeting: MeetingTranscript) -> str:
    time = entry.timestamp.astimezone(meeting.generated_at.tzinfo).strftime("%H:%M:%S")
    confidence = ""
    if entry.confidence:
        confidence = " (اعتماد: {}%)".format(round(entry.confidence * 100))
    question = " " + QUESTION_MARKER if entry.is_question else ""
    return "{}. [{}] {}{}{}\n   {}\n".format(
        index, time, entry.speaker, confidence, question, entry.text,
    )


class TranscriptExportFormatter(BaseFormatter):
    """Formatter for the numbered transcript download."""

    @property
    def name(self) -> str:
        return "Transcript Export"

    def format(self, meeting: MeetingTranscript) -> List[FormatterOutput]:
        generated = meeting.generated_at
        lines: List[str] = [
            "متن جلسه Google Meet",
            _RULE,
            "تاریخ: {}".format(generated.date().isoformat()),
            "زمان: {}".format(generated.strftime("%H:%M:%S")),
            "تعداد پیام‌ها: {}".format(len(meeting.entries)),
            "شرکت‌کنندگان: {}".format(", ".join(meeting.speaker_names)),
            "",
            _RULE,
            "",
            "\n".join(
                _format_entry(i, entry, meeting)
                for i, entry in enumerate(meeting.entries, start=1)
            ),
        ]
        if meeting.summary:
            lines.extend([_RULE, "خلاصه جلسه:", meeting.summary, ""])
        lines.extend([
            _RULE,
            "تولید شده توسط دستیار جلسات",
            generated.strftime("%Y-%m-%d %H:%M:%S"),
        ])

        return [
            FormatterOutput(
                filename="google-meet-{}.txt".format(generated.date().isoformat()),
                content="\n".join(lines) + "\n",
                media_type="text/plain; charset=utf-8",
            )
        ]
