"""Local heuristic meeting summary, used when the LLM backend is unavailable.

WHY: Summaries must still work offline or when the summary call fails.
A fixed template over the stored entries gives a usable fallback.

HOW: Lists participants, up to ten "key points" (longer entries), the
questions that were asked, the message count and a rough duration.

RULES:
- Key points: entries with more than 20 characters, first 10 only
- Questions: entries flagged is_question at creation time
- Approximate duration: ceil(entry count / 3) minutes
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import List, Sequence

from meet_assistant.core.ir import TranscriptEntry

EMPTY_TRANSCRIPT_MESSAGE = "هیچ متنی برای خلاصه‌سازی وجود ندارد."

_KEY_POINT_MIN_CHARS = 20
_MAX_KEY_POINTS = 10


def generate_local_summary(
    entries: Sequence[TranscriptEntry],
    speaker_names: Sequence[str],
    now: datetime,
) -> str:
    """Build the fallback summary text for a list of entries."""
    key_points = [
        "• {}: {}".format(entry.speaker, entry.text)
        for entry in entries
        if len(entry.text) > _KEY_POINT_MIN_CHARS
    ][:_MAX_KEY_POINTS]
    questions = ["• {}".format(entry.text) for entry in entries if entry.is_question]

    lines: List[str] = [
        "خلاصه جلسه - {}".format(now.date().isoformat()),
        "",
        "شرکت‌کنندگان:",
    ]
    lines.extend("• {}".format(name) for name in speaker_names)
    lines.extend(["", "نکات کلیدی:"])
    lines.extend(key_points)
    if questions:
        lines.extend(["", "سوالات مطرح شده:"])
        lines.extend(questions)
    lines.extend([
        "",
        "تعداد کل پیام‌ها: {}".format(len(entries)),
        "مدت زمان تقریبی: {} دقیقه".format(math.ceil(len(entries) / 3)),
    ])
    return "\n".join(lines).strip()
