"""Lexical question detection for Persian transcript text.

WHY: The assistant highlights questions raised during a meeting and
lists them in the summary. A cheap lexical rule is good enough; false
positives and negatives are accepted.

HOW: Text is a question when it contains the Persian question mark or
any canonical interrogative as a whole word.

RULES:
- "؟" anywhere → question
- Whole-word match of چی, چه, کی, کجا, چرا, چطور, آیا → question
- Word boundaries are Unicode-aware (Python str regex semantics)
"""

from __future__ import annotations

import re
from typing import Iterable, List

from meet_assistant.core.ir import TranscriptEntry

PERSIAN_QUESTION_MARK = "؟"

INTERROGATIVES = ("چی", "چه", "کی", "کجا", "چرا", "چطور", "آیا")

_INTERROGATIVE_RE = re.compile(r"\b(?:{})\b".format("|".join(INTERROGATIVES)))


def is_question(text: str) -> bool:
    """Return True when the text looks like a question."""
    if PERSIAN_QUESTION_MARK in text:
        return True
    return _INTERROGATIVE_RE.search(text) is not None


def detect_questions(entries: Iterable[TranscriptEntry]) -> List[TranscriptEntry]:
    """Return the entries whose text is classified as a question.

    Classification is re-run on the text; the stored is_question flag
    is not consulted, so entries from any source can be filtered.
    """
    return [entry for entry in entries if is_question(entry.text)]
