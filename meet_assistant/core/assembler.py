"""Speaker-turn segment assembly from diarized word lists.

WHY: The speech service returns a flat, chronologically ordered list of
words, each tagged with a diarization speaker id. Storage and display
need coherent per-speaker lines instead of single words. This module is
the bridge between the raw word list and TranscriptSegment objects.

HOW: A single pass keeps one open segment. A word with the same speaker
tag extends it; a word with a different tag closes it and opens a new
one. The open segment is closed when the list ends.

RULES:
- Input order is trusted; no sorting is performed
- Same tag → append text (with a space) and advance end_s
- A word beginning with an apostrophe is appended without a space
- Different tag, or no open segment → open a new segment
- Empty input → empty output
- A missing/zero speaker tag counts as tag 1
- Pure function: no hidden state, same input gives the same output
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from meet_assistant.core.ir import RecognizedWord, TranscriptSegment

_CONTRACTION_PREFIX = "'"


def assemble(words: Iterable[RecognizedWord]) -> List[TranscriptSegment]:
    """Group diarized words into per-speaker transcript segments.

    Args:
        words: Words in the order the speech service returned them.

    Returns:
        Segments in the order their first word appeared.
    """
    segments: List[TranscriptSegment] = []
    current: Optional[TranscriptSegment] = None

    for word in words:
        tag = word.speaker_tag or 1
        if current is not None and current.speaker_tag == tag:
            separator = "" if word.text.startswith(_CONTRACTION_PREFIX) else " "
            current.text += separator + word.text
            current.end_s = word.end_s
        else:
            if current is not None:
                segments.append(current)
            current = TranscriptSegment(
                speaker_tag=tag,
                text=word.text,
                start_s=word.start_s,
                end_s=word.end_s,
            )

    if current is not None:
        segments.append(current)

    return segments
