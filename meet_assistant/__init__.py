"""Meeting Assistant — live transcription, speaker attribution and summaries for Google Meet.

WHY: Participants in a long Persian-language call want a running,
speaker-attributed transcript, the questions that were asked, and a
summary at the end, without taking notes by hand.

HOW: Four layers: capture (continuous microphone capture and live
recognition), core (segment assembly, roster, question heuristic, local
summary), api (Google Speech, LLM and backend clients) and the server
that wraps the paid services. MeetingRecorder ties them together.

RULES:
- Core modules are pure and synchronous; I/O lives in api, storage and capture
- The IR in core.ir is the contract between every layer
"""

__version__ = "0.1.0"
