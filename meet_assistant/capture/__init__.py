"""Audio capture and live recognition loop.

WHY: Recording must look gapless to the user even though the capture
and recognition primitives only support bounded sessions.

HOW: ports.py defines the interfaces a host implements (microphone,
recognizer); loop.py keeps them running and turns their output into
clips and finalized text.
"""

from meet_assistant.capture.loop import CaptureError, CaptureState, ContinuousCaptureLoop
from meet_assistant.capture.ports import (
    AudioCapture,
    AudioSource,
    AudioStream,
    PermissionDeniedError,
    RecognitionBusyError,
    Recognizer,
)

__all__ = [
    "AudioCapture",
    "AudioSource",
    "AudioStream",
    "CaptureError",
    "CaptureState",
    "ContinuousCaptureLoop",
    "PermissionDeniedError",
    "RecognitionBusyError",
    "Recognizer",
]
