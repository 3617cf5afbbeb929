"""
Fault types raised by the final-round session and its collaborators.

Every fault carries a human-readable message. The session controller shows
that message verbatim when it moves to its error state.
"""
from enum import Enum
from typing import Optional


class DeviceFaultReason(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    PLATFORM_ERROR = "platform_error"


class CaptureFaultReason(str, Enum):
    NOT_ACQUIRED = "not_acquired"
    ALREADY_RECORDING = "already_recording"


class InterviewFault(Exception):
    """Base class for all session faults."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class DeviceFault(InterviewFault):
    """The microphone could not be acquired."""

    def __init__(self, reason: DeviceFaultReason, message: Optional[str] = None):
        super().__init__(message or _DEVICE_MESSAGES[reason])
        self.reason = reason


class CaptureFault(InterviewFault):
    """Capture was started in an invalid device state."""

    def __init__(self, reason: CaptureFaultReason, message: Optional[str] = None):
        super().__init__(message or _CAPTURE_MESSAGES[reason])
        self.reason = reason


class TranscriptionFault(InterviewFault):
    """Transcription failed at the provider, in transit, or timed out."""


class DialogueFault(InterviewFault):
    """The opening or follow-up question could not be obtained."""


class PlaybackFault(InterviewFault):
    """Synthesized audio could not be decoded or rendered."""


_DEVICE_MESSAGES = {
    DeviceFaultReason.PERMISSION_DENIED: "Microphone access was denied",
    DeviceFaultReason.NO_DEVICE: "No microphone was found",
    DeviceFaultReason.PLATFORM_ERROR: "Could not access the microphone",
}

_CAPTURE_MESSAGES = {
    CaptureFaultReason.NOT_ACQUIRED: "Microphone is not ready",
    CaptureFaultReason.ALREADY_RECORDING: "Recording is already in progress",
}
