"""
Session state for the final-round interview.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .models import Turn


class SessionState(str, Enum):
    """States of the final-round voice session."""
    IDLE = "idle"
    DEVICE_READY = "device_ready"
    AWAITING_OPENING_QUESTION = "awaiting_opening_question"
    PLAYING_AUDIO = "playing_audio"
    USER_READY = "user_ready"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    REQUESTING_FOLLOW_UP = "requesting_follow_up"
    CLOSED = "closed"
    ERROR = "error"


TERMINAL_STATES = frozenset({SessionState.CLOSED, SessionState.ERROR})

STATUS_MESSAGES = {
    SessionState.IDLE: "Loading...",
    SessionState.DEVICE_READY: "Microphone ready.",
    SessionState.AWAITING_OPENING_QUESTION: "Preparing the first question...",
    SessionState.PLAYING_AUDIO: "Playing the interviewer's question...",
    SessionState.USER_READY: "Ready to record your answer...",
    SessionState.RECORDING: "Recording your answer...",
    SessionState.TRANSCRIBING: "Processing your audio...",
    SessionState.REQUESTING_FOLLOW_UP: "AI is analyzing your response...",
    SessionState.CLOSED: "The round is over. Thank you!",
}


def describe_state(state: SessionState, error_message: Optional[str] = None) -> str:
    """Human-readable status line for a session state."""
    if state is SessionState.ERROR:
        return f"Error: {error_message or 'Unknown error'}. Please refresh."
    return STATUS_MESSAGES[state]


@dataclass
class InterviewState:
    """
    Mutable session data owned by the controller.

    Only controller transitions write to it; everything else reads.
    """
    state: SessionState = SessionState.IDLE
    transcript: List[Turn] = field(default_factory=list)
    turn_count: int = 0
    error_message: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def append_turn(self, turn: Turn) -> None:
        self.transcript.append(turn)

    def increment_turn(self) -> None:
        self.turn_count += 1
