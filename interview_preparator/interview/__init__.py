"""Final-round interview components.

This module contains the session state machine, the HTTP clients it talks
to, and the backend engines that decide what the interviewer says.
"""

# Session controller
from .controller import InterviewSessionController

# Data models
from .models import Speaker, Turn, TranscriptionResult, OpeningQuestion, FollowUpQuestion, InterviewResult

# Session state
from .schemas import SessionState, InterviewState, TERMINAL_STATES, describe_state

# Backend clients
from .services import DialogueClient, TranscriptionClient

# Backend engines
from .decision_engine import DialogueEngine, parse_history
from .screening import ScreeningEngine

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, SessionStartedEvent, StateChangedEvent,
    TurnAppendedEvent, RecordingDiscardedEvent, PlaybackFailedEvent,
    SessionClosedEvent, ErrorOccurredEvent, SessionTornDownEvent
)

__all__ = [
    # Controller
    "InterviewSessionController",

    # Data models
    "Speaker", "Turn", "TranscriptionResult", "OpeningQuestion",
    "FollowUpQuestion", "InterviewResult",

    # State
    "SessionState", "InterviewState", "TERMINAL_STATES", "describe_state",

    # Clients
    "DialogueClient", "TranscriptionClient",

    # Engines
    "DialogueEngine", "parse_history", "ScreeningEngine",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent", "SessionStartedEvent", "StateChangedEvent",
    "TurnAppendedEvent", "RecordingDiscardedEvent", "PlaybackFailedEvent",
    "SessionClosedEvent", "ErrorOccurredEvent", "SessionTornDownEvent",
]
