"""
Event-driven notifications for the final-round session.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of session events."""
    SESSION_STARTED = "session_started"
    STATE_CHANGED = "state_changed"
    TURN_APPENDED = "turn_appended"
    RECORDING_DISCARDED = "recording_discarded"
    PLAYBACK_FAILED = "playback_failed"
    SESSION_CLOSED = "session_closed"
    ERROR_OCCURRED = "error_occurred"
    SESSION_TORN_DOWN = "session_torn_down"


@dataclass
class InterviewEvent(ABC):
    """Base class for all session events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    """Event fired when the session begins acquiring the microphone."""
    def __init__(self, session_id: str, timestamp: float, role: str, turn_budget: int):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"role": role, "turn_budget": turn_budget}
        )


@dataclass
class StateChangedEvent(InterviewEvent):
    """Event fired on every state transition."""
    def __init__(self, session_id: str, timestamp: float, previous: str, current: str):
        super().__init__(
            event_type=EventType.STATE_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={"previous": previous, "current": current}
        )


@dataclass
class TurnAppendedEvent(InterviewEvent):
    """Event fired when a turn joins the transcript."""
    def __init__(self, session_id: str, timestamp: float, speaker: str, text: str, turn_count: int):
        super().__init__(
            event_type=EventType.TURN_APPENDED,
            session_id=session_id,
            timestamp=timestamp,
            data={"speaker": speaker, "text": text, "turn_count": turn_count}
        )


@dataclass
class RecordingDiscardedEvent(InterviewEvent):
    """Event fired when a recording came back empty and was not submitted."""
    def __init__(self, session_id: str, timestamp: float):
        super().__init__(
            event_type=EventType.RECORDING_DISCARDED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class PlaybackFailedEvent(InterviewEvent):
    """Event fired when interviewer audio could not be played."""
    def __init__(self, session_id: str, timestamp: float, error_message: str):
        super().__init__(
            event_type=EventType.PLAYBACK_FAILED,
            session_id=session_id,
            timestamp=timestamp,
            data={"error_message": error_message}
        )


@dataclass
class SessionClosedEvent(InterviewEvent):
    """Event fired when the interviewer delivers the closing statement."""
    def __init__(self, session_id: str, timestamp: float, turn_count: int, closing_text: str):
        super().__init__(
            event_type=EventType.SESSION_CLOSED,
            session_id=session_id,
            timestamp=timestamp,
            data={"turn_count": turn_count, "closing_text": closing_text}
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when the session fails."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


@dataclass
class SessionTornDownEvent(InterviewEvent):
    """Event fired once when the session releases its resources."""
    def __init__(self, session_id: str, timestamp: float, state: str):
        super().__init__(
            event_type=EventType.SESSION_TORN_DOWN,
            session_id=session_id,
            timestamp=timestamp,
            data={"state": state}
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for session communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type in self._handlers and handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)
            logger.debug(f"Unsubscribed handler from {event_type}")
        else:
            logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and does not stop the others.
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.log(
            self.log_level,
            f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}"
        )


class InterviewMetrics:
    """Collects metrics from session events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.SESSION_STARTED:
            self.sessions_started += 1
        elif event.event_type == EventType.SESSION_CLOSED:
            self.sessions_closed += 1
        elif event.event_type == EventType.TURN_APPENDED:
            if event.data.get("speaker") == "user":
                self.candidate_turns += 1
            else:
                self.interviewer_turns += 1
        elif event.event_type == EventType.RECORDING_DISCARDED:
            self.recordings_discarded += 1
        elif event.event_type == EventType.PLAYBACK_FAILED:
            self.playback_failures += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "sessions_started": self.sessions_started,
            "sessions_closed": self.sessions_closed,
            "candidate_turns": self.candidate_turns,
            "interviewer_turns": self.interviewer_turns,
            "recordings_discarded": self.recordings_discarded,
            "playback_failures": self.playback_failures,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.sessions_started = 0
        self.sessions_closed = 0
        self.candidate_turns = 0
        self.interviewer_turns = 0
        self.recordings_discarded = 0
        self.playback_failures = 0
        self.errors_occurred = 0
