# tests/test_events.py
"""
Tests for the session event bus and its subscribers
"""
import logging

from interview_preparator.interview.events import (
    ErrorOccurredEvent, EventLogger, EventType, InterviewEventBus, InterviewMetrics,
    RecordingDiscardedEvent, SessionStartedEvent, StateChangedEvent, TurnAppendedEvent
)


class TestInterviewEventBus:
    """Subscription and delivery"""

    def test_typed_subscribers_only_get_their_type(self):
        bus = InterviewEventBus()
        received = []
        bus.subscribe(EventType.STATE_CHANGED, received.append)

        bus.emit(StateChangedEvent("s1", 1.0, "idle", "device_ready"))
        bus.emit(RecordingDiscardedEvent("s1", 2.0))

        assert len(received) == 1
        assert received[0].data == {"previous": "idle", "current": "device_ready"}

    def test_global_subscribers_get_everything(self):
        bus = InterviewEventBus()
        received = []
        bus.subscribe_all(received.append)

        bus.emit(SessionStartedEvent("s1", 1.0, "Engineer", 5))
        bus.emit(RecordingDiscardedEvent("s1", 2.0))

        assert [e.event_type for e in received] == [EventType.SESSION_STARTED, EventType.RECORDING_DISCARDED]

    def test_failing_handler_does_not_stop_others(self):
        bus = InterviewEventBus()
        received = []

        def broken(event):
            raise RuntimeError("handler bug")

        bus.subscribe(EventType.RECORDING_DISCARDED, broken)
        bus.subscribe(EventType.RECORDING_DISCARDED, received.append)
        bus.subscribe_all(broken)
        bus.subscribe_all(received.append)

        bus.emit(RecordingDiscardedEvent("s1", 1.0))

        assert len(received) == 2

    def test_unsubscribe_and_clear(self):
        bus = InterviewEventBus()
        received = []
        bus.subscribe(EventType.RECORDING_DISCARDED, received.append)
        bus.unsubscribe(EventType.RECORDING_DISCARDED, received.append)
        bus.unsubscribe(EventType.RECORDING_DISCARDED, received.append)
        bus.subscribe_all(received.append)
        bus.clear_handlers()

        bus.emit(RecordingDiscardedEvent("s1", 1.0))

        assert received == []


class TestSubscribers:
    def test_metrics_count_by_type(self):
        metrics = InterviewMetrics()

        metrics.handle_event(SessionStartedEvent("s1", 1.0, "Engineer", 5))
        metrics.handle_event(TurnAppendedEvent("s1", 2.0, "model", "Q", 0))
        metrics.handle_event(TurnAppendedEvent("s1", 3.0, "user", "A", 1))
        metrics.handle_event(RecordingDiscardedEvent("s1", 4.0))
        metrics.handle_event(ErrorOccurredEvent("s1", 5.0, "DialogueFault", "boom", "dialogue"))

        snapshot = metrics.get_metrics()
        assert snapshot["sessions_started"] == 1
        assert snapshot["candidate_turns"] == 1
        assert snapshot["interviewer_turns"] == 1
        assert snapshot["recordings_discarded"] == 1
        assert snapshot["errors_occurred"] == 1

        metrics.reset()
        assert all(value == 0 for value in metrics.get_metrics().values())

    def test_event_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="event_logger"):
            EventLogger().handle_event(RecordingDiscardedEvent("s42", 1.0))

        assert "recording_discarded" in caplog.text
        assert "s42" in caplog.text
