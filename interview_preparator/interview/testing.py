"""
Testing infrastructure with mock collaborators for the final-round session.
"""
import json
import threading
from typing import Any, Dict, List, Optional

from ..config import OPENING_QUESTION, CLOSING_STATEMENT, TURN_BUDGET
from ..faults import (
    CaptureFault, CaptureFaultReason, DeviceFault, DialogueFault,
    PlaybackFault, TranscriptionFault
)
from ..infrastructure.audio.processing.capture import AudioCaptureManager, Recording
from ..infrastructure.audio.processing.levels import AudioLevelMonitor
from ..infrastructure.audio.speech.playback import PlaybackController, _SingleFire
from .controller import InterviewSessionController
from .events import InterviewEventBus, InterviewMetrics
from .models import FollowUpQuestion, OpeningQuestion, Speaker, TranscriptionResult, Turn
from .services import DialogueClient, TranscriptionClient

MOCK_WAV = b"RIFF" + b"\x00" * 40 + b"mock-recording"


class MockDeviceHandle:
    """Stand-in for an open microphone stream."""

    def __init__(self):
        self.is_open = True
        self.consumers = []

    def attach(self, consumer) -> None:
        if consumer not in self.consumers:
            self.consumers.append(consumer)

    def detach(self, consumer) -> None:
        if consumer in self.consumers:
            self.consumers.remove(consumer)

    def close(self) -> None:
        self.is_open = False
        self.consumers.clear()


class MockCaptureManager(AudioCaptureManager):
    """Mock microphone that hands out scripted recordings."""

    def __init__(self, recordings: Optional[List[bytes]] = None,
                 acquire_error: Optional[DeviceFault] = None):
        # Don't call super().__init__ to avoid touching PortAudio
        self.recordings = list(recordings) if recordings is not None else []
        self.acquire_error = acquire_error
        self.acquire_calls = 0
        self.release_calls = 0
        self.start_calls = 0
        self.stop_calls = 0
        self.handles: List[MockDeviceHandle] = []
        self._handle = None
        self._recording = False

    def acquire(self) -> MockDeviceHandle:
        self.acquire_calls += 1
        if self._handle is not None:
            self.release(self._handle)
        if self.acquire_error is not None:
            raise self.acquire_error
        handle = MockDeviceHandle()
        self.handles.append(handle)
        self._handle = handle
        return handle

    def start_capture(self, handle) -> None:
        if handle is None or handle is not self._handle or not handle.is_open:
            raise CaptureFault(CaptureFaultReason.NOT_ACQUIRED)
        if self._recording:
            raise CaptureFault(CaptureFaultReason.ALREADY_RECORDING)
        self.start_calls += 1
        self._recording = True

    def stop_capture(self) -> Recording:
        if not self._recording:
            return Recording(b"")
        self._recording = False
        self.stop_calls += 1
        data = self.recordings.pop(0) if self.recordings else MOCK_WAV
        return Recording(data, duration_seconds=3.0 if data else 0.0)

    def release(self, handle=None) -> None:
        self.release_calls += 1
        target = handle or self._handle
        if target is self._handle:
            self._recording = False
            self._handle = None
        if target is not None:
            target.close()


class MockPlaybackController(PlaybackController):
    """Mock speaker. Completes at once unless auto_complete is off."""

    def __init__(self, auto_complete: bool = True):
        # Don't call super().__init__ to avoid opening an output device
        self.auto_complete = auto_complete
        self.played: List[Optional[bytes]] = []
        self.stop_calls = 0
        self._pending: Optional[_SingleFire] = None
        self._pending_error = None

    @property
    def is_playing(self) -> bool:
        return self._pending is not None

    def play(self, payload, on_complete, on_error=None) -> None:
        if self._pending is not None:
            self._pending.cancel()
        done = _SingleFire(on_complete)
        self.played.append(payload)
        if not payload or self.auto_complete:
            self._pending = None
            done.fire()
            return
        self._pending = done
        self._pending_error = on_error

    def finish(self) -> bool:
        """Complete the pending playback, as the speaker would at end of audio."""
        done, self._pending = self._pending, None
        return done.fire() if done is not None else False

    def fail(self, message: str = "Audio output failed") -> bool:
        """Report a playback fault, which also counts as completion."""
        done, self._pending = self._pending, None
        if done is None:
            return False
        if self._pending_error is not None:
            self._pending_error(PlaybackFault(message))
        return done.fire()

    def stop(self) -> None:
        self.stop_calls += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


class MockDialogueClient(DialogueClient):
    """Mock backend dialogue. Closes once the candidate has answered turn_budget times."""

    def __init__(self, follow_ups: Optional[List[str]] = None,
                 turn_budget: int = TURN_BUDGET,
                 opening_text: str = OPENING_QUESTION,
                 with_audio: bool = True,
                 start_error: Optional[str] = None,
                 next_error: Optional[str] = None,
                 gate: Optional[threading.Event] = None):
        # Don't call super().__init__ to avoid creating an HTTP session
        self.follow_ups = list(follow_ups or [])
        self.turn_budget = turn_budget
        self.opening_text = opening_text
        self.with_audio = with_audio
        self.start_error = start_error
        self.next_error = next_error
        self.gate = gate
        self.start_calls: List[str] = []
        self.next_calls: List[List[Turn]] = []

    def _audio(self, text: str) -> Optional[bytes]:
        return f"audio:{text}".encode("utf-8") if self.with_audio else None

    def start(self, role: str) -> OpeningQuestion:
        self.start_calls.append(role)
        if self.start_error:
            raise DialogueFault(self.start_error)
        return OpeningQuestion(self.opening_text, self._audio(self.opening_text))

    def next(self, history, role: str) -> FollowUpQuestion:
        self.next_calls.append(list(history))
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.next_error:
            raise DialogueFault(self.next_error)
        answers = sum(1 for turn in history if turn.speaker is Speaker.CANDIDATE)
        if answers >= self.turn_budget:
            return FollowUpQuestion(CLOSING_STATEMENT, self._audio(CLOSING_STATEMENT), is_closing=True)
        if self.follow_ups:
            text = self.follow_ups.pop(0)
        else:
            text = f"Follow-up question {answers}"
        return FollowUpQuestion(text, self._audio(text), is_closing=False)


class MockTranscriptionClient(TranscriptionClient):
    """Mock transcription returning scripted transcripts."""

    def __init__(self, transcripts: Optional[List[str]] = None,
                 error: Optional[str] = None,
                 gate: Optional[threading.Event] = None):
        # Don't call super().__init__ to avoid creating an HTTP session
        self.transcripts = list(transcripts or [])
        self.error = error
        self.gate = gate
        self.submissions: List[Any] = []

    def submit(self, recording) -> TranscriptionResult:
        self.submissions.append(recording)
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.error:
            raise TranscriptionFault(self.error)
        text = self.transcripts.pop(0) if self.transcripts else f"Answer {len(self.submissions)}"
        return TranscriptionResult(text=text, topics=[])


class MockLLMClient:
    """Mock LLM client for testing."""

    def __init__(self, mock_responses: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.mock_responses = list(mock_responses or [])
        self.error = error
        self.request_history = []

    def generate_content(self, prompt: str, temperature: float = 0.0, **kwargs) -> str:
        self.request_history.append({
            "prompt": prompt,
            "temperature": temperature,
            "kwargs": kwargs
        })
        if self.error is not None:
            raise self.error
        if self.mock_responses:
            return self.mock_responses.pop(0)
        return "Could you walk me through a recent project?"

    def generate_json(self, prompt: str) -> Dict[str, Any]:
        return json.loads(self.generate_content(prompt))


class MockSynthesizer:
    """Mock TTS that returns recognizable bytes, or None when failing."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.requests: List[str] = []

    def synthesize(self, text: str) -> Optional[bytes]:
        self.requests.append(text)
        if self.fail:
            return None
        return f"audio:{text}".encode("utf-8")


def create_mock_session_setup(turn_budget: int = TURN_BUDGET,
                              recordings: Optional[List[bytes]] = None,
                              transcripts: Optional[List[str]] = None,
                              follow_ups: Optional[List[str]] = None,
                              acquire_error: Optional[DeviceFault] = None,
                              transcription_error: Optional[str] = None,
                              auto_complete_playback: bool = True,
                              level_monitor: Optional[AudioLevelMonitor] = None,
                              role: str = "Software Engineer") -> Dict[str, Any]:
    """Create a controller wired to mocks, plus the mocks themselves."""
    capture = MockCaptureManager(recordings, acquire_error=acquire_error)
    playback = MockPlaybackController(auto_complete=auto_complete_playback)
    dialogue = MockDialogueClient(follow_ups, turn_budget=turn_budget)
    transcription = MockTranscriptionClient(transcripts, error=transcription_error)

    event_bus = InterviewEventBus()
    metrics = InterviewMetrics()
    events = []
    event_bus.subscribe_all(metrics.handle_event)
    event_bus.subscribe_all(events.append)

    controller = InterviewSessionController(
        capture_manager=capture,
        playback=playback,
        dialogue_client=dialogue,
        transcription_client=transcription,
        role=role,
        turn_budget=turn_budget,
        level_monitor=level_monitor,
        event_bus=event_bus,
    )

    return {
        "controller": controller,
        "capture": capture,
        "playback": playback,
        "dialogue": dialogue,
        "transcription": transcription,
        "level_monitor": level_monitor,
        "event_bus": event_bus,
        "metrics": metrics,
        "events": events,
    }
