"""
Final-round voice session controller.

The controller is the only owner of the session state and of the
microphone handle. It runs on an asyncio event loop: blocking collaborator
calls (device acquisition, HTTP requests) run in worker threads, and
hardware callbacks (playback completion) are marshalled back onto the loop
before they touch state.
"""
import asyncio
import functools
import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

from ..config import TURN_BUDGET, DEFAULT_ROLE, CLOSING_STATEMENT, Config
from ..faults import InterviewFault, PlaybackFault
from ..infrastructure.audio.processing import AudioCaptureManager, AudioLevelMonitor
from ..infrastructure.audio.speech.playback import PlaybackController
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    SessionStartedEvent, StateChangedEvent, TurnAppendedEvent,
    RecordingDiscardedEvent, PlaybackFailedEvent, SessionClosedEvent,
    ErrorOccurredEvent, SessionTornDownEvent
)
from .models import InterviewResult, Speaker, Turn
from .schemas import InterviewState, SessionState, TERMINAL_STATES, describe_state
from .services import DialogueClient, TranscriptionClient

logger = logging.getLogger("session")


def _fails_session(method):
    """Move the session to Error on any unexpected exception, then re-raise it."""
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except Exception as e:
            if not self._torn_down and not self.is_terminal:
                logger.exception(f"Unexpected failure in {method.__name__}")
                self._fail(e, "controller")
            raise
    return wrapper


class InterviewSessionController:
    """
    Sequences one final-round session:
    acquire the microphone, play the opening question, record, transcribe,
    request a follow-up, and repeat until the turn budget is spent.

    Error and Closed are terminal. A failed session is not resumable; start
    a new controller instead.
    """

    def __init__(self,
                 capture_manager: AudioCaptureManager,
                 playback: PlaybackController,
                 dialogue_client: DialogueClient,
                 transcription_client: TranscriptionClient,
                 role: str = DEFAULT_ROLE,
                 turn_budget: int = TURN_BUDGET,
                 level_monitor: Optional[AudioLevelMonitor] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 session_id: Optional[str] = None):
        if turn_budget < 1:
            raise ValueError("turn_budget must be at least 1")

        self.capture_manager = capture_manager
        self.playback = playback
        self.dialogue_client = dialogue_client
        self.transcription_client = transcription_client
        self.level_monitor = level_monitor
        self.role = role
        self.turn_budget = turn_budget

        self._session = InterviewState(session_id=session_id or datetime.now().strftime("%Y%m%d_%H%M%S"))

        if event_bus is None:
            event_bus = InterviewEventBus()
            self.event_logger = EventLogger()
            self.metrics = InterviewMetrics()
            event_bus.subscribe_all(self.event_logger.handle_event)
            event_bus.subscribe_all(self.metrics.handle_event)
        self.event_bus = event_bus

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle = None
        self._device_released = False
        self._acquiring = False
        self._playback_token = 0
        self._torn_down = False
        self._waiters: List[Tuple[frozenset, asyncio.Future]] = []

    @classmethod
    def from_config(cls, config: Config, role: Optional[str] = None,
                    on_level=None) -> "InterviewSessionController":
        """Wire a controller to real hardware and the configured backend."""
        return cls(
            capture_manager=AudioCaptureManager(),
            playback=PlaybackController(),
            dialogue_client=DialogueClient(config.api_base_url, timeout=config.request_timeout),
            transcription_client=TranscriptionClient(
                config.api_base_url, timeout=config.transcription_request_timeout
            ),
            role=role or config.default_role,
            turn_budget=config.turn_budget,
            level_monitor=AudioLevelMonitor(on_level=on_level),
        )

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def transcript(self) -> Tuple[Turn, ...]:
        return tuple(self._session.transcript)

    @property
    def turn_count(self) -> int:
        return self._session.turn_count

    @property
    def error_message(self) -> Optional[str]:
        return self._session.error_message

    @property
    def is_terminal(self) -> bool:
        return self._session.is_terminal

    @property
    def is_torn_down(self) -> bool:
        return self._torn_down

    @property
    def audio_level(self) -> int:
        if self.level_monitor is None or self._session.state is not SessionState.RECORDING:
            return 0
        return self.level_monitor.level

    @property
    def status_message(self) -> str:
        return describe_state(self._session.state, self._session.error_message)

    def result(self) -> InterviewResult:
        return InterviewResult(
            transcript=list(self._session.transcript),
            turn_count=self._session.turn_count,
            final_state=self._session.state.value,
            error_message=self._session.error_message,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @_fails_session
    async def start(self) -> None:
        """Acquire the microphone and play the opening question."""
        if self._session.state is not SessionState.IDLE or self._torn_down:
            logger.warning(f"start() ignored in state {self._session.state.value}")
            return

        self._loop = asyncio.get_running_loop()
        self.event_bus.emit(SessionStartedEvent(self.session_id, time.time(), self.role, self.turn_budget))

        if not await self._acquire_device():
            return
        self._transition(SessionState.DEVICE_READY)

        self._transition(SessionState.AWAITING_OPENING_QUESTION)
        try:
            opening = await asyncio.to_thread(self.dialogue_client.start, self.role)
        except InterviewFault as fault:
            if not self._drop_if_torn_down("opening question failure"):
                self._fail(fault, "dialogue")
            return
        if self._drop_if_torn_down("opening question"):
            return

        self._append(Turn(Speaker.INTERVIEWER, opening.text))
        self._begin_playback(opening.audio)

    @_fails_session
    async def toggle_recording(self) -> None:
        """Start recording from UserReady, or stop and submit from Recording."""
        if self._torn_down:
            logger.warning("Recording toggle ignored after teardown")
            return
        state = self._session.state
        if state is SessionState.USER_READY and not self._acquiring:
            await self._begin_recording()
        elif state is SessionState.RECORDING:
            await self._finish_recording()
        else:
            logger.warning(f"Recording toggle ignored in state {state.value}")

    def on_playback_complete(self, token: int) -> None:
        """Completion signal for playback `token`. Stale or repeated signals are ignored."""
        if self._torn_down:
            return
        if token != self._playback_token:
            logger.debug(f"Ignoring stale playback completion {token} (current {self._playback_token})")
            return
        if self._session.state is not SessionState.PLAYING_AUDIO:
            logger.debug(f"Ignoring playback completion in state {self._session.state.value}")
            return
        self._transition(SessionState.USER_READY)

    def teardown(self) -> None:
        """
        Abandon the session from any state.

        Stops capture, drops the effect of any in-flight request, and releases
        the device exactly once. Session state is left as it was.
        """
        if self._torn_down:
            return
        self._torn_down = True
        logger.info(f"Tearing down session in state {self._session.state.value}")

        self._stop_activity()
        self._release_device()
        self.event_bus.emit(SessionTornDownEvent(self.session_id, time.time(), self._session.state.value))

        for _, future in self._waiters:
            if not future.done():
                future.set_result(self._session.state)
        self._waiters = []

    async def wait_for(self, *states: SessionState, timeout: Optional[float] = None) -> SessionState:
        """
        Wait until the session enters one of `states`.

        Also returns early on a terminal state or teardown, so callers never
        wait on a session that can no longer move.
        """
        current = self._session.state
        if current in states or current in TERMINAL_STATES or self._torn_down:
            return current
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((frozenset(states), future))
        if timeout is None:
            return await future
        return await asyncio.wait_for(future, timeout)

    # ------------------------------------------------------------------
    # Recording cycle
    # ------------------------------------------------------------------

    async def _begin_recording(self) -> None:
        if self._handle is None or not getattr(self._handle, "is_open", True):
            logger.info("Microphone not ready, re-acquiring")
            if not await self._acquire_device():
                return

        try:
            self.capture_manager.start_capture(self._handle)
        except InterviewFault as fault:
            self._fail(fault, "capture")
            return

        if self.level_monitor is not None:
            self.level_monitor.start(self._handle)
        self._transition(SessionState.RECORDING)

    async def _finish_recording(self) -> None:
        if self.level_monitor is not None:
            self.level_monitor.stop()
        recording = self.capture_manager.stop_capture()

        if recording.size == 0:
            logger.info("Empty recording discarded, waiting for another attempt")
            self._transition(SessionState.USER_READY)
            self.event_bus.emit(RecordingDiscardedEvent(self.session_id, time.time()))
            return

        self._transition(SessionState.TRANSCRIBING)
        try:
            result = await asyncio.to_thread(self.transcription_client.submit, recording)
        except InterviewFault as fault:
            if not self._drop_if_torn_down("transcription failure"):
                self._fail(fault, "transcription")
            return
        if self._drop_if_torn_down("transcript"):
            return

        self._append(Turn(Speaker.CANDIDATE, result.text))
        self._session.increment_turn()
        logger.info(f"Candidate turn {self._session.turn_count}/{self.turn_budget} recorded")

        self._transition(SessionState.REQUESTING_FOLLOW_UP)
        history = list(self._session.transcript)
        try:
            follow_up = await asyncio.to_thread(self.dialogue_client.next, history, self.role)
        except InterviewFault as fault:
            if not self._drop_if_torn_down("follow-up failure"):
                self._fail(fault, "dialogue")
            return
        if self._drop_if_torn_down("follow-up question"):
            return

        budget_spent = self._session.turn_count >= self.turn_budget
        if follow_up.is_closing != budget_spent:
            logger.warning(
                f"Server closing flag ({follow_up.is_closing}) disagrees with turn budget "
                f"({self._session.turn_count}/{self.turn_budget})"
            )

        if follow_up.is_closing:
            self._close(follow_up.text, follow_up.audio)
        elif budget_spent:
            self._close(CLOSING_STATEMENT, None)
        else:
            self._append(Turn(Speaker.INTERVIEWER, follow_up.text))
            self._begin_playback(follow_up.audio)

    def _close(self, text: str, audio: Optional[bytes]) -> None:
        self._append(Turn(Speaker.INTERVIEWER, text))
        self._transition(SessionState.CLOSED)
        self.event_bus.emit(SessionClosedEvent(self.session_id, time.time(), self._session.turn_count, text))
        self._release_device()
        if audio:
            # Closing audio plays out; its completion has nothing left to drive
            self._playback_token += 1
            self.playback.play(audio, lambda: None, self._playback_error_callback())

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _begin_playback(self, audio: Optional[bytes]) -> None:
        self._transition(SessionState.PLAYING_AUDIO)
        self._playback_token += 1
        token = self._playback_token
        loop = self._loop

        def complete():
            if not loop.is_closed():
                loop.call_soon_threadsafe(self.on_playback_complete, token)

        self.playback.play(audio, complete, self._playback_error_callback())

    def _playback_error_callback(self):
        loop = self._loop

        def failed(fault: PlaybackFault):
            if not loop.is_closed():
                loop.call_soon_threadsafe(self._on_playback_error, fault)

        return failed

    def _on_playback_error(self, fault: PlaybackFault) -> None:
        if self._torn_down:
            return
        logger.warning(f"Interviewer audio could not be played: {fault}")
        self.event_bus.emit(PlaybackFailedEvent(self.session_id, time.time(), str(fault)))

    # ------------------------------------------------------------------
    # Device and bookkeeping
    # ------------------------------------------------------------------

    async def _acquire_device(self) -> bool:
        self._acquiring = True
        try:
            handle = await asyncio.to_thread(self.capture_manager.acquire)
        except InterviewFault as fault:
            if not self._drop_if_torn_down("device failure"):
                self._fail(fault, "capture")
            return False
        finally:
            self._acquiring = False

        if self._torn_down:
            logger.info("Device acquired after teardown, releasing it")
            self.capture_manager.release(handle)
            return False
        self._handle = handle
        self._device_released = False
        return True

    def _release_device(self) -> None:
        if self._device_released:
            return
        self._device_released = True
        handle, self._handle = self._handle, None
        self.capture_manager.release(handle)

    def _stop_activity(self) -> None:
        if self.level_monitor is not None:
            self.level_monitor.stop()
        if self.capture_manager.is_recording:
            self.capture_manager.stop_capture()
        self.playback.stop()

    def _drop_if_torn_down(self, what: str) -> bool:
        if self._torn_down:
            logger.info(f"Dropping {what} that arrived after teardown")
            return True
        return False

    def _append(self, turn: Turn) -> None:
        self._session.append_turn(turn)
        self.event_bus.emit(TurnAppendedEvent(
            self.session_id, time.time(), turn.speaker.value, turn.text, self._session.turn_count
        ))

    def _fail(self, error: Exception, component: str) -> None:
        message = str(error) or type(error).__name__
        logger.error(f"Session failed in {component}: {message}")
        self._session.error_message = message
        self._stop_activity()
        self._release_device()
        self._transition(SessionState.ERROR)
        self.event_bus.emit(ErrorOccurredEvent(
            self.session_id, time.time(), type(error).__name__, message, component
        ))

    def _transition(self, new_state: SessionState) -> None:
        previous = self._session.state
        if previous is new_state:
            return
        self._session.state = new_state
        logger.info(f"Session {self.session_id}: {previous.value} -> {new_state.value}")
        self.event_bus.emit(StateChangedEvent(self.session_id, time.time(), previous.value, new_state.value))

        remaining = []
        for states, future in self._waiters:
            if future.done():
                continue
            if new_state in states or new_state in TERMINAL_STATES:
                future.set_result(new_state)
            else:
                remaining.append((states, future))
        self._waiters = remaining
