"""
Playback of synthesized interviewer speech.
"""
import threading
import wave
import logging
from typing import Callable, Optional

from ....config import OUTPUT_DEVICE, PLAYBACK_CHUNK_FRAMES
from ....faults import PlaybackFault
from ....utils import with_suppressed_audio_warnings
from ..processing.processing import wav_bytes_to_pcm16

logger = logging.getLogger("speech_playback")


def _default_backend_factory():
    import pyaudio
    return pyaudio.PyAudio()


class _SingleFire:
    """Completion callback that fires at most once and can be cancelled."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self._lock = threading.Lock()
        self._fired = False
        self._cancelled = False
        self.stop_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
        self.stop_event.set()

    def fire(self) -> bool:
        with self._lock:
            if self._fired or self._cancelled:
                return False
            self._fired = True
        self._callback()
        return True


class PlaybackController:
    """
    Plays one audio payload at a time.

    A new play() preempts the previous one; the preempted playback never
    reports completion. Decode and device errors are reported through
    on_error and then count as completion, so the session never waits on
    audio that cannot play.
    """

    def __init__(self,
                 output_device: Optional[int] = OUTPUT_DEVICE,
                 chunk_frames: int = PLAYBACK_CHUNK_FRAMES,
                 backend_factory: Optional[Callable] = None):
        self.output_device = output_device
        self.chunk_frames = chunk_frames
        self._backend_factory = backend_factory or _default_backend_factory
        self._current: Optional[_SingleFire] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_playing(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def play(self,
             payload: Optional[bytes],
             on_complete: Callable[[], None],
             on_error: Optional[Callable[[PlaybackFault], None]] = None) -> None:
        """Play payload, or complete immediately when there is nothing to play."""
        done = _SingleFire(on_complete)
        with self._lock:
            previous, self._current = self._current, done
        if previous is not None:
            previous.cancel()
            logger.debug("Preempted previous playback")

        if not payload:
            logger.info("No audio to play, completing immediately")
            done.fire()
            return

        thread = threading.Thread(
            target=self._run, args=(payload, done, on_error),
            name="speech-playback", daemon=True,
        )
        self._thread = thread
        thread.start()

    def stop(self) -> None:
        """Stop current playback without reporting completion."""
        with self._lock:
            current, self._current = self._current, None
        if current is not None:
            current.cancel()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)

    def _run(self, payload: bytes, done: _SingleFire,
             on_error: Optional[Callable[[PlaybackFault], None]]) -> None:
        try:
            self._render(payload, done.stop_event)
        except PlaybackFault as fault:
            if done.cancelled:
                return
            logger.warning(f"Playback failed: {fault}")
            if on_error is not None:
                on_error(fault)
        if not done.cancelled:
            logger.debug("Playback finished")
        done.fire()

    @with_suppressed_audio_warnings
    def _open_output(self, channels: int, rate: int):
        """Create the backend and open an output stream. Returns (backend, stream)."""
        try:
            backend = self._backend_factory()
        except (ImportError, OSError) as e:
            raise PlaybackFault(f"Audio output unavailable: {e}")

        try:
            stream = backend.open(
                format=backend.get_format_from_width(2),
                channels=channels,
                rate=rate,
                output=True,
                output_device_index=self.output_device,
            )
        except OSError as e:
            backend.terminate()
            raise PlaybackFault(f"Audio output failed: {e}")
        return backend, stream

    def _render(self, payload: bytes, stop_event: threading.Event) -> None:
        try:
            frames, rate, channels = wav_bytes_to_pcm16(payload)
        except (wave.Error, EOFError) as e:
            raise PlaybackFault(f"Could not decode audio: {e}")

        backend, stream = self._open_output(channels, rate)
        try:
            step = self.chunk_frames * channels * 2
            for offset in range(0, len(frames), step):
                if stop_event.is_set():
                    break
                stream.write(frames[offset:offset + step])
        except OSError as e:
            raise PlaybackFault(f"Audio output failed: {e}")
        finally:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.debug(f"Error closing output stream: {e}")
            backend.terminate()
