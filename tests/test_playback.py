# tests/test_playback.py
"""
Tests for interviewer audio playback
"""
import os
import threading

import numpy as np

from interview_preparator.faults import PlaybackFault
from interview_preparator.infrastructure.audio.speech import PlaybackController
from interview_preparator.infrastructure.audio.speech.playback import _SingleFire
from tests.conftest import FakePyAudio, FakeStream, make_wav


class BlockingPyAudio(FakePyAudio):
    """Backend whose first write blocks until released."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def open(self, **kwargs):
        stream = FakeStream(**kwargs)
        backend = self

        def write(data):
            backend.started.set()
            backend.release.wait(2.0)
            stream.written.append(bytes(data))

        stream.write = write
        self.streams.append(stream)
        return stream


class TestSingleFire:
    """Completion fires at most once"""

    def test_fires_once(self):
        calls = []
        done = _SingleFire(lambda: calls.append(1))

        assert done.fire() is True
        assert done.fire() is False
        assert calls == [1]

    def test_cancelled_never_fires(self):
        calls = []
        done = _SingleFire(lambda: calls.append(1))

        done.cancel()

        assert done.fire() is False
        assert done.stop_event.is_set()
        assert calls == []


class TestPlaybackController:
    """Rendering WAV payloads"""

    def test_plays_all_frames_then_completes(self):
        backend = FakePyAudio()
        playback = PlaybackController(chunk_frames=1000, backend_factory=lambda: backend)
        finished = threading.Event()
        payload = make_wav(seconds=0.25, sample_rate=16000)

        playback.play(payload, finished.set)

        assert finished.wait(2.0)
        stream = backend.streams[0]
        assert stream.kwargs["output"] is True
        assert stream.kwargs["rate"] == 16000
        assert sum(len(chunk) for chunk in stream.written) == 4000 * 2
        assert stream.closed and backend.terminated

    def test_empty_payload_completes_immediately(self):
        calls = []
        playback = PlaybackController(backend_factory=FakePyAudio)

        playback.play(None, lambda: calls.append("done"))
        playback.play(b"", lambda: calls.append("done"))

        assert calls == ["done", "done"]

    def test_undecodable_payload_reports_error_then_completes(self):
        order = []
        finished = threading.Event()
        playback = PlaybackController(backend_factory=FakePyAudio)

        def on_error(fault):
            order.append(("error", fault))

        def on_complete():
            order.append(("complete", None))
            finished.set()

        playback.play(b"not a wav file at all", on_complete, on_error)

        assert finished.wait(2.0)
        assert order[0][0] == "error"
        assert isinstance(order[0][1], PlaybackFault)
        assert "Could not decode audio" in str(order[0][1])
        assert order[1][0] == "complete"

    def test_device_write_error_reports_error_then_completes(self):
        backend = FakePyAudio(write_error=OSError("Output underflowed"))
        playback = PlaybackController(backend_factory=lambda: backend)
        errors = []
        finished = threading.Event()

        playback.play(make_wav(), finished.set, errors.append)

        assert finished.wait(2.0)
        assert str(errors[0]).startswith("Audio output failed")
        assert backend.terminated

    def test_preempted_playback_never_completes(self):
        backend = BlockingPyAudio()
        playback = PlaybackController(backend_factory=lambda: backend)
        first, second = [], []

        playback.play(make_wav(), lambda: first.append(1))
        assert backend.started.wait(2.0)
        playback.play(None, lambda: second.append(1))
        backend.release.set()
        playback.stop()

        assert first == []
        assert second == [1]

    def test_stop_suppresses_completion(self):
        backend = BlockingPyAudio()
        playback = PlaybackController(backend_factory=lambda: backend)
        calls = []

        playback.play(make_wav(), lambda: calls.append(1))
        assert backend.started.wait(2.0)
        threading.Timer(0.05, backend.release.set).start()
        playback.stop()

        assert calls == []
        assert not playback.is_playing

    def test_stereo_payload_uses_channel_count(self):
        backend = FakePyAudio()
        playback = PlaybackController(backend_factory=lambda: backend)
        finished = threading.Event()

        playback.play(make_wav(seconds=0.1, channels=2), finished.set)

        assert finished.wait(2.0)
        assert backend.streams[0].kwargs["channels"] == 2
        written = np.frombuffer(b"".join(backend.streams[0].written), dtype=np.int16)
        assert written.size == 1600 * 2

    def test_open_error_reports_error_then_completes(self):
        backend = FakePyAudio(open_error=OSError("Invalid output device"))
        playback = PlaybackController(backend_factory=lambda: backend)
        errors = []
        finished = threading.Event()

        playback.play(make_wav(), finished.set, errors.append)

        assert finished.wait(2.0)
        assert str(errors[0]) == "Audio output failed: Invalid output device"
        assert backend.terminated

    def test_stderr_is_only_silenced_while_opening(self):
        stderr_before = os.fstat(2)
        devnull = os.stat(os.devnull)
        seen = {}

        class ObservedPyAudio(FakePyAudio):
            def open(self, **kwargs):
                seen["open"] = os.fstat(2)
                stream = super().open(**kwargs)

                def write(data):
                    seen["write"] = os.fstat(2)
                    stream.written.append(bytes(data))

                stream.write = write
                return stream

        backend = ObservedPyAudio()
        playback = PlaybackController(backend_factory=lambda: backend)
        finished = threading.Event()

        playback.play(make_wav(seconds=0.1), finished.set)

        assert finished.wait(2.0)
        assert os.path.samestat(seen["open"], devnull)
        assert os.path.samestat(seen["write"], stderr_before)
        assert os.path.samestat(os.fstat(2), stderr_before)
