# tests/conftest.py
"""
Pytest configuration and shared fixtures for interview preparator tests
"""
import io
import wave

import numpy as np
import pytest

from interview_preparator.interview.testing import create_mock_session_setup


class FakeStream:
    """Stands in for a PortAudio stream."""

    def __init__(self, callback=None, **kwargs):
        self.callback = callback
        self.kwargs = kwargs
        self.stopped = False
        self.closed = False
        self.written = []

    def feed(self, samples):
        """Push int16 samples through the stream callback like the audio thread would."""
        data = np.asarray(samples, dtype=np.int16).tobytes()
        return self.callback(data, len(samples), None, 0)

    def write(self, data):
        self.written.append(bytes(data))

    def stop_stream(self):
        self.stopped = True

    def close(self):
        self.closed = True


class FakePyAudio:
    """Stands in for pyaudio.PyAudio."""

    def __init__(self, open_error=None, default_input_error=None, write_error=None):
        self.open_error = open_error
        self.default_input_error = default_input_error
        self.write_error = write_error
        self.streams = []
        self.terminated = False

    def get_format_from_width(self, width):
        return 8  # paInt16

    def get_default_input_device_info(self):
        if self.default_input_error is not None:
            raise self.default_input_error
        return {"name": "Fake microphone", "maxInputChannels": 1}

    def open(self, **kwargs):
        if self.open_error is not None:
            raise self.open_error
        stream = FakeStream(kwargs.get("stream_callback"), **kwargs)
        if self.write_error is not None:
            def failing_write(data):
                raise self.write_error
            stream.write = failing_write
        self.streams.append(stream)
        return stream

    def terminate(self):
        self.terminated = True


def make_wav(seconds=0.5, sample_rate=16000, frequency=440.0, channels=1):
    """Build an in-memory 16-bit WAV with a sine tone."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    tone = (0.3 * np.sin(2 * np.pi * frequency * t) * 32767).astype(np.int16)
    if channels > 1:
        tone = np.repeat(tone[:, None], channels, axis=1)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(tone.tobytes())
    return buf.getvalue()


@pytest.fixture
def fake_backend():
    """A single fake PortAudio backend shared by a test"""
    return FakePyAudio()


@pytest.fixture
def sine_wav():
    return make_wav()


@pytest.fixture
def mock_setup():
    """Controller wired to mock collaborators, playback held until finished"""
    return create_mock_session_setup(auto_complete_playback=False)


@pytest.fixture
def auto_setup():
    """Controller wired to mock collaborators, playback completes immediately"""
    return create_mock_session_setup(auto_complete_playback=True)
