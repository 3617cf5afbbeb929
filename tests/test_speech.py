# tests/test_speech.py
"""
Tests for Google speech transcription and synthesis wrappers
"""
import base64
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from interview_preparator.faults import TranscriptionFault
from interview_preparator.infrastructure.audio.speech import JobStatus, SpeechSynthesizer, SpeechTranscriber


class FakeOperation:
    """Long-running recognition job that finishes after a number of polls."""

    def __init__(self, polls_until_done=0, error=None, transcripts=("Hello there",)):
        self.remaining = polls_until_done
        self.error = error
        self.transcripts = transcripts

    def done(self):
        if self.remaining > 0:
            self.remaining -= 1
            return False
        return True

    def exception(self):
        return self.error

    def result(self):
        results = [
            SimpleNamespace(alternatives=[SimpleNamespace(transcript=text)])
            for text in self.transcripts
        ]
        return SimpleNamespace(results=results)


class FakeSpeechClient:
    def __init__(self, operation=None, error=None):
        self.operation = operation or FakeOperation()
        self.error = error
        self.requests = []

    def long_running_recognize(self, config, audio):
        self.requests.append((config, audio))
        if self.error is not None:
            raise self.error
        return self.operation


@pytest.fixture
def sleeps():
    return []


def make_transcriber(client, sleeps, max_polls=60):
    return SpeechTranscriber(poll_interval=5.0, max_polls=max_polls, client=client, sleep=sleeps.append)


class TestJobStatus:
    def test_terminal_statuses(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.ERROR.is_terminal
        assert not JobStatus.QUEUED.is_terminal
        assert not JobStatus.PROCESSING.is_terminal


class TestSpeechTranscriber:
    """Submit and poll transcription jobs"""

    def test_completed_job_returns_text(self, sine_wav, sleeps):
        client = FakeSpeechClient(FakeOperation(transcripts=("I led the migration. ", " It took a month.")))

        result = make_transcriber(client, sleeps).transcribe(sine_wav)

        assert result.text == "I led the migration. It took a month."
        assert result.topics == []
        config, _ = client.requests[0]
        assert config.sample_rate_hertz == 16000
        assert config.language_code == "en-US"

    def test_polls_on_fixed_interval(self, sine_wav, sleeps):
        client = FakeSpeechClient(FakeOperation(polls_until_done=3))

        make_transcriber(client, sleeps).transcribe(sine_wav)

        assert sleeps == [5.0, 5.0, 5.0]

    def test_poll_budget_exhausted(self, sine_wav, sleeps):
        client = FakeSpeechClient(FakeOperation(polls_until_done=100))

        with pytest.raises(TranscriptionFault) as exc_info:
            make_transcriber(client, sleeps, max_polls=3).transcribe(sine_wav)

        assert str(exc_info.value) == "Transcription timed out after 15 seconds"
        assert len(sleeps) == 3

    def test_job_error_is_reported(self, sine_wav, sleeps):
        client = FakeSpeechClient(FakeOperation(error=Exception("audio duration is too short")))

        with pytest.raises(TranscriptionFault) as exc_info:
            make_transcriber(client, sleeps).transcribe(sine_wav)

        assert str(exc_info.value) == "Transcription failed: audio duration is too short"

    def test_provider_rejects_request(self, sine_wav, sleeps):
        client = FakeSpeechClient(error=google_exceptions.ServiceUnavailable("backend down"))

        with pytest.raises(TranscriptionFault) as exc_info:
            make_transcriber(client, sleeps).transcribe(sine_wav)

        assert str(exc_info.value).startswith("Transcription request failed")

    def test_invalid_wav(self, sleeps):
        client = FakeSpeechClient()

        with pytest.raises(TranscriptionFault) as exc_info:
            make_transcriber(client, sleeps).transcribe(b"garbage")

        assert str(exc_info.value).startswith("Uploaded audio is not a valid WAV file")
        assert client.requests == []

    def test_silence_gives_empty_text(self, sine_wav, sleeps):
        client = FakeSpeechClient(FakeOperation(transcripts=()))

        assert make_transcriber(client, sleeps).transcribe(sine_wav).text == ""


class FakeTTSClient:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def synthesize_speech(self, input, voice, audio_config):
        self.calls.append((input, voice, audio_config))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(audio_content=b"RIFF-synth")


class TestSpeechSynthesizer:
    """Google TTS wrapper"""

    def test_returns_audio(self):
        client = FakeTTSClient()
        synth = SpeechSynthesizer(client=client)

        assert synth.synthesize("Tell me about yourself.") == b"RIFF-synth"
        synthesis_input, voice, _ = client.calls[0]
        assert synthesis_input.text == "Tell me about yourself."
        assert voice.language_code == "en-US"

    def test_blank_text_skips_provider(self):
        client = FakeTTSClient()
        synth = SpeechSynthesizer(client=client)

        assert synth.synthesize("   ") is None
        assert client.calls == []

    def test_provider_failure_gives_none(self):
        synth = SpeechSynthesizer(client=FakeTTSClient(error=google_exceptions.PermissionDenied("no access")))

        assert synth.synthesize("Hello") is None
        assert synth.synthesize_base64("Hello") is None

    def test_base64(self):
        synth = SpeechSynthesizer(client=FakeTTSClient())

        assert base64.b64decode(synth.synthesize_base64("Hello")) == b"RIFF-synth"
