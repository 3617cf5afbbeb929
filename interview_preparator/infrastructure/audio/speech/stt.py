"""
Speech-to-text functionality using Google Cloud Speech.

Recordings are submitted as long-running recognition jobs and polled on a
fixed delay until the job reaches a terminal status or the poll budget runs
out.
"""
import time
import wave
import logging
from enum import Enum
from typing import Callable, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import speech

from ....config import LANGUAGE_CODE, TRANSCRIPTION_POLL_INTERVAL, TRANSCRIPTION_MAX_POLLS
from ....faults import TranscriptionFault
from ....interview.models import TranscriptionResult
from ..processing.processing import wav_bytes_to_pcm16

logger = logging.getLogger("speech_stt")


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


class SpeechTranscriber:
    """Google Cloud Speech transcription with a bounded status poll loop."""

    def __init__(self,
                 language: str = LANGUAGE_CODE,
                 poll_interval: float = TRANSCRIPTION_POLL_INTERVAL,
                 max_polls: int = TRANSCRIPTION_MAX_POLLS,
                 client: Optional[speech.SpeechClient] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.language = language
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._client = client
        self._sleep = sleep

    @property
    def client(self) -> speech.SpeechClient:
        if self._client is None:
            self._client = speech.SpeechClient()
        return self._client

    def transcribe(self, wav_bytes: bytes) -> TranscriptionResult:
        """
        Transcribe a mono 16-bit WAV recording.

        Raises:
            TranscriptionFault: bad audio, provider error status, or polling timeout
        """
        try:
            pcm, sample_rate, channels = wav_bytes_to_pcm16(wav_bytes)
        except (wave.Error, EOFError) as e:
            raise TranscriptionFault(f"Uploaded audio is not a valid WAV file: {e}")

        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            audio_channel_count=channels,
            language_code=self.language,
            enable_automatic_punctuation=True,
        )
        audio = speech.RecognitionAudio(content=pcm)

        try:
            operation = self.client.long_running_recognize(config=config, audio=audio)
        except google_exceptions.GoogleAPIError as e:
            raise TranscriptionFault(f"Transcription request failed: {e}")
        logger.info(f"Submitted transcription job ({len(pcm)} bytes at {sample_rate} Hz)")

        status = self._status(operation)
        polls = 0
        while not status.is_terminal:
            if polls >= self.max_polls:
                raise TranscriptionFault(
                    f"Transcription timed out after {polls * self.poll_interval:.0f} seconds"
                )
            self._sleep(self.poll_interval)
            polls += 1
            status = self._status(operation)
            logger.debug(f"Transcription poll {polls}: {status.value}")

        if status is JobStatus.ERROR:
            raise TranscriptionFault(f"Transcription failed: {operation.exception()}")

        response = operation.result()
        texts = [r.alternatives[0].transcript for r in response.results if r.alternatives]
        text = " ".join(t.strip() for t in texts).strip()
        logger.info(f"Transcription completed: {len(text)} characters")
        return TranscriptionResult(text=text, topics=[])

    @staticmethod
    def _status(operation) -> JobStatus:
        try:
            done = operation.done()
        except google_exceptions.GoogleAPIError as e:
            raise TranscriptionFault(f"Transcription status check failed: {e}")
        if not done:
            return JobStatus.PROCESSING
        if operation.exception() is not None:
            return JobStatus.ERROR
        return JobStatus.COMPLETED
