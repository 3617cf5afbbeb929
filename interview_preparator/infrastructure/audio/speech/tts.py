"""
Text-to-speech functionality using Google Cloud TTS.
"""
import base64
import logging
from typing import Optional

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import texttospeech

from ....config import TTS_VOICE, LANGUAGE_CODE, TTS_SAMPLE_RATE

logger = logging.getLogger("speech_tts")


class SpeechSynthesizer:
    """
    Turns interviewer text into WAV audio.

    Provider failures are logged and produce None; the interview then
    continues with the question text alone.
    """

    def __init__(self,
                 voice: str = TTS_VOICE,
                 language_code: str = LANGUAGE_CODE,
                 sample_rate: int = TTS_SAMPLE_RATE,
                 client: Optional[texttospeech.TextToSpeechClient] = None):
        self.voice = voice
        self.language_code = language_code
        self.sample_rate = sample_rate
        self._client = client

    @property
    def client(self) -> texttospeech.TextToSpeechClient:
        if self._client is None:
            self._client = texttospeech.TextToSpeechClient()
        return self._client

    def synthesize(self, text: str) -> Optional[bytes]:
        """Return LINEAR16 WAV bytes for text, or None when synthesis fails."""
        if not text or not text.strip():
            logger.warning("Speech synthesis skipped: text missing")
            return None

        synthesis_input = texttospeech.SynthesisInput(text=text)
        voice_params = texttospeech.VoiceSelectionParams(
            language_code=self.language_code,
            name=self.voice,
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
        )

        try:
            response = self.client.synthesize_speech(
                input=synthesis_input, voice=voice_params, audio_config=audio_config
            )
        except (google_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            logger.error(f"Google TTS failed: {e}")
            return None

        logger.debug(f"Synthesized {len(response.audio_content)} bytes for {len(text)} characters")
        return response.audio_content

    def synthesize_base64(self, text: str) -> Optional[str]:
        audio = self.synthesize(text)
        if audio is None:
            return None
        return base64.b64encode(audio).decode("ascii")
