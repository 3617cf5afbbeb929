"""Speech-to-text, text-to-speech and playback modules."""

from .playback import PlaybackController
from .stt import SpeechTranscriber, JobStatus
from .tts import SpeechSynthesizer

__all__ = ["PlaybackController", "SpeechTranscriber", "JobStatus", "SpeechSynthesizer"]
