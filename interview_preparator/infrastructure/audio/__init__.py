"""
Audio capture, playback and speech services.

- processing: Signal processing, microphone capture and level metering
- speech: Text-to-speech, speech-to-text and playback
"""

from .processing import AudioCaptureManager, AudioLevelMonitor, Recording
from .speech import PlaybackController, SpeechTranscriber, SpeechSynthesizer

__all__ = [
    "AudioCaptureManager",
    "AudioLevelMonitor",
    "Recording",
    "PlaybackController",
    "SpeechTranscriber",
    "SpeechSynthesizer"
]
