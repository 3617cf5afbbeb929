"""Infrastructure components for the interview preparator.

This module contains low-level technical components: microphone and speaker
access, speech services, and the LLM client.
"""

# Audio infrastructure
from .audio import (
    AudioCaptureManager, AudioLevelMonitor, Recording,
    PlaybackController, SpeechTranscriber, SpeechSynthesizer
)

# LLM infrastructure
from .llm import VertexRestClient, LLMError

__all__ = [
    # Audio
    "AudioCaptureManager", "AudioLevelMonitor", "Recording", "PlaybackController",

    # Speech services
    "SpeechTranscriber", "SpeechSynthesizer",

    # LLM client
    "VertexRestClient", "LLMError"
]
