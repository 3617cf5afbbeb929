"""Audio processing, capture and level metering modules."""

# Import processing functions immediately (no hardware dependencies)
from .processing import (
    stereo_to_mono,
    remove_dc,
    resample_to_target,
    normalize_audio,
    float_to_pcm16,
    pcm16_to_wav_bytes,
    wav_bytes_to_pcm16,
    byte_frequency_level
)
from .capture import AudioCaptureManager, DeviceHandle, Recording
from .levels import AudioLevelMonitor

__all__ = [
    "AudioCaptureManager",
    "DeviceHandle",
    "Recording",
    "AudioLevelMonitor",
    "stereo_to_mono",
    "remove_dc",
    "resample_to_target",
    "normalize_audio",
    "float_to_pcm16",
    "pcm16_to_wav_bytes",
    "wav_bytes_to_pcm16",
    "byte_frequency_level"
]
