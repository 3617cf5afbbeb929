"""
Basic audio processing functions including format conversions and normalization.
"""
import io
import wave
from math import gcd
from typing import Tuple

import numpy as np
from scipy.signal import resample_poly

from ....config import (
    TARGET_RMS, SAMPLE_RATE_TARGET,
    LEVEL_MIN_DECIBELS, LEVEL_MAX_DECIBELS
)


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert multi-channel audio to mono by averaging channels."""
    if x.ndim == 1:
        return x
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def resample_to_target(mono: np.ndarray, sr_in: int, sr_out: int = SAMPLE_RATE_TARGET) -> np.ndarray:
    """Resample mono audio from sr_in to sr_out with a polyphase filter."""
    if sr_in == sr_out:
        return mono.astype(np.float32)
    g = gcd(int(sr_in), int(sr_out))
    return resample_poly(mono, up=sr_out // g, down=sr_in // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    if audio.size == 0:
        return audio
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms) if rms > 0 else 1.0
    return audio * gain


def float_to_pcm16(audio: np.ndarray) -> np.ndarray:
    """Convert float audio in [-1, 1] to int16 samples."""
    return np.clip(audio * 32767, -32768, 32767).astype(np.int16)


def pcm16_to_wav_bytes(pcm16: np.ndarray, sr: int, channels: int = 1) -> bytes:
    """Encode PCM16 samples as an in-memory WAV file."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16.astype(np.int16).tobytes())
    return buf.getvalue()


def wav_bytes_to_pcm16(payload: bytes) -> Tuple[bytes, int, int]:
    """
    Decode an in-memory WAV file.

    Returns:
        (raw PCM frames, sample rate, channel count)

    Raises:
        wave.Error, EOFError: if the payload is not a 16-bit PCM WAV file
    """
    with wave.open(io.BytesIO(payload), "rb") as wf:
        if wf.getsampwidth() != 2:
            raise wave.Error(f"unsupported sample width {wf.getsampwidth()}")
        frames = wf.readframes(wf.getnframes())
        return frames, wf.getframerate(), wf.getnchannels()


_BLACKMAN_CACHE = {}


def _blackman(n: int) -> np.ndarray:
    window = _BLACKMAN_CACHE.get(n)
    if window is None:
        window = np.blackman(n)
        _BLACKMAN_CACHE[n] = window
    return window


def byte_frequency_level(samples: np.ndarray,
                         fft_size: int,
                         min_db: float = LEVEL_MIN_DECIBELS,
                         max_db: float = LEVEL_MAX_DECIBELS) -> int:
    """
    Average byte-scaled spectrum magnitude of the latest fft_size samples.

    Follows the browser analyser convention: Blackman window, magnitude in
    dB, dB range [min_db, max_db] mapped linearly onto 0..255 and clipped,
    then the mean over the fft_size / 2 frequency bins.

    Args:
        samples: mono float audio in [-1, 1]
        fft_size: power-of-two window length

    Returns:
        An integer level in 0..255
    """
    if samples.size == 0:
        return 0
    block = samples[-fft_size:]
    if block.size < fft_size:
        block = np.concatenate([np.zeros(fft_size - block.size, dtype=np.float64), block])
    spectrum = np.abs(np.fft.rfft(block * _blackman(fft_size)))[: fft_size // 2] / fft_size
    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(spectrum)
    scaled = (db - min_db) * (255.0 / (max_db - min_db))
    scaled = np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)
    return int(np.clip(round(float(np.mean(scaled))), 0, 255))
