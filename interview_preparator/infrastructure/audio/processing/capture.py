"""
Microphone ownership and push-to-talk recording.

The AudioCaptureManager opens one PortAudio input stream per acquisition and
fans every buffer out to read-only consumers (the recorder buffer and the
level monitor tap). Recording only collects frames between start_capture and
stop_capture; the stream itself stays open until release.
"""
import threading
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from ....config import (
    CHANNELS, SAMPLE_RATE_CAPTURE, SAMPLE_RATE_TARGET,
    FRAMES_PER_BUFFER, INPUT_DEVICE, TARGET_RMS
)
from ....faults import CaptureFault, CaptureFaultReason, DeviceFault, DeviceFaultReason
from ....utils import with_suppressed_audio_warnings
from .processing import (
    stereo_to_mono, remove_dc, resample_to_target,
    normalize_audio, float_to_pcm16, pcm16_to_wav_bytes
)

logger = logging.getLogger("audio_capture")

FrameConsumer = Callable[[np.ndarray], None]

# pyaudio.paContinue
_PA_CONTINUE = 0

# PortAudio error codes that mean "there is no usable input device"
_NO_DEVICE_CODES = {-9996, -9985, -9998}


def _default_backend_factory():
    # pyaudio is imported lazily so the package imports on machines without PortAudio
    import pyaudio
    return pyaudio.PyAudio()


@dataclass
class Recording:
    """A finished mono 16-bit WAV recording."""
    data: bytes
    sample_rate: int = SAMPLE_RATE_TARGET
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_empty(self) -> bool:
        return self.size == 0


class DeviceHandle:
    """Exclusive ownership of an open microphone stream and its consumers."""

    def __init__(self, backend, channels: int, sample_rate: int):
        self.backend = backend
        self.channels = channels
        self.sample_rate = sample_rate
        self.stream = None
        self._consumers: List[FrameConsumer] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed and self.stream is not None

    def attach(self, consumer: FrameConsumer) -> None:
        with self._lock:
            if consumer not in self._consumers:
                self._consumers.append(consumer)

    def detach(self, consumer: FrameConsumer) -> None:
        with self._lock:
            if consumer in self._consumers:
                self._consumers.remove(consumer)

    def _on_audio(self, in_data, frame_count, time_info, status):
        """PortAudio stream callback, runs on the audio thread."""
        if in_data:
            frames = np.frombuffer(in_data, dtype=np.int16).astype(np.float32) / 32768.0
            frames = frames.reshape(-1, self.channels)
            with self._lock:
                consumers = list(self._consumers)
            for consumer in consumers:
                try:
                    consumer(frames)
                except Exception:
                    logger.exception("Audio consumer failed")
        return None, _PA_CONTINUE

    @with_suppressed_audio_warnings
    def close(self) -> None:
        """Stop the stream and terminate the backend. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._consumers.clear()
        try:
            if self.stream is not None:
                self.stream.stop_stream()
                self.stream.close()
        except OSError as e:
            logger.warning(f"Error closing microphone stream: {e}")
        finally:
            self.backend.terminate()
            logger.info("Microphone released")


class AudioCaptureManager:
    """Acquires the microphone, records push-to-talk turns, and releases it."""

    def __init__(self,
                 input_device: Optional[int] = INPUT_DEVICE,
                 channels: int = CHANNELS,
                 sample_rate: int = SAMPLE_RATE_CAPTURE,
                 frames_per_buffer: int = FRAMES_PER_BUFFER,
                 target_sample_rate: int = SAMPLE_RATE_TARGET,
                 target_rms: float = TARGET_RMS,
                 backend_factory: Optional[Callable] = None):
        self.input_device = input_device
        self.channels = channels
        self.sample_rate = sample_rate
        self.frames_per_buffer = frames_per_buffer
        self.target_sample_rate = target_sample_rate
        self.target_rms = target_rms
        self._backend_factory = backend_factory or _default_backend_factory

        self._handle: Optional[DeviceHandle] = None
        self._chunks: List[np.ndarray] = []
        self._chunks_lock = threading.Lock()
        self._recording = False

    @property
    def handle(self) -> Optional[DeviceHandle]:
        return self._handle

    @property
    def is_ready(self) -> bool:
        return self._handle is not None and self._handle.is_open

    @property
    def is_recording(self) -> bool:
        return self._recording

    @with_suppressed_audio_warnings
    def acquire(self) -> DeviceHandle:
        """
        Open the microphone stream.

        Any previously held handle is released first, so calling this twice
        never leaks a stream.

        Raises:
            DeviceFault: with reason PERMISSION_DENIED, NO_DEVICE or PLATFORM_ERROR
        """
        if self._handle is not None:
            logger.info("Releasing existing microphone handle before re-acquiring")
            self.release(self._handle)

        try:
            backend = self._backend_factory()
        except ImportError as e:
            raise DeviceFault(DeviceFaultReason.PLATFORM_ERROR, f"Audio backend unavailable: {e}")
        except OSError as e:
            raise self._device_fault(e)

        handle = DeviceHandle(backend, self.channels, self.sample_rate)
        try:
            if self.input_device is None:
                # Raises when the host has no default input
                backend.get_default_input_device_info()
            handle.stream = backend.open(
                format=backend.get_format_from_width(2),
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=handle._on_audio,
            )
        except (OSError, ValueError) as e:
            backend.terminate()
            fault = self._device_fault(e)
            logger.error(f"Failed to open microphone ({fault.reason.value}): {e}")
            raise fault

        self._handle = handle
        logger.info(
            f"Microphone opened: device={self.input_device} channels={self.channels} "
            f"rate={self.sample_rate}"
        )
        return handle

    def start_capture(self, handle: Optional[DeviceHandle]) -> None:
        """
        Begin collecting frames into the recorder buffer.

        Raises:
            CaptureFault: NOT_ACQUIRED without a valid open handle,
                ALREADY_RECORDING if a recording is in progress
        """
        if handle is None or handle is not self._handle or not handle.is_open:
            raise CaptureFault(CaptureFaultReason.NOT_ACQUIRED)
        if self._recording:
            raise CaptureFault(CaptureFaultReason.ALREADY_RECORDING)

        with self._chunks_lock:
            self._chunks = []
        handle.attach(self._collect)
        self._recording = True
        logger.info("Recording started")

    def stop_capture(self) -> Recording:
        """
        Finish the current recording.

        Returns a Recording of size 0 when no frames arrived, or when nothing
        was being recorded.
        """
        if not self._recording:
            logger.warning("stop_capture called while not recording")
            return Recording(b"", self.target_sample_rate)

        self._recording = False
        if self._handle is not None:
            self._handle.detach(self._collect)

        with self._chunks_lock:
            chunks, self._chunks = self._chunks, []

        if not chunks:
            logger.info("Recording stopped with no audio")
            return Recording(b"", self.target_sample_rate)

        data = np.concatenate(chunks, axis=0)
        if data.size == 0:
            return Recording(b"", self.target_sample_rate)

        duration = data.shape[0] / float(self.sample_rate)
        mono = stereo_to_mono(data) if self.channels > 1 else data.flatten()
        mono = remove_dc(mono)
        resampled = resample_to_target(mono, self.sample_rate, self.target_sample_rate)
        resampled = normalize_audio(resampled, self.target_rms)
        wav = pcm16_to_wav_bytes(float_to_pcm16(resampled), self.target_sample_rate)

        logger.info(f"Recording stopped: {duration:.1f}s, {len(wav)} bytes")
        return Recording(wav, self.target_sample_rate, duration)

    def release(self, handle: Optional[DeviceHandle] = None) -> None:
        """Stop any capture and close the device. Idempotent."""
        target = handle or self._handle
        if target is None:
            return
        if target is self._handle:
            if self._recording:
                self._recording = False
                target.detach(self._collect)
                with self._chunks_lock:
                    self._chunks = []
                logger.info("Discarded in-progress recording on release")
            self._handle = None
        target.close()

    def _collect(self, frames: np.ndarray) -> None:
        with self._chunks_lock:
            self._chunks.append(frames.copy())

    @staticmethod
    def _device_fault(error: Exception) -> DeviceFault:
        code = error.args[0] if error.args and isinstance(error.args[0], int) else None
        text = str(error)
        lowered = text.lower()
        if "permission" in lowered or "denied" in lowered or "not allowed" in lowered:
            return DeviceFault(DeviceFaultReason.PERMISSION_DENIED, f"Microphone access was denied: {text}")
        if code in _NO_DEVICE_CODES or "no default input" in lowered or "invalid input device" in lowered:
            return DeviceFault(DeviceFaultReason.NO_DEVICE, f"No microphone was found: {text}")
        return DeviceFault(DeviceFaultReason.PLATFORM_ERROR, f"Could not access the microphone: {text}")
