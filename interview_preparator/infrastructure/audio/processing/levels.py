"""
Live input level for UI feedback while the candidate is recording.
"""
import threading
import logging
from collections import deque
from typing import Callable, Optional

import numpy as np

from ....config import LEVEL_FFT_SIZE, LEVEL_SAMPLE_INTERVAL
from .processing import byte_frequency_level, stereo_to_mono

logger = logging.getLogger("audio_levels")


class AudioLevelMonitor:
    """
    Taps the open microphone stream and publishes a 0..255 activity level.

    A failure to start never fails capture: the monitor logs it and reports a
    constant level of 0 instead.
    """

    def __init__(self,
                 fft_size: int = LEVEL_FFT_SIZE,
                 interval: float = LEVEL_SAMPLE_INTERVAL,
                 on_level: Optional[Callable[[int], None]] = None):
        self.fft_size = fft_size
        self.interval = interval
        self.on_level = on_level

        self._level = 0
        self._buffer = deque(maxlen=fft_size)
        self._buffer_lock = threading.Lock()
        self._handle = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def level(self) -> int:
        return self._level

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, handle) -> None:
        """Attach to the device handle and begin sampling."""
        if self.is_running:
            self.stop()
        try:
            with self._buffer_lock:
                self._buffer.clear()
            handle.attach(self._tap)
            self._handle = handle
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name="audio-level-monitor", daemon=True)
            self._thread.start()
            logger.debug("Level monitor started")
        except Exception as e:
            logger.warning(f"Level monitor unavailable, reporting silence: {e}")
            self._detach()
            self._thread = None
            self._set_level(0)

    def stop(self) -> None:
        """Detach the tap, stop the sampler, and reset the level to 0."""
        self._stop_event.set()
        self._detach()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.interval * 4))
        with self._buffer_lock:
            self._buffer.clear()
        self._set_level(0)

    def _detach(self) -> None:
        if self._handle is not None:
            self._handle.detach(self._tap)
            self._handle = None

    def _tap(self, frames: np.ndarray) -> None:
        mono = stereo_to_mono(frames) if frames.ndim > 1 and frames.shape[1] > 1 else frames.reshape(-1)
        with self._buffer_lock:
            self._buffer.extend(mono.tolist())

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            with self._buffer_lock:
                block = np.fromiter(self._buffer, dtype=np.float64, count=len(self._buffer))
            self._set_level(byte_frequency_level(block, self.fft_size))

    def _set_level(self, value: int) -> None:
        self._level = max(0, min(255, int(value)))
        if self.on_level is not None:
            self.on_level(self._level)
