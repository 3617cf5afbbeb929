# tests/test_levels.py
"""
Tests for the live input level monitor
"""
import time

import numpy as np

from interview_preparator.infrastructure.audio.processing import AudioLevelMonitor
from interview_preparator.interview.testing import MockDeviceHandle


def loud_frames(n=512):
    t = np.arange(n) / 16000.0
    return (0.5 * np.sin(2 * np.pi * 1000 * t)).astype(np.float32).reshape(-1, 1)


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestAudioLevelMonitor:
    """Level sampling while recording"""

    def test_reports_activity_for_loud_input(self):
        levels = []
        monitor = AudioLevelMonitor(interval=0.01, on_level=levels.append)
        handle = MockDeviceHandle()

        monitor.start(handle)
        assert monitor.is_running
        assert monitor._tap in handle.consumers
        handle.consumers[0](loud_frames())

        try:
            assert wait_until(lambda: monitor.level > 0)
        finally:
            monitor.stop()

        assert all(0 <= level <= 255 for level in levels)

    def test_silence_is_zero(self):
        monitor = AudioLevelMonitor(interval=0.01)
        handle = MockDeviceHandle()
        monitor.start(handle)

        handle.consumers[0](np.zeros((512, 1), dtype=np.float32))
        time.sleep(0.05)
        level = monitor.level
        monitor.stop()

        assert level == 0

    def test_stop_detaches_and_resets(self):
        monitor = AudioLevelMonitor(interval=0.01)
        handle = MockDeviceHandle()
        monitor.start(handle)
        handle.consumers[0](loud_frames())
        wait_until(lambda: monitor.level > 0)

        monitor.stop()

        assert monitor.level == 0
        assert not monitor.is_running
        assert handle.consumers == []

    def test_start_failure_reports_silence(self):
        class BrokenHandle:
            def attach(self, consumer):
                raise RuntimeError("analyser unavailable")

            def detach(self, consumer):
                pass

        levels = []
        monitor = AudioLevelMonitor(on_level=levels.append)

        monitor.start(BrokenHandle())

        assert not monitor.is_running
        assert monitor.level == 0
        assert levels == [0]

    def test_stop_without_start(self):
        monitor = AudioLevelMonitor()

        monitor.stop()

        assert monitor.level == 0

    def test_multichannel_frames_are_mixed_down(self):
        monitor = AudioLevelMonitor(fft_size=256)
        stereo = np.repeat(loud_frames(300), 2, axis=1)

        monitor._tap(stereo)

        assert len(monitor._buffer) == 256
