"""
Tests for the live frame worker.
"""

import threading

import pytest
import numpy as np
from flawdetect.core import Box, DetectionResult, FlawDetector, FrameWorker


class BlockingDetector:
    """Stands in for FlawDetector; holds each frame until released."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()
        self.frames = []

    def process_frame(self, frame):
        self.started.set()
        self.release.wait(5.0)
        self.frames.append(frame)
        h, w = frame.shape[:2]
        return DetectionResult(boxes=[Box(1, 1, 5, 5)], frame_size=(w, h))


class TestFrameWorker:

    @pytest.fixture
    def frame(self):
        return np.zeros((48, 64, 3), dtype=np.uint8)

    def test_submit_when_stopped(self, frame):
        worker = FrameWorker(BlockingDetector())
        assert worker.submit(frame) is False

    def test_start_stop(self):
        worker = FrameWorker(BlockingDetector())
        worker.start()
        assert worker.is_running()
        worker.stop()
        assert not worker.is_running()

    def test_result_delivered_to_consumer(self, frame):
        received = []
        detector = BlockingDetector()
        detector.release.set()
        worker = FrameWorker(detector, on_result=lambda boxes, size: received.append((boxes, size)))
        worker.start()
        try:
            assert worker.submit(frame)
            assert worker.wait_idle(timeout=5.0)
        finally:
            worker.stop()

        assert received == [([Box(1, 1, 5, 5)], (64, 48))]
        assert worker.latest_result is not None
        assert worker.processed_frames == 1

    def test_frames_dropped_while_busy(self, frame):
        detector = BlockingDetector()
        worker = FrameWorker(detector)
        worker.start()
        try:
            assert worker.submit(frame)
            assert detector.started.wait(5.0)
            assert worker.submit(frame) is False
            assert worker.submit(frame) is False
            detector.release.set()
            assert worker.wait_idle(timeout=5.0)
            assert worker.submit(frame)
            assert worker.wait_idle(timeout=5.0)
        finally:
            worker.stop()

        assert worker.dropped_frames == 2
        assert len(detector.frames) == 2

    def test_restart_after_stop_timeout(self, frame):
        detector = BlockingDetector()
        worker = FrameWorker(detector)
        worker.start()
        try:
            assert worker.submit(frame)
            assert detector.started.wait(5.0)

            # Old thread is still inside process_frame
            worker.stop(timeout=0.1)
            worker.start()
            assert worker.is_running()
            assert worker.submit(frame) is False

            detector.release.set()
            assert worker.wait_idle(timeout=5.0)
            assert worker.submit(frame)
            assert worker.wait_idle(timeout=5.0)
        finally:
            worker.stop()

        assert len(detector.frames) == 2
        assert worker.dropped_frames == 1

    def test_submitted_frame_is_copied(self, frame):
        detector = BlockingDetector()
        worker = FrameWorker(detector)
        worker.start()
        try:
            worker.submit(frame)
            frame[:] = 255
            detector.release.set()
            worker.wait_idle(timeout=5.0)
        finally:
            worker.stop()

        assert detector.frames[0].max() == 0

    def test_with_real_detector(self, textured_color):
        detector = FlawDetector()
        detector.set_reference(textured_color)
        worker = FrameWorker(detector)
        worker.start()
        try:
            assert worker.submit(textured_color.copy())
            assert worker.wait_idle(timeout=30.0)
        finally:
            worker.stop()

        assert worker.latest_result.registered
        assert worker.latest_result.boxes == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
