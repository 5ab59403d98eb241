"""Background worker that runs detection on live frames, keeping only the latest."""

import logging
import threading
from typing import Callable, List, Optional, Tuple

import numpy as np

from .boxes import Box
from .detector import DetectionResult, FlawDetector

logger = logging.getLogger(__name__)

ResultCallback = Callable[[List[Box], Tuple[int, int]], None]


class FrameWorker:
    """
    Dedicated processing thread for live frames.

    submit() hands a frame to the worker only while it is idle; frames
    arriving during processing are discarded. Results go to
    latest_result and, if given, to on_result(boxes, (width, height)).
    """

    def __init__(self, detector: FlawDetector, on_result: Optional[ResultCallback] = None) -> None:
        self.detector = detector
        self.on_result = on_result
        self.latest_result: Optional[DetectionResult] = None
        self.processed_frames = 0
        self.dropped_frames = 0

        self._stop_event = threading.Event()
        self._frame_ready = threading.Event()
        self._slot_lock = threading.Lock()
        self._pending: Optional[np.ndarray] = None
        self._busy = False
        self._idle = threading.Event()
        self._idle.set()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread and self._thread.is_alive():
            logger.debug("Frame worker already running")
            return

        # Per-thread stop event: a thread outliving a timed-out stop() still exits
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._worker_loop, args=(self._stop_event,),
                                        name="FrameWorker", daemon=True)
        self._thread.start()
        logger.info("Frame worker started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker thread; a frame in flight finishes first."""
        self._stop_event.set()
        self._frame_ready.set()
        thread, self._thread = self._thread, None
        if thread and thread.is_alive():
            thread.join(timeout=timeout)

        with self._slot_lock:
            self._pending = None
            if thread and thread.is_alive():
                # Frame still in flight: stay busy until the old thread finishes it
                logger.warning(f"Frame worker did not stop within {timeout}s, frame still in flight")
            else:
                self._busy = False
                self._idle.set()
                self._frame_ready.clear()
        logger.info("Frame worker stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def is_busy(self) -> bool:
        with self._slot_lock:
            return self._busy

    def submit(self, frame: np.ndarray) -> bool:
        """
        Offer a frame to the worker.

        Returns:
            True if accepted, False if dropped (worker busy or not running)
        """
        if not self.is_running():
            return False

        with self._slot_lock:
            if self._busy:
                self.dropped_frames += 1
                return False
            self._busy = True
            self._idle.clear()
            self._pending = frame.copy()
        self._frame_ready.set()
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no frame is in flight. Returns False on timeout."""
        return self._idle.wait(timeout)

    def _worker_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self._frame_ready.wait()
            self._frame_ready.clear()
            if stop_event.is_set():
                break

            with self._slot_lock:
                frame, self._pending = self._pending, None
            if frame is None:
                continue

            try:
                self._process(frame)
            except Exception as e:
                logger.error(f"Frame processing failed: {e}")
            finally:
                with self._slot_lock:
                    self._busy = False
                    self._idle.set()

    def _process(self, frame: np.ndarray) -> None:
        result = self.detector.process_frame(frame)
        if result is None:
            return

        self.latest_result = result
        self.processed_frames += 1
        if self.on_result is not None:
            self.on_result(list(result.boxes), result.frame_size)
