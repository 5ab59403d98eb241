"""
Flaw Detection Core Module

Runs the registration -> change detection -> region extraction -> merge
pipeline, and holds the reference image and detection state for callers
that feed it live frames.
"""

import cv2
import numpy as np
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Optional, Dict, Any, List
import logging

from .boxes import Box
from .changes import detect_changes
from .components import extract_boxes
from .errors import RegistrationError, ReferenceNotSetError
from .merge import merge
from .params import DetectionParams
from .registration import register

logger = logging.getLogger(__name__)


class DetectorState(Enum):
    IDLE = "idle"
    REFERENCE_SET = "reference_set"
    PROCESSING = "processing"


@dataclass
class DetectionResult:
    """Results from one pipeline run."""

    boxes: List[Box] = field(default_factory=list)
    frame_size: Tuple[int, int] = (0, 0)  # (width, height)

    # Registration info
    registered: bool = False
    error: Optional[str] = None
    matches: int = 0
    inliers: int = 0
    homography: Optional[np.ndarray] = None

    processing_time_ms: float = 0.0

    # Images (as numpy arrays)
    aligned_base: Optional[np.ndarray] = None
    validity_mask: Optional[np.ndarray] = None
    change_map: Optional[np.ndarray] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert results to dictionary (without images)."""
        return {
            "boxes": [list(b.as_tuple()) for b in self.boxes],
            "frame_size": list(self.frame_size),
            "registered": self.registered,
            "error": self.error,
            "matches": self.matches,
            "inliers": self.inliers,
            "homography": self.homography.tolist() if self.homography is not None else None,
            "processing_time_ms": round(self.processing_time_ms, 2),
        }


def run_pipeline(base: np.ndarray, target: np.ndarray,
                 params: DetectionParams = None) -> DetectionResult:
    """
    Find flaw boxes in target relative to base.

    Registration failures are not raised: the result comes back with
    registered=False, the failure kind in error and no boxes.
    """
    if params is None:
        params = DetectionParams()

    start_time = time.time()
    h, w = target.shape[:2]
    result = DetectionResult(frame_size=(w, h))

    try:
        registration = register(base, target, params)
    except RegistrationError as e:
        logger.warning(f"No registration for this frame ({e.reason}): {e}")
        result.error = e.reason
        result.matches = getattr(e, "matches", 0)
        result.processing_time_ms = (time.time() - start_time) * 1000
        return result

    result.registered = True
    result.matches = registration.matches
    result.inliers = registration.inliers
    result.homography = registration.homography

    masked_target = cv2.multiply(target, registration.validity_mask)
    change_map = detect_changes(registration.aligned_base, masked_target, params)
    result.boxes = merge(extract_boxes(change_map, params))

    if params.keep_images:
        result.aligned_base = registration.aligned_base
        result.validity_mask = registration.validity_mask
        result.change_map = change_map

    result.processing_time_ms = (time.time() - start_time) * 1000
    logger.info(f"Detected {len(result.boxes)} flaw region(s) in {result.processing_time_ms:.1f}ms")
    return result


class FlawDetector:
    """
    Flaw detector for comparing live frames against a reference image.

    Usage:
        detector = FlawDetector()
        detector.set_reference(reference_image)
        result = detector.detect(frame)

    process_frame() is the single-flight entry for live frames: a frame
    arriving while another is in flight is dropped, not queued.
    """

    def __init__(self, params: DetectionParams = None):
        self.params = params or DetectionParams()
        self.reference_image: Optional[np.ndarray] = None
        self.dropped_frames = 0
        self._state = DetectorState.IDLE
        self._state_lock = threading.Lock()
        self._in_flight = threading.Lock()

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def has_reference(self) -> bool:
        return self.reference_image is not None

    def set_reference(self, image: np.ndarray) -> Dict[str, Any]:
        """
        Set the reference (base) image.

        Args:
            image: Reference image (grayscale or BGR)

        Returns:
            Dictionary with reference image info
        """
        if image is None or image.size == 0:
            raise ValueError("Reference image is empty")

        reference = image.copy()
        with self._state_lock:
            self.reference_image = reference
            if self._state == DetectorState.IDLE:
                self._state = DetectorState.REFERENCE_SET
        logger.info(f"Reference image set: shape={reference.shape}")

        return {
            "image_shape": reference.shape,
            "state": self._state.value,
        }

    def clear_reference(self):
        with self._state_lock:
            self.reference_image = None
            if self._state == DetectorState.REFERENCE_SET:
                self._state = DetectorState.IDLE

    def detect(self, frame: np.ndarray, params: DetectionParams = None) -> DetectionResult:
        """
        Run the pipeline on a frame against the current reference.

        Raises:
            ReferenceNotSetError: No reference image has been set
        """
        reference = self.reference_image
        if reference is None:
            raise ReferenceNotSetError()
        if reference.ndim != frame.ndim:
            raise ValueError(
                f"Frame color depth does not match reference: {frame.shape} vs {reference.shape}"
            )
        return run_pipeline(reference, frame, params or self.params)

    def process_frame(self, frame: np.ndarray) -> Optional[DetectionResult]:
        """
        Process a live frame unless one is already in flight.

        Returns:
            DetectionResult, or None when the frame was dropped or no
            reference is set
        """
        if not self._in_flight.acquire(blocking=False):
            self.dropped_frames += 1
            logger.debug("Frame dropped: another frame is in flight")
            return None

        try:
            with self._state_lock:
                if self._state != DetectorState.REFERENCE_SET:
                    return None
                self._state = DetectorState.PROCESSING
            try:
                return self.detect(frame)
            finally:
                with self._state_lock:
                    self._state = (DetectorState.REFERENCE_SET if self.reference_image is not None
                                   else DetectorState.IDLE)
        finally:
            self._in_flight.release()


def process_single_image(ref_path: str, test_path: str,
                         params: DetectionParams = None) -> DetectionResult:
    """
    Convenience function to process a single image pair.

    Args:
        ref_path: Path to reference image
        test_path: Path to test image
        params: Detection parameters

    Returns:
        DetectionResult
    """
    ref_img = cv2.imread(ref_path, cv2.IMREAD_COLOR)
    test_img = cv2.imread(test_path, cv2.IMREAD_COLOR)

    if ref_img is None:
        raise FileNotFoundError(f"Could not load reference image: {ref_path}")
    if test_img is None:
        raise FileNotFoundError(f"Could not load test image: {test_path}")

    detector = FlawDetector(params)
    detector.set_reference(ref_img)
    return detector.detect(test_img)
