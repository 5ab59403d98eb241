"""Flaw Detection Core Module."""

from .boxes import Box
from .changes import detect_changes, smooth
from .components import extract_boxes
from .detector import (
    DetectionResult,
    DetectorState,
    FlawDetector,
    process_single_image,
    run_pipeline,
)
from .errors import (
    DegenerateInput,
    FlawDetectError,
    InsufficientMatches,
    ReferenceNotSetError,
    RegistrationError,
)
from .merge import merge
from .params import DetectionParams
from .registration import RegistrationResult, register
from .worker import FrameWorker

__all__ = [
    "Box",
    "DetectionParams",
    "DetectionResult",
    "DetectorState",
    "DegenerateInput",
    "FlawDetectError",
    "FlawDetector",
    "FrameWorker",
    "InsufficientMatches",
    "ReferenceNotSetError",
    "RegistrationError",
    "RegistrationResult",
    "detect_changes",
    "extract_boxes",
    "merge",
    "process_single_image",
    "register",
    "run_pipeline",
    "smooth",
]
