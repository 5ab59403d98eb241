"""Exceptions raised by the flaw detection pipeline."""


class FlawDetectError(Exception):
    """Base class for flaw detection errors."""


class RegistrationError(FlawDetectError):
    """Base image could not be registered onto the target frame.

    Recoverable: the caller skips detection for this frame and reports
    an empty box list.
    """

    reason = "registration_failed"


class InsufficientMatches(RegistrationError):
    """Fewer than 4 usable correspondences, or the homography fit failed."""

    reason = "insufficient_matches"

    def __init__(self, message: str, matches: int = 0):
        super().__init__(message)
        self.matches = matches


class DegenerateInput(RegistrationError):
    """One of the images yielded no features, or matching failed on empty descriptors."""

    reason = "degenerate_input"


class ReferenceNotSetError(FlawDetectError, ValueError):
    """Detection was requested before a reference image was set."""

    def __init__(self, message: str = "Reference image not set. Call set_reference() first."):
        super().__init__(message)
