"""
Feature Registration

Aligns the reference (base) image onto the live (target) image's frame
using ORB features, brute-force Hamming matching and a RANSAC homography.
"""

import cv2
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from .errors import DegenerateInput, InsufficientMatches
from .params import DetectionParams

logger = logging.getLogger(__name__)

MIN_CORRESPONDENCES = 4


@dataclass
class RegistrationResult:
    """Base image warped into the target frame, with its validity mask."""

    aligned_base: np.ndarray
    validity_mask: np.ndarray
    homography: np.ndarray
    matches: int = 0
    inliers: int = 0


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert to single-channel intensity, copying grayscale input."""
    if image.ndim == 3:
        if image.shape[2] == 1:
            return image[:, :, 0].copy()
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image.copy()


def _detect_orb(gray: np.ndarray, max_features: int) -> Tuple[List[cv2.KeyPoint], Optional[np.ndarray]]:
    orb = cv2.ORB_create(nfeatures=max_features)
    return orb.detectAndCompute(gray, None)


def _match_hamming(des_base: np.ndarray, des_target: np.ndarray) -> List[cv2.DMatch]:
    """
    Nearest target descriptor for every base descriptor.

    No ratio test and no cross-check: outliers are left to RANSAC.
    """
    matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)
    try:
        return list(matcher.match(des_base, des_target))
    except cv2.error as e:
        raise DegenerateInput(f"Feature matching failed: {e}") from e


def _validate(base: np.ndarray, target: np.ndarray):
    for name, image in (("base", base), ("target", target)):
        if image is None or image.size == 0 or image.ndim not in (2, 3):
            raise ValueError(f"{name} must be a non-empty 2D or 3D image")
    if base.ndim != target.ndim:
        raise ValueError(f"base and target must have the same channel layout, got {base.shape} and {target.shape}")


def register(base: np.ndarray, target: np.ndarray,
             params: DetectionParams = None) -> RegistrationResult:
    """
    Register base onto target.

    Args:
        base: Reference image (grayscale or BGR)
        target: Live image, same color depth as base
        params: Detection parameters

    Returns:
        RegistrationResult with the aligned base (target's size), the
        validity mask (1 where aligned base has data, 0 elsewhere) and the
        base -> target homography.

    Raises:
        DegenerateInput: Either image yields no features
        InsufficientMatches: Fewer than 4 matches or no homography found
    """
    if params is None:
        params = DetectionParams()
    _validate(base, target)

    h, w = target.shape[:2]

    if params.identical_shortcut and base.shape == target.shape and np.array_equal(base, target):
        logger.debug("Base and target are identical, using identity transform")
        return RegistrationResult(
            aligned_base=base.copy(),
            validity_mask=np.ones_like(target, dtype=np.uint8),
            homography=np.eye(3, dtype=np.float64),
        )

    kp1, des1 = _detect_orb(to_gray(base), params.max_features)
    kp2, des2 = _detect_orb(to_gray(target), params.max_features)

    if des1 is None or des2 is None or len(kp1) == 0 or len(kp2) == 0:
        raise DegenerateInput(
            f"No features detected: base={len(kp1) if kp1 else 0}, target={len(kp2) if kp2 else 0}"
        )

    matches = _match_hamming(des1, des2)
    if len(matches) < MIN_CORRESPONDENCES:
        raise InsufficientMatches(
            f"Only {len(matches)} matches found (need at least {MIN_CORRESPONDENCES} for homography)",
            matches=len(matches),
        )

    src_pts = np.float32([kp1[m.queryIdx].pt for m in matches]).reshape(-1, 1, 2)
    dst_pts = np.float32([kp2[m.trainIdx].pt for m in matches]).reshape(-1, 1, 2)

    H, mask = cv2.findHomography(src_pts, dst_pts, cv2.RANSAC, params.ransac_reproj_threshold)
    if H is None:
        raise InsufficientMatches("Homography estimation failed", matches=len(matches))

    inliers = int(np.sum(mask)) if mask is not None else 0
    logger.info(f"Homography inliers: {inliers}/{len(matches)} ({inliers * 100 / len(matches):.1f}%)")

    aligned = cv2.warpPerspective(base, H, (w, h), flags=cv2.INTER_LINEAR,
                                  borderMode=cv2.BORDER_CONSTANT, borderValue=0)
    # Base footprint, with the target's channel layout
    ones = np.ones(base.shape[:2] + target.shape[2:], dtype=np.uint8)
    validity = cv2.warpPerspective(ones, H, (w, h), flags=cv2.INTER_NEAREST,
                                   borderMode=cv2.BORDER_CONSTANT, borderValue=0)

    return RegistrationResult(
        aligned_base=aligned,
        validity_mask=validity,
        homography=H,
        matches=len(matches),
        inliers=inliers,
    )
