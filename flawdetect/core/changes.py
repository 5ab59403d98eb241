"""
Change Detection

Builds a binary change map between the aligned base image and the masked
target image. Both images are denoised and compressed into a low contrast
range first, so that only differences that survive smoothing are flagged.
"""

import cv2
import numpy as np
import logging

from .params import DetectionParams

logger = logging.getLogger(__name__)


def smooth(image: np.ndarray, params: DetectionParams = None) -> np.ndarray:
    """
    Denoise an image into a low-range grayscale image.

    Median blur, min-max rescale into [0, normalize_max], grayscale,
    second (smaller) median blur. The input is not modified.
    """
    if params is None:
        params = DetectionParams()

    out = cv2.medianBlur(np.ascontiguousarray(image), params.first_blur_kernel)
    out = cv2.normalize(out, None, 0.0, params.normalize_max, cv2.NORM_MINMAX)
    if out.ndim == 3:
        out = cv2.cvtColor(out, cv2.COLOR_BGR2GRAY)
    return cv2.medianBlur(out, params.second_blur_kernel)


def clean(change_map: np.ndarray, kernel_size: int = 3) -> np.ndarray:
    """Erode then dilate to drop salt noise."""
    kernel = np.ones((kernel_size, kernel_size), dtype=np.uint8)
    eroded = cv2.erode(change_map, kernel)
    return cv2.dilate(eroded, kernel)


def detect_changes(aligned_base: np.ndarray, masked_target: np.ndarray,
                   params: DetectionParams = None) -> np.ndarray:
    """
    Compute the binary change map.

    A pixel is foreground (255) when the smoothed images differ by more
    than params.diff_threshold. The map is cleaned with an erode/dilate
    pass unless params.morph_enabled is False.

    Args:
        aligned_base: Base image warped into the target frame
        masked_target: Target image multiplied by the validity mask
        params: Detection parameters

    Returns:
        uint8 single-channel map, same height/width as the inputs
    """
    if params is None:
        params = DetectionParams()

    if aligned_base.shape != masked_target.shape:
        raise ValueError(
            f"Image shapes differ: aligned base {aligned_base.shape}, target {masked_target.shape}"
        )
    if aligned_base.size == 0:
        return np.zeros(aligned_base.shape[:2], dtype=np.uint8)

    img1 = smooth(aligned_base, params)
    img2 = smooth(masked_target, params)

    diff = cv2.absdiff(img1, img2)
    _, change_map = cv2.threshold(diff, params.diff_threshold, 255, cv2.THRESH_BINARY)

    if params.morph_enabled:
        change_map = clean(change_map, params.morph_kernel_size)

    logger.debug(f"Changed pixels: {int(np.count_nonzero(change_map))}/{change_map.size}")
    return change_map
