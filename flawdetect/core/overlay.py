"""
Overlay Rendering

Helpers for consumers that display detected boxes: scaling boxes from the
frame they were computed against into a display size, and drawing them.
"""

import cv2
import numpy as np
from typing import Iterable, Tuple

from .boxes import Box

BOX_COLOR = (100, 120, 240)  # BGR: soft red
CHANGE_COLOR = (100, 180, 255)  # BGR: soft orange


def scale_box(box: Box, frame_size: Tuple[int, int],
              view_size: Tuple[int, int]) -> Tuple[float, float, float, float]:
    """
    Map a box into display coordinates.

    Args:
        box: Box in frame pixel coordinates
        frame_size: (width, height) of the frame the box was computed against
        view_size: (width, height) of the display surface

    Returns:
        (left, top, right, bottom) in display coordinates
    """
    frame_w, frame_h = frame_size
    view_w, view_h = view_size
    if frame_w <= 0 or frame_h <= 0:
        raise ValueError(f"Invalid frame size: {frame_size}")
    sx = view_w / frame_w
    sy = view_h / frame_h
    left, top, right, bottom = box.rect
    return (left * sx, top * sy, right * sx, bottom * sy)


def draw_boxes(image: np.ndarray, boxes: Iterable[Box],
               color: Tuple[int, int, int] = BOX_COLOR, thickness: int = 2) -> np.ndarray:
    """Draw boxes on a BGR copy of image (grayscale input is converted)."""
    if image.ndim == 2:
        canvas = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    else:
        canvas = image.copy()

    for box in boxes:
        left, top, right, bottom = box.rect
        # cv2.rectangle takes inclusive corners
        cv2.rectangle(canvas, (left, top), (right - 1, bottom - 1), color, thickness)
    return canvas


def change_overlay(image: np.ndarray, change_map: np.ndarray, boxes: Iterable[Box] = (),
                   alpha: float = 0.5) -> np.ndarray:
    """Tint changed pixels over the image and outline boxes."""
    if image.ndim == 2:
        canvas = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    else:
        canvas = image.copy()

    tint = np.zeros_like(canvas)
    tint[:] = CHANGE_COLOR
    blended = cv2.addWeighted(canvas, 1 - alpha, tint, alpha, 0)
    changed = change_map > 0
    canvas[changed] = blended[changed]

    return draw_boxes(canvas, boxes)
