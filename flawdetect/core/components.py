"""Connected-region extraction from a binary change map."""

import cv2
import numpy as np
from typing import List, Tuple
import logging

from .boxes import Box
from .params import DetectionParams

logger = logging.getLogger(__name__)


def area_bounds(rows: int, cols: int, params: DetectionParams = None) -> Tuple[float, float]:
    """(threshold_min, threshold_max) box areas for an image of the given size."""
    if params is None:
        params = DetectionParams()
    total = rows * cols
    return total * params.min_area_fraction, total * params.max_area_fraction


def extract_boxes(change_map: np.ndarray, params: DetectionParams = None) -> List[Box]:
    """
    Find candidate flaw boxes in a change map.

    Components are 8-connected. A box survives when
    threshold_min < area < threshold_max; survivors are ranked by area,
    largest first, and at most params.max_boxes are returned.
    """
    if params is None:
        params = DetectionParams()
    if change_map.size == 0:
        return []

    binary = (change_map > 0).astype(np.uint8)
    num_labels, _, stats, _ = cv2.connectedComponentsWithStats(binary, connectivity=8)

    rows, cols = change_map.shape[:2]
    threshold_min, threshold_max = area_bounds(rows, cols, params)

    boxes = []
    # Label 0 is the background
    for label in range(1, num_labels):
        box = Box.from_stats(stats[label])
        if threshold_min < box.area < threshold_max:
            boxes.append(box)

    boxes.sort(key=lambda b: b.area, reverse=True)
    kept = boxes[:params.max_boxes]
    logger.debug(f"{num_labels - 1} components, {len(boxes)} within size bounds, kept {len(kept)}")
    return kept
