"""Coalescing of overlapping candidate boxes."""

from itertools import combinations
from typing import List, Optional, Sequence

from .boxes import Box


def intersects(a: Box, b: Box) -> bool:
    return a.intersects(b)


def union(a: Box, b: Box) -> Box:
    return a.union(b)


def merge(boxes: Sequence[Box], max_passes: Optional[int] = None) -> List[Box]:
    """
    Merge overlapping boxes until no two boxes intersect.

    Each pass scans index pairs (i, j), i < j, in lexicographic order and
    merges the first intersecting pair it finds: box i becomes the union,
    box j is dropped, and the scan restarts. The first pair found wins,
    not the pair with the largest overlap. Surviving boxes keep their order.

    Args:
        boxes: Candidate boxes (not modified)
        max_passes: Optional cap on merge passes; each pass removes one box

    Returns:
        New list of boxes
    """
    result = list(boxes)
    passes = 0

    while len(result) > 1:
        if max_passes is not None and passes >= max_passes:
            break

        pair = next(
            ((i, j) for i, j in combinations(range(len(result)), 2)
             if result[i].intersects(result[j])),
            None,
        )
        if pair is None:
            break

        i, j = pair
        result[i] = result[i].union(result[j])
        del result[j]
        passes += 1

    return result
