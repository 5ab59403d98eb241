"""Bounding box value type shared by region extraction, merging and overlays."""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Box:
    """
    Axis-aligned box in top-left-origin integer pixel coordinates.

    The box covers the half-open region [x, x + w) x [y, y + h). When area
    is omitted it is derived as w * h; an explicit area is kept as supplied.
    """

    x: int
    y: int
    w: int
    h: int
    area: Optional[int] = field(default=None)

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise ValueError(f"Box width and height must be non-negative, got w={self.w}, h={self.h}")
        if self.area is None:
            object.__setattr__(self, "area", self.w * self.h)

    @classmethod
    def from_tuple(cls, values: Sequence[int]) -> "Box":
        """Build a box from (x, y, w, h) or (x, y, w, h, area)."""
        if len(values) == 4:
            x, y, w, h = values
            return cls(int(x), int(y), int(w), int(h))
        if len(values) == 5:
            x, y, w, h, area = values
            return cls(int(x), int(y), int(w), int(h), int(area))
        raise ValueError(f"Expected 4 or 5 values, got {len(values)}")

    @classmethod
    def from_stats(cls, row: Sequence[int]) -> "Box":
        """Build a box from a connectedComponentsWithStats row.

        The area is the bounding rectangle's w * h, not the pixel count.
        """
        x, y, w, h = (int(v) for v in row[:4])
        return cls(x, y, w, h)

    @property
    def rect(self) -> Tuple[int, int, int, int]:
        """(left, top, right, bottom), right and bottom exclusive."""
        return (self.x, self.y, self.x + self.w, self.y + self.h)

    def as_tuple(self) -> Tuple[int, int, int, int, int]:
        return (self.x, self.y, self.w, self.h, self.area)

    def intersects(self, other: "Box") -> bool:
        """True when the two rectangles share a positive-area region."""
        left, top, right, bottom = self.rect
        o_left, o_top, o_right, o_bottom = other.rect
        return left < o_right and o_left < right and top < o_bottom and o_top < bottom

    def union(self, other: "Box") -> "Box":
        """Smallest box enclosing both."""
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        right = max(self.x + self.w, other.x + other.w)
        bottom = max(self.y + self.h, other.y + other.h)
        return Box(left, top, right - left, bottom - top)

    def contains(self, other: "Box") -> bool:
        left, top, right, bottom = self.rect
        o_left, o_top, o_right, o_bottom = other.rect
        return left <= o_left and top <= o_top and o_right <= right and o_bottom <= bottom

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h, "area": self.area}
