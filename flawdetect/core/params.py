"""
Detection Parameters

Every tunable of the registration, change detection and region extraction
stages lives in DetectionParams, so a single object can be sent over the
API, saved next to a reference image and handed to each stage.
"""

from dataclasses import dataclass, fields
from typing import Dict, Any

INT_FIELDS = ("max_features", "first_blur_kernel", "second_blur_kernel",
              "morph_kernel_size", "max_boxes")
FLOAT_FIELDS = ("ransac_reproj_threshold", "normalize_max", "diff_threshold",
                "min_area_fraction", "max_area_fraction")


@dataclass
class DetectionParams:
    """Parameters for the flaw detection pipeline."""

    # Registration
    max_features: int = 5000
    ransac_reproj_threshold: float = 0.5  # pixels
    identical_shortcut: bool = True  # skip feature matching for byte-identical frames

    # Smoothing
    first_blur_kernel: int = 7
    second_blur_kernel: int = 5
    normalize_max: float = 128.0

    # Change map
    diff_threshold: float = 5.0
    morph_enabled: bool = True
    morph_kernel_size: int = 3

    # Region extraction
    min_area_fraction: float = 0.001
    max_area_fraction: float = 0.5
    max_boxes: int = 4

    # Keep aligned base / mask / change map on the result
    keep_images: bool = True

    def __post_init__(self):
        for name in INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or int(value) != value:
                raise ValueError(f"{name} must be an integer, got {value!r}")
            setattr(self, name, int(value))
        for name in FLOAT_FIELDS:
            setattr(self, name, float(getattr(self, name)))

        for name in ("first_blur_kernel", "second_blur_kernel"):
            value = getattr(self, name)
            if value < 3 or value % 2 == 0:
                raise ValueError(f"{name} must be an odd integer >= 3, got {value}")
        if self.morph_kernel_size < 1:
            raise ValueError(f"morph_kernel_size must be >= 1, got {self.morph_kernel_size}")
        if self.max_features < 1:
            raise ValueError(f"max_features must be >= 1, got {self.max_features}")
        if self.ransac_reproj_threshold <= 0:
            raise ValueError("ransac_reproj_threshold must be positive")
        if not 0 <= self.min_area_fraction < self.max_area_fraction <= 1:
            raise ValueError("area fractions must satisfy 0 <= min < max <= 1")
        if self.max_boxes < 1:
            raise ValueError(f"max_boxes must be >= 1, got {self.max_boxes}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionParams":
        """Create parameters from dictionary, ignoring unknown keys."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
