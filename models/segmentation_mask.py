from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from models.errors import DimensionMismatch, InvalidParameter


@dataclass(eq=False)
class SegmentationMask:
    """
    Per-pixel binary classification aligned 1:1 with buffer pixels.
    1 = subject (person), 0 = background.
    """
    values: np.ndarray  # Shape (H, W), dtype uint8, values in {0, 1}.

    def __post_init__(self):
        self.values = np.asarray(self.values)
        if self.values.ndim != 2:
            raise DimensionMismatch(f"Expected (H, W) mask, got {self.values.shape}")
        if self.values.size and not np.isin(self.values, (0, 1)).all():
            raise InvalidParameter("Mask values must be exactly 0 or 1")
        self.values = self.values.astype(np.uint8, copy=False)

    @classmethod
    def from_flat(cls, width: int, height: int, values) -> SegmentationMask:
        flat = np.asarray(values)
        if flat.size != width * height:
            raise DimensionMismatch(f"Expected {width * height} mask values, got {flat.size}")
        return cls(flat.reshape(height, width))

    @classmethod
    def from_soft(cls, soft: np.ndarray, thr: float) -> SegmentationMask:
        """Threshold a float probability map in [0, 1]."""
        return cls((np.asarray(soft) > thr).astype(np.uint8))

    @property
    def width(self) -> int:
        return self.values.shape[1]

    @property
    def height(self) -> int:
        return self.values.shape[0]

    def __len__(self) -> int:
        return int(self.values.size)

    @property
    def coverage(self) -> float:
        """Fraction of pixels classified as subject."""
        return float(self.values.mean()) if self.values.size else 0.0
