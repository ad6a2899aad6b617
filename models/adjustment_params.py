from __future__ import annotations
from dataclasses import dataclass
import math

from models.errors import InvalidParameter

NEUTRAL = 100.0


@dataclass(frozen=True)
class AdjustmentParams:
    """
    Value-object holding the slider state in UI percent units
    (typically 0–200, 100 = unchanged).

    Always applied against the *original* buffer, never compounded.
    """
    brightness: float = NEUTRAL
    contrast:   float = NEUTRAL
    saturation: float = NEUTRAL

    def __post_init__(self):
        for name in ("brightness", "contrast", "saturation"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidParameter(f"{name} must be a finite number, got {value!r}")

    @classmethod
    def neutral(cls) -> AdjustmentParams:
        return cls()

    @property
    def is_neutral(self) -> bool:
        return self == AdjustmentParams.neutral()

    # ── Factors used by the colour math ──────────────────────────────
    @property
    def brightness_offset(self) -> float:
        """Additive offset in 0–255 units."""
        return (self.brightness / 100.0 - 1.0) * 255.0

    @property
    def contrast_factor(self) -> float:
        return self.contrast / 100.0

    @property
    def saturation_factor(self) -> float:
        return self.saturation / 100.0

    def replace(self, **changes) -> AdjustmentParams:
        """Copy with one or more sliders moved."""
        values = {"brightness": self.brightness,
                  "contrast": self.contrast,
                  "saturation": self.saturation}
        values.update(changes)
        return AdjustmentParams(**values)
