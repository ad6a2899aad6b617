from __future__ import annotations
from enum import Enum

from models.errors import InvalidParameter


class FilterKind(str, Enum):
    """One-click filters. BLUR takes a radius, the rest are parameterless."""
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    NEGATIVE = "negative"
    VINTAGE = "vintage"
    BLUR = "blur"
    SHARPEN = "sharpen"

    @property
    def is_neighborhood(self) -> bool:
        """True for filters that read a pixel's neighbours, not just the pixel."""
        return self in (FilterKind.BLUR, FilterKind.SHARPEN)

    @classmethod
    def parse(cls, name: str) -> FilterKind:
        try:
            return cls(str(name).strip().lower())
        except ValueError as err:
            valid = ", ".join(k.value for k in cls)
            raise InvalidParameter(f"Unknown filter {name!r}, expected one of: {valid}") from err
