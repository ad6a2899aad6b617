from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, Tuple
import numpy as np

from models.errors import DimensionMismatch, InvalidParameter, OutOfBounds

RGBA = Tuple[int, int, int, int]


@dataclass(eq=False)
class PixelBuffer:
    """
    Fixed-size RGBA raster, 8 bits per channel.

    • pixels is owned exclusively by whoever holds the buffer.
    • clone() never shares backing storage with the source.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise DimensionMismatch(f"Expected (H, W, 4) pixels, got {self.pixels.shape}")
        if self.pixels.shape[0] < 1 or self.pixels.shape[1] < 1:
            raise InvalidParameter(f"Buffer must be at least 1x1, got {self.pixels.shape[1]}x{self.pixels.shape[0]}")
        if self.pixels.dtype != np.uint8:
            self.pixels = np.clip(np.rint(self.pixels), 0, 255).astype(np.uint8)
        if not self.pixels.flags['C_CONTIGUOUS']:
            self.pixels = np.ascontiguousarray(self.pixels)

    # ── Constructors ────────────────────────────────────────────────
    @classmethod
    def create(cls, width: int, height: int) -> PixelBuffer:
        """Zero-filled (transparent black) buffer."""
        if width < 1 or height < 1:
            raise InvalidParameter(f"Buffer must be at least 1x1, got {width}x{height}")
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def filled(cls, width: int, height: int, rgba: Sequence[int]) -> PixelBuffer:
        buf = cls.create(width, height)
        buf.pixels[:, :] = clamp_rgba(rgba)
        return buf

    @classmethod
    def from_channels(cls, width: int, height: int, channels: Sequence[int]) -> PixelBuffer:
        """Build from a flat RGBA sequence of length width*height*4."""
        if width < 1 or height < 1:
            raise InvalidParameter(f"Buffer must be at least 1x1, got {width}x{height}")
        flat = np.asarray(channels)
        if flat.size != width * height * 4:
            raise DimensionMismatch(
                f"Expected {width * height * 4} channel values, got {flat.size}"
            )
        flat = np.clip(np.rint(flat.astype(np.float64)), 0, 255).astype(np.uint8)
        return cls(flat.reshape(height, width, 4).copy())

    @classmethod
    def from_rgb(cls, rgb: np.ndarray, alpha: int = 255) -> PixelBuffer:
        """Promote an (H, W, 3) RGB array to an opaque RGBA buffer."""
        h, w = rgb.shape[:2]
        pixels = np.empty((h, w, 4), dtype=np.uint8)
        pixels[..., :3] = rgb
        pixels[..., 3] = alpha
        return cls(pixels)

    # ── Geometry ────────────────────────────────────────────────────
    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def channels(self) -> np.ndarray:
        """Flat RGBA view, length width*height*4."""
        return self.pixels.reshape(-1)

    @property
    def rgb(self) -> np.ndarray:
        """(H, W, 3) copy for model input."""
        return np.ascontiguousarray(self.pixels[..., :3])

    # ── Ownership ───────────────────────────────────────────────────
    def clone(self) -> PixelBuffer:
        return PixelBuffer(self.pixels.copy())

    def freeze(self) -> PixelBuffer:
        """Mark the backing array read-only; used for stored history snapshots."""
        self.pixels.flags.writeable = False
        return self

    @property
    def is_frozen(self) -> bool:
        return not self.pixels.flags.writeable

    # ── Pixel access ────────────────────────────────────────────────
    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise OutOfBounds(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")

    def get_pixel(self, x: int, y: int) -> RGBA:
        self._check(x, y)
        return tuple(int(c) for c in self.pixels[y, x])

    def set_pixel(self, x: int, y: int, rgba: Sequence[float]) -> None:
        """Channel values are clamped to [0, 255]."""
        self._check(x, y)
        self.pixels[y, x] = clamp_rgba(rgba)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    __hash__ = None

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"


def clamp_rgba(rgba: Sequence[float]) -> np.ndarray:
    values = np.asarray(rgba, dtype=np.float64)
    if values.shape != (4,):
        raise InvalidParameter(f"Expected 4 channel values, got {values.size}")
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def parse_rgba(text: str) -> RGBA:
    """'230,230,230' or '230,230,230,255' → (r, g, b, a)."""
    try:
        parts = [int(p.strip()) for p in text.split(",")]
    except ValueError as err:
        raise InvalidParameter(f"Malformed colour {text!r}") from err
    if len(parts) == 3:
        parts.append(255)
    if len(parts) != 4 or any(not 0 <= p <= 255 for p in parts):
        raise InvalidParameter(f"Malformed colour {text!r}")
    return tuple(parts)
