from __future__ import annotations
from typing import Dict
import logging

import numpy as np

from models.adjustment_params import AdjustmentParams
from models.errors import InvalidParameter
from models.filter_kind import FilterKind
from models.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

# Rec. 601 luma weights
LUMA = np.array([0.299, 0.587, 0.114])

SEPIA = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
])

VINTAGE = np.array([1.2, 1.1, 0.8])


class ColorService:
    """
    Stateless per-pixel transforms.
    *   Every method returns a *new* PixelBuffer; the input is never written.
    *   Alpha is carried over unchanged.
    *   Float results are clamped to [0, 255] and rounded half-to-even.
    """

    # ─── Internal helpers ──────────────────────────────────────────
    @staticmethod
    def _rgb(buffer: PixelBuffer) -> np.ndarray:
        return buffer.pixels[..., :3].astype(np.float64)

    @staticmethod
    def _with_rgb(buffer: PixelBuffer, rgb: np.ndarray) -> PixelBuffer:
        out = buffer.pixels.copy()
        out[..., :3] = np.rint(np.clip(rgb, 0, 255)).astype(np.uint8)
        return PixelBuffer(out)

    @staticmethod
    def _luma(rgb: np.ndarray) -> np.ndarray:
        return rgb @ LUMA

    # ─── Slider composition ────────────────────────────────────────
    def compose_adjustments(self, original: PixelBuffer, params: AdjustmentParams) -> PixelBuffer:
        """
        brightness → contrast → saturation, clamped once at the end.
        The order matters: the three steps do not commute.
        """
        rgb = self._rgb(original)

        rgb = rgb + params.brightness_offset
        rgb = ((rgb / 255.0 - 0.5) * params.contrast_factor + 0.5) * 255.0

        # gray taken from the post-contrast channels
        gray = self._luma(rgb)[..., None]
        rgb = gray + params.saturation_factor * (rgb - gray)

        return self._with_rgb(original, rgb)

    # ─── Filters ───────────────────────────────────────────────────
    def grayscale(self, buffer: PixelBuffer) -> PixelBuffer:
        gray = self._luma(self._rgb(buffer))[..., None]
        return self._with_rgb(buffer, np.repeat(gray, 3, axis=2))

    def sepia(self, buffer: PixelBuffer) -> PixelBuffer:
        rgb = self._rgb(buffer) @ SEPIA.T
        return self._with_rgb(buffer, np.minimum(rgb, 255.0))

    def negative(self, buffer: PixelBuffer) -> PixelBuffer:
        out = buffer.pixels.copy()
        out[..., :3] = 255 - out[..., :3]
        return PixelBuffer(out)

    def vintage(self, buffer: PixelBuffer) -> PixelBuffer:
        return self._with_rgb(buffer, np.minimum(self._rgb(buffer) * VINTAGE, 255.0))

    def apply_filter(self, buffer: PixelBuffer, kind: FilterKind) -> PixelBuffer:
        """Per-pixel filters only; BLUR / SHARPEN belong to NeighborhoodService."""
        handlers = {
            FilterKind.GRAYSCALE: self.grayscale,
            FilterKind.SEPIA: self.sepia,
            FilterKind.NEGATIVE: self.negative,
            FilterKind.VINTAGE: self.vintage,
        }
        kind = FilterKind.parse(kind) if not isinstance(kind, FilterKind) else kind
        if kind.is_neighborhood:
            raise InvalidParameter(f"{kind.value} is not a per-pixel filter")
        return handlers[kind](buffer)

    # ─── Enhancement ───────────────────────────────────────────────
    def enhance(self, buffer: PixelBuffer) -> PixelBuffer:
        """One-click linear boost: c * 1.1 + 5."""
        return self._with_rgb(buffer, self._rgb(buffer) * 1.1 + 5.0)

    @staticmethod
    def histogram(buffer: PixelBuffer) -> Dict[str, np.ndarray]:
        """256-bucket count per colour channel."""
        return {
            name: np.bincount(buffer.pixels[..., i].ravel(), minlength=256)
            for i, name in enumerate("rgb")
        }

    def auto_enhance(self, buffer: PixelBuffer) -> PixelBuffer:
        """
        Independent per-channel min/max stretch to the full 0–255 range.
        A constant channel (max == min) is left unchanged.
        """
        hist = self.histogram(buffer)
        rgb = self._rgb(buffer)

        for i, name in enumerate("rgb"):
            occupied = np.flatnonzero(hist[name])
            lo, hi = int(occupied[0]), int(occupied[-1])
            if hi == lo:
                logger.debug(f"Channel {name} is constant ({lo}); left unchanged")
                continue
            rgb[..., i] = (rgb[..., i] - lo) / (hi - lo) * 255.0

        return self._with_rgb(buffer, rgb)
