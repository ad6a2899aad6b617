from __future__ import annotations
import logging

import cv2
import numpy as np

from models.errors import InvalidParameter
from models.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

SHARPEN_KERNEL = np.array([
    [0, -1, 0],
    [-1, 5, -1],
    [0, -1, 0],
], dtype=np.float64)


class NeighborhoodService:
    """
    Windowed transforms over R, G, B.
    *   Reads always come from the untouched source, so a pass never sees its own writes.
    *   Alpha is carried over unchanged.
    """

    @staticmethod
    def _in_bounds_counts(length: int, radius: int) -> np.ndarray:
        """How many of the 2r+1 window taps land inside [0, length) at each index."""
        idx = np.arange(length)
        return np.minimum(idx + radius, length - 1) - np.maximum(idx - radius, 0) + 1

    def box_blur(self, buffer: PixelBuffer, radius: int) -> PixelBuffer:
        """
        Mean over the (2r+1)² window clipped to the buffer.
        Edge pixels average only their in-bounds samples.
        """
        if isinstance(radius, bool) or not isinstance(radius, (int, np.integer)) or radius < 0:
            raise InvalidParameter(f"Blur radius must be a non-negative integer, got {radius!r}")
        if radius == 0:
            return buffer.clone()
        # past the longer side every window already covers the whole row/column
        radius = min(int(radius), max(buffer.width, buffer.height))

        rgb = buffer.pixels[..., :3].astype(np.float64)
        ksize = 2 * radius + 1

        # zero padding makes out-of-bounds taps contribute nothing to the sum
        padded = cv2.copyMakeBorder(rgb, radius, radius, radius, radius,
                                    cv2.BORDER_CONSTANT, value=(0, 0, 0))
        sums = cv2.boxFilter(padded, cv2.CV_64F, (ksize, ksize), normalize=False)
        sums = sums[radius:-radius, radius:-radius]

        counts = np.outer(self._in_bounds_counts(buffer.height, radius),
                          self._in_bounds_counts(buffer.width, radius))

        out = buffer.pixels.copy()
        out[..., :3] = np.rint(np.clip(sums / counts[..., None], 0, 255)).astype(np.uint8)
        return PixelBuffer(out)

    def sharpen(self, buffer: PixelBuffer) -> PixelBuffer:
        """
        3×3 sharpen over interior pixels; the one-pixel border is copied as is.
        """
        out = buffer.pixels.copy()
        if buffer.width < 3 or buffer.height < 3:
            return PixelBuffer(out)

        rgb = buffer.pixels[..., :3].astype(np.float64)
        convolved = cv2.filter2D(rgb, cv2.CV_64F, SHARPEN_KERNEL)
        interior = np.rint(np.clip(convolved[1:-1, 1:-1], 0, 255)).astype(np.uint8)
        out[1:-1, 1:-1, :3] = interior
        return PixelBuffer(out)
