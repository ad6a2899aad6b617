from __future__ import annotations
from typing import Sequence, Tuple
import math
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from models.detection_box import DetectionBox
from models.errors import DimensionMismatch, InvalidParameter
from models.pixel_buffer import PixelBuffer, clamp_rgba, parse_rgba
from models.segmentation_mask import SegmentationMask

# Load environment variables
load_dotenv()


class MaskCompositingService:
    """
    Business‑level helper for merging model output back into a buffer.

    • apply_segmentation: fill everything outside the subject with an opaque colour.
    • overlay_boxes: translucent fill + stroked border per detection box.
    Both return a **new** PixelBuffer.
    """

    def __init__(self):
        self.BACKGROUND_COLOR = parse_rgba(os.getenv("BACKGROUND_COLOR", "230,230,230,255"))  # studio light‑gray
        self.STROKE_COLOR = parse_rgba(os.getenv("BOX_STROKE_COLOR", "0,255,0,255"))
        self.FILL_ALPHA = float(os.getenv("BOX_FILL_ALPHA", "0.2"))
        self.LINE_WIDTH = int(os.getenv("BOX_LINE_WIDTH", "3"))

    # --------------------------------------------------------------
    def apply_segmentation(
            self,
            buffer: PixelBuffer,
            mask: SegmentationMask,
            background: Sequence[int] | None = None,
    ) -> PixelBuffer:
        """Pixels with mask 0 become `background`; mask 1 pixels are copied unchanged."""
        if len(mask) != buffer.pixel_count or mask.values.shape != (buffer.height, buffer.width):
            raise DimensionMismatch(
                f"Mask is {mask.width}x{mask.height}, buffer is {buffer.width}x{buffer.height}"
            )
        fill = clamp_rgba(self.BACKGROUND_COLOR if background is None else background)

        out = buffer.pixels.copy()
        out[mask.values == 0] = fill
        return PixelBuffer(out)

    # --------------------------------------------------------------
    @staticmethod
    def _clamp(value: float, lo: float, hi: float) -> float:
        return min(max(value, lo), hi)

    @classmethod
    def _clip_box(cls, box: DetectionBox, width: int, height: int) -> Tuple[int, int, int, int] | None:
        """Integer fill region [x1, x2) × [y1, y2) inside the buffer, or None if nothing is visible."""
        xs = [cls._clamp(x, 0, width) for x in (box.top_left[0], box.bottom_right[0])]
        ys = [cls._clamp(y, 0, height) for y in (box.top_left[1], box.bottom_right[1])]
        x1, x2 = math.floor(min(xs)), math.ceil(max(xs))
        y1, y2 = math.floor(min(ys)), math.ceil(max(ys))
        if x1 >= x2 or y1 >= y2:
            return None
        return x1, y1, x2, y2

    @classmethod
    def _stroke_corner(cls, point, width: int, height: int, margin: int) -> Tuple[int, int]:
        """Corner pulled to within `margin` of the raster; the visible stroke is unchanged."""
        return (
            int(round(cls._clamp(point[0], -margin, width - 1 + margin))),
            int(round(cls._clamp(point[1], -margin, height - 1 + margin))),
        )

    def overlay_boxes(
            self,
            buffer: PixelBuffer,
            boxes: Sequence[DetectionBox],
            stroke_color: Sequence[int] | None = None,
            fill_alpha: float | None = None,
            line_width: int | None = None,
    ) -> PixelBuffer:
        """
        Draws boxes in input order; later boxes paint over earlier ones.
        Boxes reaching past the edges are clipped, not rejected.
        """
        stroke = self.STROKE_COLOR if stroke_color is None else tuple(int(c) for c in stroke_color)
        alpha = self.FILL_ALPHA if fill_alpha is None else float(fill_alpha)
        thickness = self.LINE_WIDTH if line_width is None else int(line_width)
        if not 0.0 <= alpha <= 1.0:
            raise InvalidParameter(f"fill_alpha must be in [0, 1], got {alpha}")
        if len(stroke) != 4:
            raise InvalidParameter(f"stroke_color must be RGBA, got {stroke}")

        out = buffer.pixels.copy()
        tint = np.array(stroke[:3], dtype=np.float64)

        for box in boxes:
            region = self._clip_box(box, buffer.width, buffer.height)
            if region is None:
                continue
            x1, y1, x2, y2 = region

            if alpha > 0:
                patch = out[y1:y2, x1:x2, :3].astype(np.float64)
                out[y1:y2, x1:x2, :3] = np.rint(patch * (1.0 - alpha) + tint * alpha).astype(np.uint8)

            if thickness > 0:
                # edges lying off the raster stay off it; cv2 needs C-int corners
                cv2.rectangle(
                    out,
                    self._stroke_corner(box.top_left, buffer.width, buffer.height, thickness),
                    self._stroke_corner(box.bottom_right, buffer.width, buffer.height, thickness),
                    stroke,
                    thickness,
                )

        return PixelBuffer(out)
