from __future__ import annotations
from io import BytesIO
from pathlib import Path
from typing import Union
import os
import logging

import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv

from models.errors import InvalidParameter
from models.pixel_buffer import PixelBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class PixelBufferRepository:
    """
    Handles decoding / encoding of PixelBuffer entities.
    Everything leaves this class as RGBA uint8.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".png,.jpg,.jpeg,.bmp,.webp").split(",")
        }
        self.MAX_WIDTH = int(os.getenv("MAX_IMAGE_WIDTH", "800"))
        self.MAX_HEIGHT = int(os.getenv("MAX_IMAGE_HEIGHT", "600"))

    # ─── conversion helpers ───────────────────────────────────────────
    @staticmethod
    def _to_rgba(arr: np.ndarray) -> np.ndarray:
        """OpenCV decodes to BGR / BGRA / gray; normalise to RGBA."""
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)

    def fit_to_bounds(self, pixels: np.ndarray) -> np.ndarray:
        """Proportionally downscale so the raster fits MAX_WIDTH x MAX_HEIGHT."""
        h, w = pixels.shape[:2]
        if w <= self.MAX_WIDTH and h <= self.MAX_HEIGHT:
            return pixels
        ratio = min(self.MAX_WIDTH / w, self.MAX_HEIGHT / h)
        new_w, new_h = max(1, int(w * ratio)), max(1, int(h * ratio))
        logger.debug(f"Downscaling {w}x{h} → {new_w}x{new_h}")
        return cv2.resize(pixels, (new_w, new_h), interpolation=cv2.INTER_AREA)

    def _decoded(self, arr: np.ndarray | None, source: str) -> PixelBuffer:
        if arr is None:
            raise InvalidParameter(f"Image not decodable: {source}")
        if arr.dtype != np.uint8:
            # 16-bit PNG/TIFF → 8 bit per channel
            arr = (arr / 257).astype(np.uint8)
        return PixelBuffer(self.fit_to_bounds(self._to_rgba(arr)))

    # ─── ingestion ────────────────────────────────────────────────────
    def is_supported(self, path: Union[str, Path]) -> bool:
        return Path(path).suffix.lower() in self.VALID_EXTS

    def load(self, path: Union[str, Path]) -> PixelBuffer:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: {path}")
        if not self.is_supported(path):
            raise InvalidParameter(f"Unsupported image type: {path.suffix}")
        arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        return self._decoded(arr, str(path))

    def decode(self, data: bytes) -> PixelBuffer:
        """Decode an in-memory upload (PNG, JPEG, ...)."""
        if not data:
            raise InvalidParameter("Empty image upload")
        arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
        return self._decoded(arr, f"<{len(data)} bytes>")

    # ─── export ───────────────────────────────────────────────────────
    @staticmethod
    def to_pil(buffer: PixelBuffer) -> PILImage.Image:
        return PILImage.fromarray(buffer.pixels)

    def save(self, buffer: PixelBuffer, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_pil(buffer).save(path, format="PNG")
        return path

    def encode_png(self, buffer: PixelBuffer) -> bytes:
        out = BytesIO()
        self.to_pil(buffer).save(out, format="PNG")
        return out.getvalue()
