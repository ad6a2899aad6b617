# repositories/segmentation_repository.py
from __future__ import annotations
import cv2
import numpy as np

from models.segmentation_engine import SegmentationEngine
from models.segmentation_mask import SegmentationMask


class SegmentationRepository:
    """
    One‑image inference + mask cleanup.

    • Calls MediaPipe engine.
    • Post‑processes raw mask to close holes and drop fringe noise.
    """

    def __init__(self, engine: SegmentationEngine | None = None) -> None:
        self.engine = engine or SegmentationEngine()

    # ---------- private helpers ----------
    @staticmethod
    def _clean_mask(mask_u8: np.ndarray) -> np.ndarray:
        """
        1) Close small holes
        2) Erode 1 px fringe
        3) Smooth the edge, then re-binarise
        """
        kernel = np.ones((5, 5), np.uint8)

        closed = cv2.morphologyEx(mask_u8, cv2.MORPH_CLOSE, kernel, iterations=2)
        eroded = cv2.erode(closed, np.ones((2, 2), np.uint8), iterations=1)

        blur = cv2.GaussianBlur(eroded, (0, 0), sigmaX=3, sigmaY=3)
        return (blur > 127).astype("uint8")

    # ---------- public API ----------
    def retrieve_mask(self, rgb: np.ndarray, thr: float = 0.7, clean: bool = True) -> SegmentationMask:
        """
        Returns a binary mask aligned with *rgb* (1 = person).
        thr : soft‑mask threshold in [0,1]
        """
        soft = self.engine.predict(rgb)               # float32 0‑1
        raw = (soft > thr).astype("uint8")
        if clean:
            raw = self._clean_mask(raw * 255)
        return SegmentationMask(raw)
