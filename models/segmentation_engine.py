# models/segmentation_engine.py
"""
Wrapper around MediaPipe Selfie Segmentation.

• Loads the TFLite graph lazily, on the first predict() call.
• Exposes .predict(rgb)  →  float mask (H, W) in [0, 1].
"""
from __future__ import annotations
import os
import threading
import logging

import numpy as np
from dotenv import load_dotenv

from models.errors import ModelUnavailable

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class SegmentationEngine:

    def __init__(self, model_selection: int | None = None):
        if model_selection is None:
            model_selection = int(os.getenv("SEGMENTATION_MODEL_SELECTION", "1"))
        self.model_selection = model_selection
        self._mp_seg = None
        self._lock = threading.Lock()

    # --------------------------------------------------
    def _init_runtime(self) -> None:
        try:
            import mediapipe as mp
            # model_selection=1  → landscape / selfie quality
            self._mp_seg = mp.solutions.selfie_segmentation.SelfieSegmentation(
                model_selection=self.model_selection
            )
        except Exception as err:
            raise ModelUnavailable(f"Selfie segmentation model failed to load: {err}") from err
        logger.info(f"Selfie segmentation loaded (model_selection={self.model_selection})")

    @property
    def is_loaded(self) -> bool:
        return self._mp_seg is not None

    # --------------------------------------------------
    def predict(self, rgb: np.ndarray) -> np.ndarray:
        """
        Args
        ----
        rgb : np.ndarray  (H, W, 3)  uint8  RGB order

        Returns
        -------
        mask : np.ndarray  (H, W)  float32  [0, 1]
        """
        # MediaPipe graphs are not re-entrant; inference runs in worker threads.
        with self._lock:
            if self._mp_seg is None:
                self._init_runtime()
            results = self._mp_seg.process(rgb)
        return results.segmentation_mask.astype("float32")
