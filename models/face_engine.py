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


class FaceEngine:
    """
    Wrapper around MediaPipe Face Detection (BlazeFace).

    Loads the model on first use and returns raw MediaPipe detections.
    """

    def __init__(self, model_selection: int | None = None, min_confidence: float | None = None):
        """
        Args:
            model_selection (int, optional): 0 = short-range (faces within ~2 m), 1 = full-range.
                                             Defaults to env var.
            min_confidence (float, optional): Minimum detection score. Defaults to env var.
        """
        if model_selection is None:
            model_selection = int(os.getenv("FACE_DETECTION_MODEL_SELECTION", "0"))
        if min_confidence is None:
            min_confidence = float(os.getenv("FACE_DETECTION_MIN_CONFIDENCE", "0.5"))
        self.model_selection = model_selection
        self.min_confidence = min_confidence
        self.app = None
        self._lock = threading.Lock()

    def _init_engine(self) -> None:
        try:
            import mediapipe as mp
            self.app = mp.solutions.face_detection.FaceDetection(
                model_selection=self.model_selection,
                min_detection_confidence=self.min_confidence,
            )
        except Exception as err:
            raise ModelUnavailable(f"Face detection model failed to load: {err}") from err
        logger.info(
            f"BlazeFace loaded (model_selection={self.model_selection}, "
            f"min_confidence={self.min_confidence})"
        )

    @property
    def is_loaded(self) -> bool:
        return self.app is not None

    def detect(self, rgb: np.ndarray) -> list:
        """rgb: (H, W, 3) uint8 RGB → list of raw MediaPipe detections (may be empty)."""
        with self._lock:
            if self.app is None:
                self._init_engine()
            results = self.app.process(rgb)
        return list(results.detections or [])
