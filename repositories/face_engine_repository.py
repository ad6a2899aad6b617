from __future__ import annotations
from typing import List
import numpy as np

from models.face_engine import FaceEngine
from models.detection_box import DetectionBox


class FaceEngineRepository:
    """
    Thin wrapper around FaceEngine that turns raw detections into pixel-space boxes.
    """

    def __init__(self, engine: FaceEngine | None = None):
        self.engine = engine or FaceEngine()

    def infer_faces(self, pixels_rgb: np.ndarray) -> List[DetectionBox]:
        h, w = pixels_rgb.shape[:2]
        return [DetectionBox.from_mediapipe(d, w, h) for d in self.engine.detect(pixels_rgb)]
