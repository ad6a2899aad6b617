from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class DetectionBox:
    top_left: Tuple[float, float]       # (x1, y1) in buffer pixels
    bottom_right: Tuple[float, float]   # (x2, y2) in buffer pixels
    score: float | None = None          # detection confidence, if the detector reports one

    @property
    def width(self) -> float:
        return self.bottom_right[0] - self.top_left[0]

    @property
    def height(self) -> float:
        return self.bottom_right[1] - self.top_left[1]

    @classmethod
    def from_mediapipe(cls, raw_detection, img_width: int, img_height: int) -> "DetectionBox":
        """MediaPipe reports a relative (xmin, ymin, width, height) box."""
        rel = raw_detection.location_data.relative_bounding_box
        x1 = rel.xmin * img_width
        y1 = rel.ymin * img_height
        return cls(
            top_left=(float(x1), float(y1)),
            bottom_right=(float(x1 + rel.width * img_width), float(y1 + rel.height * img_height)),
            score=float(raw_detection.score[0]) if raw_detection.score else None,
        )
