from __future__ import annotations
from typing import List
import asyncio
import logging

from models.detection_box import DetectionBox
from models.errors import EditorError, InferenceError
from models.pixel_buffer import PixelBuffer
from repositories.face_engine_repository import FaceEngineRepository

logger = logging.getLogger(__name__)


class FaceDetectionService:
    """
    Face detector provider on top of the raw face engine repository.
    *   No I/O here, works only with PixelBuffer objects.
    *   detect() is a coroutine; inference runs in a worker thread.
    """

    def __init__(self, repository: FaceEngineRepository | None = None):
        self.face_engine_repository = repository or FaceEngineRepository()

    def detect_faces(self, buffer: PixelBuffer) -> List[DetectionBox]:
        try:
            boxes = self.face_engine_repository.infer_faces(buffer.rgb)
        except EditorError:
            raise
        except Exception as err:
            raise InferenceError(f"Face detection failed: {err}") from err
        logger.info(f"Detected {len(boxes)} face(s) in {buffer.width}x{buffer.height}")
        return boxes

    async def detect(self, buffer: PixelBuffer) -> List[DetectionBox]:
        return await asyncio.to_thread(self.detect_faces, buffer)
