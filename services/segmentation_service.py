# services/segmentation_service.py
from __future__ import annotations
import asyncio
import os
import logging

from dotenv import load_dotenv

from models.errors import EditorError, InferenceError
from models.pixel_buffer import PixelBuffer
from models.segmentation_mask import SegmentationMask
from repositories.segmentation_repository import SegmentationRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class SegmentationService:
    """
    Person segmentation provider.

    • segment() is a coroutine; inference runs in a worker thread.
    • Model failures surface as ModelUnavailable / InferenceError.
    """

    def __init__(self, repo: SegmentationRepository | None = None) -> None:
        self.repo = repo or SegmentationRepository()
        self.THRESHOLD = float(os.getenv("SEGMENTATION_THRESHOLD", "0.7"))
        self.CLEAN_MASK = os.getenv("SEGMENTATION_CLEAN_MASK", "1").lower() in ("1", "true", "yes")

    def mask_person(self, buffer: PixelBuffer, thr: float | None = None) -> SegmentationMask:
        """Blocking variant; returns a mask aligned with `buffer`."""
        thr = self.THRESHOLD if thr is None else thr
        try:
            mask = self.repo.retrieve_mask(buffer.rgb, thr, clean=self.CLEAN_MASK)
        except EditorError:
            raise
        except Exception as err:
            raise InferenceError(f"Segmentation failed: {err}") from err
        logger.info(f"Segmented {buffer.width}x{buffer.height}, subject coverage {mask.coverage:.1%}")
        return mask

    async def segment(self, buffer: PixelBuffer, thr: float | None = None) -> SegmentationMask:
        return await asyncio.to_thread(self.mask_person, buffer, thr)
