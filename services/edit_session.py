from __future__ import annotations
from contextlib import contextmanager
from typing import List, Sequence
import os
import threading
import logging

from dotenv import load_dotenv

from models.adjustment_params import AdjustmentParams
from models.detection_box import DetectionBox
from models.edit_history import EditHistory
from models.errors import EditorError, InferenceError, ModelUnavailable, NoImageLoaded, SessionBusy
from models.filter_kind import FilterKind
from models.pixel_buffer import PixelBuffer
from models.segmentation_mask import SegmentationMask
from services.color_service import ColorService
from services.mask_compositing_service import MaskCompositingService
from services.neighborhood_service import NeighborhoodService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class EditSession:
    """
    One image being edited: original, current, slider state and undo history.

    *   Slider changes preview against `original` and never touch history.
    *   Filters, enhancements and AI operations work on `current` and commit.
    *   While an inference call is in flight every mutating request is
        rejected with SessionBusy.
    *   Providers are injected; anything with `async segment(buffer)` /
        `async detect(buffer)` will do.
    """

    def __init__(
        self,
        segmentation_provider=None,
        face_detector=None,
        *,
        color_service: ColorService | None = None,
        neighborhood_service: NeighborhoodService | None = None,
        mask_compositing_service: MaskCompositingService | None = None,
        history_capacity: int | None = None,
    ):
        self.segmentation_provider = segmentation_provider
        self.face_detector = face_detector
        self.color_service = color_service or ColorService()
        self.neighborhood_service = neighborhood_service or NeighborhoodService()
        self.mask_compositing_service = mask_compositing_service or MaskCompositingService()

        self.BLUR_RADIUS = int(os.getenv("BLUR_RADIUS", "2"))

        self.original: PixelBuffer | None = None
        self.current: PixelBuffer | None = None
        self.params = AdjustmentParams.neutral()
        self.history = EditHistory(history_capacity)
        self.active_filter: FilterKind | None = None
        self.is_processing = False
        self._busy_lock = threading.Lock()

    # ─── Guards ────────────────────────────────────────────────────
    @property
    def has_image(self) -> bool:
        return self.original is not None

    def _ensure_idle(self) -> None:
        if self.is_processing:
            raise SessionBusy("Another operation is still processing")

    def _ensure_ready(self) -> None:
        self._ensure_idle()
        if not self.has_image:
            raise NoImageLoaded("Load an image first")

    @contextmanager
    def _processing(self):
        # check-and-set under the lock; request threads may share a session
        with self._busy_lock:
            self._ensure_ready()
            self.is_processing = True
        try:
            yield
        finally:
            self.is_processing = False

    async def _infer(self, label: str, call):
        """Run a provider on a copy of `current`; failures leave the session untouched."""
        try:
            return await call(self.current.clone())
        except EditorError as err:
            logger.error(f"{label} failed: {err}")
            raise
        except Exception as err:
            logger.error(f"{label} failed: {err}")
            raise InferenceError(f"{label} failed: {err}") from err

    def _commit(self, result: PixelBuffer) -> PixelBuffer:
        self.current = result
        self.history.commit(result)
        return self.current

    # ─── Image lifecycle ───────────────────────────────────────────
    def load_image(self, buffer: PixelBuffer) -> PixelBuffer:
        self._ensure_idle()
        self.original = buffer.clone()
        self.current = buffer.clone()
        self.params = AdjustmentParams.neutral()
        self.active_filter = None
        self.history.seed(self.current)
        logger.info(f"Loaded {buffer.width}x{buffer.height} image")
        return self.current

    def reset(self) -> PixelBuffer:
        self._ensure_ready()
        self.current = self.original.clone()
        self.params = AdjustmentParams.neutral()
        self.active_filter = None
        self.history.seed(self.current)
        logger.info("Session reset to original")
        return self.current

    def export(self) -> PixelBuffer:
        """Independent copy of the current state, for encoding."""
        if not self.has_image:
            raise NoImageLoaded("Load an image first")
        return self.current.clone()

    # ─── Sliders ───────────────────────────────────────────────────
    def update_adjustments(self, params: AdjustmentParams) -> PixelBuffer:
        """Preview only: recomposes from `original`, history is left alone."""
        self._ensure_ready()
        self.current = self.color_service.compose_adjustments(self.original, params)
        self.params = params
        return self.current

    def commit_adjustments(self) -> PixelBuffer:
        self._ensure_ready()
        logger.info(f"Committed adjustments {self.params}")
        return self._commit(self.current)

    # ─── Discrete edits ────────────────────────────────────────────
    def apply_filter(self, kind: FilterKind | str, radius: int | None = None) -> PixelBuffer:
        self._ensure_ready()
        kind = kind if isinstance(kind, FilterKind) else FilterKind.parse(kind)

        if not kind.is_neighborhood:
            result = self.color_service.apply_filter(self.current, kind)
        elif kind is FilterKind.BLUR:
            result = self.neighborhood_service.box_blur(
                self.current, self.BLUR_RADIUS if radius is None else radius
            )
        else:
            result = self.neighborhood_service.sharpen(self.current)

        self.active_filter = kind
        logger.info(f"Applied {kind.value} filter")
        return self._commit(result)

    def enhance(self) -> PixelBuffer:
        self._ensure_ready()
        return self._commit(self.color_service.enhance(self.current))

    def auto_enhance(self) -> PixelBuffer:
        self._ensure_ready()
        return self._commit(self.color_service.auto_enhance(self.current))

    def run_segmentation(self, mask: SegmentationMask, background: Sequence[int] | None = None) -> PixelBuffer:
        self._ensure_ready()
        result = self.mask_compositing_service.apply_segmentation(self.current, mask, background)
        return self._commit(result)

    def run_detection(self, boxes: Sequence[DetectionBox]) -> PixelBuffer:
        self._ensure_ready()
        result = self.mask_compositing_service.overlay_boxes(self.current, boxes)
        return self._commit(result)

    # ─── AI operations ─────────────────────────────────────────────
    async def remove_background(self, background: Sequence[int] | None = None) -> PixelBuffer:
        if self.segmentation_provider is None:
            raise ModelUnavailable("No segmentation provider configured")
        with self._processing():
            mask = await self._infer("Background removal", self.segmentation_provider.segment)
        return self.run_segmentation(mask, background)

    async def _detect_boxes(self, buffer: PixelBuffer) -> List[DetectionBox]:
        return list(await self.face_detector.detect(buffer))

    async def detect_faces(self) -> List[DetectionBox]:
        """Overlays and commits only when at least one face was found."""
        if self.face_detector is None:
            raise ModelUnavailable("No face detector configured")
        with self._processing():
            boxes = await self._infer("Face detection", self._detect_boxes)
        if boxes:
            self.run_detection(boxes)
        else:
            logger.info("No faces detected")
        return boxes

    # ─── History navigation ────────────────────────────────────────
    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def undo(self) -> PixelBuffer:
        self._ensure_ready()
        self.current = self.history.undo().clone()
        return self.current

    def redo(self) -> PixelBuffer:
        self._ensure_ready()
        self.current = self.history.redo().clone()
        return self.current
