import asyncio

import numpy as np
import pytest

from models.pixel_buffer import PixelBuffer
from models.segmentation_mask import SegmentationMask


def solid(width, height, rgba):
    return PixelBuffer.filled(width, height, rgba)


def random_buffer(width=7, height=5, seed=0):
    rng = np.random.default_rng(seed)
    return PixelBuffer(rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))


class FakeSegmentationProvider:
    """Returns a fixed mask value for every pixel, or raises `error`."""

    def __init__(self, value=1, error=None, mask=None):
        self.value = value
        self.error = error
        self.mask = mask
        self.calls = 0
        self.started = None
        self.release = None

    async def segment(self, buffer):
        self.calls += 1
        if self.started is not None:
            self.started.set()
            await self.release.wait()
        if self.error is not None:
            raise self.error
        if self.mask is not None:
            return self.mask
        return SegmentationMask(np.full((buffer.height, buffer.width), self.value, dtype=np.uint8))


class FakeFaceDetector:
    def __init__(self, boxes=(), error=None):
        self.boxes = list(boxes)
        self.error = error
        self.calls = 0

    async def detect(self, buffer):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.boxes)


@pytest.fixture
def noisy():
    return random_buffer()


@pytest.fixture
def segmentation_provider():
    return FakeSegmentationProvider()


@pytest.fixture
def face_detector():
    return FakeFaceDetector()
