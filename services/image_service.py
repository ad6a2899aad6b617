from pathlib import Path
from typing import Union
import base64

from models.pixel_buffer import PixelBuffer
from repositories.pixel_buffer_repository import PixelBufferRepository


class ImageService:
    """Ingestion / export helpers.  No pixel math, no model imports."""
    def __init__(self):
        self.pixel_buffer_repository = PixelBufferRepository()

    def load(self, path: Union[str, Path]) -> PixelBuffer:
        """Load a single image from disk into a PixelBuffer (downscaled to the editor bounds)."""
        return self.pixel_buffer_repository.load(path)

    def decode(self, data: bytes) -> PixelBuffer:
        """Decode uploaded file bytes into a PixelBuffer."""
        return self.pixel_buffer_repository.decode(data)

    def is_supported(self, filename: str) -> bool:
        return self.pixel_buffer_repository.is_supported(filename)

    def save(self, buffer: PixelBuffer, path: Union[str, Path]) -> Path:
        """
        Business-level method to save the buffer as PNG.
        """
        return self.pixel_buffer_repository.save(buffer, path)

    def to_png_bytes(self, buffer: PixelBuffer) -> bytes:
        return self.pixel_buffer_repository.encode_png(buffer)

    def to_data_url(self, buffer: PixelBuffer) -> str:
        """PNG data URL for JSON responses."""
        encoded = base64.b64encode(self.to_png_bytes(buffer)).decode("utf-8")
        return f"data:image/png;base64,{encoded}"
