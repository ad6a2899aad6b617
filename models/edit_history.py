from __future__ import annotations
from typing import List, Tuple
import os
import logging

from dotenv import load_dotenv

from models.errors import InvalidParameter, NoOp
from models.pixel_buffer import PixelBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class EditHistory:
    """
    Bounded, linear undo/redo log of PixelBuffer snapshots.

    • Every stored entry is an independent, read-only copy.
    • commit() from a non-tip cursor discards the redo branch.
    • Past `capacity`, the oldest entry is evicted and the cursor follows it.
    """

    def __init__(self, capacity: int | None = None):
        if capacity is None:
            capacity = int(os.getenv("HISTORY_CAPACITY", "20"))
        if capacity < 1:
            raise InvalidParameter(f"History capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._entries: List[PixelBuffer] = []
        self._cursor = -1

    # ── State ─────────────────────────────────────────────────────
    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> Tuple[PixelBuffer, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def current(self) -> PixelBuffer:
        if self.is_empty:
            raise NoOp("History is empty")
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._cursor < len(self._entries) - 1

    # ── Transitions ───────────────────────────────────────────────
    def seed(self, buffer: PixelBuffer) -> None:
        self._entries = [buffer.clone().freeze()]
        self._cursor = 0

    def commit(self, buffer: PixelBuffer) -> None:
        dropped = len(self._entries) - (self._cursor + 1)
        del self._entries[self._cursor + 1:]
        if dropped:
            logger.debug(f"Discarded {dropped} redo state(s)")

        self._entries.append(buffer.clone().freeze())
        self._cursor = len(self._entries) - 1

        while len(self._entries) > self.capacity:
            self._entries.pop(0)
            self._cursor -= 1

    def undo(self) -> PixelBuffer:
        if not self.can_undo:
            raise NoOp("Nothing to undo")
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> PixelBuffer:
        if not self.can_redo:
            raise NoOp("Nothing to redo")
        self._cursor += 1
        return self._entries[self._cursor]

    def clear(self) -> None:
        """Back to the empty state (explicit reset only)."""
        self._entries = []
        self._cursor = -1
