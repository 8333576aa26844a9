"""Drag history: bounded ring buffer of committed moves, single-step undo."""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional

from ..layout.abstraction import Position

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 50


class OperationKind(Enum):
    MOVE = "move"
    GROUP_MOVE = "group-move"


@dataclass
class HistoryEntry:
    """One committed panel move."""
    panel_id: str
    from_position: Position
    to_position: Position
    timestamp: float
    operation: OperationKind = OperationKind.MOVE


class DragHistory:
    """
    Append-only history of committed drags.

    Holds at most max_entries entries; the oldest entry is dropped when a
    new one arrives at capacity. Entries leave only through pop().
    """

    def __init__(self, max_entries: int = MAX_HISTORY_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: Deque[HistoryEntry] = deque(maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, entry: HistoryEntry):
        self._entries.append(entry)

    def pop(self) -> Optional[HistoryEntry]:
        """Remove and return the newest entry, None when empty."""
        if not self._entries:
            return None
        return self._entries.pop()

    def peek(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    @property
    def entries(self) -> List[HistoryEntry]:
        """Oldest first."""
        return list(self._entries)

    def clear(self):
        self._entries.clear()
