"""
Clock-driven rate limiting for previews and store commits.

Nothing here runs on a timer: callers drive the gates by submitting work
and by calling poll(). The clock is injectable so tests can step time.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..layout.abstraction import Position
from .store import CommitResult, LayoutStore

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
CommitCallback = Callable[[Dict[str, Position], CommitResult], None]


class Throttle:
    """Lets at most one event through per interval."""

    def __init__(self, interval_ms: float, clock: Clock = time.monotonic):
        self.interval = interval_ms / 1000.0
        self.clock = clock
        self._last: Optional[float] = None

    def due(self) -> bool:
        if self._last is None:
            return True
        return self.clock() - self._last >= self.interval

    def ready(self) -> bool:
        """True (and restart the interval) if an event may pass now."""
        if not self.due():
            return False
        self._last = self.clock()
        return True

    def mark(self):
        self._last = self.clock()

    def reset(self):
        self._last = None


@dataclass
class _PendingCommit:
    updates: Dict[str, Position]
    on_commit: Optional[CommitCallback]


class CommitThrottle:
    """
    Coalesces position commits into the layout store.

    A batch submitted while the previous commit is younger than the
    interval is deferred. Deferred batches are written, in submission
    order, by the next poll() after the interval has passed or by an
    explicit flush().
    """

    def __init__(self, store: LayoutStore, interval_ms: float = 32.0,
                 clock: Clock = time.monotonic):
        self.store = store
        self._gate = Throttle(interval_ms, clock)
        self._pending: List[_PendingCommit] = []

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def submit(
        self,
        updates: Dict[str, Position],
        on_commit: Optional[CommitCallback] = None,
    ) -> Optional[CommitResult]:
        """
        Queue a batch of position updates.

        Returns:
            CommitResult when the batch was written right away, None when
            it was deferred
        """
        self._pending.append(_PendingCommit(dict(updates), on_commit))
        if self._gate.due():
            return self.flush()
        logger.debug("Commit deferred: %d batches pending", len(self._pending))
        return None

    def poll(self) -> Optional[CommitResult]:
        """Write deferred batches if the interval has passed."""
        if self._pending and self._gate.due():
            return self.flush()
        return None

    def flush(self) -> Optional[CommitResult]:
        """Write every deferred batch now. Returns the combined result."""
        if not self._pending:
            return None

        batches, self._pending = self._pending, []
        combined: Optional[CommitResult] = None
        for batch in batches:
            result = self.store.commit_positions(batch.updates)
            if batch.on_commit is not None:
                batch.on_commit(batch.updates, result)
            combined = result if combined is None else combined.merge(result)
        self._gate.mark()
        return combined

    def discard(self):
        """Drop deferred batches without writing them."""
        if self._pending:
            logger.debug("Discarding %d pending commits", len(self._pending))
        self._pending = []
