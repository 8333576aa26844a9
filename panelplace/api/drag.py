"""
Drag Session Controller

Turns pointer events into panel moves:

    IDLE -> DRAGGING -> COMMITTING | CANCELLED -> IDLE

While dragging, positions are optimistic: they live in the session only and
the store is not touched. end() submits one batched commit through the
commit throttle and records a history entry per panel the store accepted.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from ..errors import SessionStateError
from ..layout.abstraction import Modifiers, Position, Rect
from ..layout.collision import check_collision
from ..placement.bounds import constrain_position
from .history import HistoryEntry, OperationKind
from .preview import project_drag_ghost
from .store import CommitResult
from .throttle import Throttle

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


@dataclass
class DragSession:
    """Transient state of one drag."""
    panel_id: str
    panel_ids: List[str]  # primary first, then companions in creation order
    start_positions: Dict[str, Position]
    delta: Position = field(default_factory=Position)
    modifiers: Modifiers = field(default_factory=Modifiers)
    valid: bool = True
    positions: Dict[str, Position] = field(default_factory=dict)  # optimistic
    skipped: List[str] = field(default_factory=list)  # companions held back last frame

    @property
    def is_group(self) -> bool:
        return len(self.panel_ids) > 1


@dataclass
class DragPreview:
    """What the view should draw for the current frame."""
    positions: Dict[str, Position]
    valid: bool = True
    collisions: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    snapped: bool = False


PreviewListener = Callable[[DragPreview], None]


class DragController:
    """Drives drag sessions for one workspace."""

    def __init__(self, workspace: "Workspace"):
        self.workspace = workspace
        self.store = workspace.store
        self.history = workspace.history
        self.commit_throttle = workspace.commit_throttle
        self.state = DragState.IDLE
        self.session: Optional[DragSession] = None
        self.preview: Optional[DragPreview] = None
        self._debounce = Throttle(workspace.config.preview_debounce_ms, workspace.clock)
        self._listeners: List[PreviewListener] = []
        self._preview_pending = False

    @property
    def is_active(self) -> bool:
        return self.session is not None

    def add_preview_listener(self, listener: PreviewListener) -> Callable[[], None]:
        """Register a debounced preview callback. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _require_session(self, operation: str) -> DragSession:
        if self.session is None:
            raise SessionStateError(f"Cannot {operation}: no drag in progress")
        return self.session

    def start(self, panel_id: str, modifiers: Optional[Modifiers] = None) -> DragSession:
        """
        Begin dragging a panel (and every other selected panel with it).

        A drag or resize already in progress is committed first.

        Raises:
            PanelNotFoundError: unknown panel id
        """
        if self.session is not None:
            logger.debug("Drag start while dragging %s: committing previous session",
                         self.session.panel_id)
            self.end()
        if self.workspace.resize.is_active:
            logger.debug("Drag start while resizing: committing the resize")
            self.workspace.resize.end()
        self.commit_throttle.flush()

        panel = self.store.get_panel(panel_id)
        if not panel.selected:
            self.store.select_panel(panel_id)
        self.store.bring_to_front(panel_id)

        companions = [pid for pid in self.store.selected_ids if pid != panel_id]
        panel_ids = [panel_id] + companions
        starts = {}
        for pid in panel_ids:
            current = self.store.get_panel(pid)
            starts[pid] = Position(current.position.x, current.position.y)

        self.store.set_interaction_flags(panel_ids, dragging=True)
        self.session = DragSession(
            panel_id=panel_id,
            panel_ids=panel_ids,
            start_positions=starts,
            modifiers=modifiers or Modifiers(),
            positions=dict(starts),
        )
        self.preview = DragPreview(positions=dict(starts))
        self._debounce.reset()
        self._preview_pending = False
        self.state = DragState.DRAGGING
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Drag start: %s with %d companions", panel_id, len(companions))
        return self.session

    def move(self, delta: Position, modifiers: Optional[Modifiers] = None) -> DragPreview:
        """
        Update the drag with the cumulative pointer delta since start.

        The primary panel is snapped (unless alt is held) and clamped; if it
        would collide with a panel outside the drag, the frame is invalid and
        the last valid positions are kept. Companions follow with the same
        effective delta; a companion that would collide, with an outside
        panel or with a group member already placed, stays put for this frame
        only. If a held companion overlaps a member that moved, the frame is
        invalid.

        Raises:
            SessionStateError: no drag in progress
        """
        session = self._require_session("move")
        if modifiers is not None:
            session.modifiers = modifiers
        session.delta = Position(delta.x, delta.y)

        config = self.workspace.config
        container = self.store.container
        detector = self.store.detector
        moving = session.panel_ids

        primary = self.store.get_panel(session.panel_id)
        start = session.start_positions[session.panel_id]
        ghost = project_drag_ghost(
            start, delta, primary.size, container,
            grid_size=config.grid_size,
            snap_distance=config.snap_distance,
            snap_enabled=not session.modifiers.alt,
        )

        collisions = []
        if primary.visible:
            rect = Rect.from_position_size(ghost.position, primary.size)
            collisions = detector.find_collisions(rect, exclude_ids=moving).panel_ids

        if collisions:
            session.valid = False
            self.preview = DragPreview(
                positions=dict(session.positions),
                valid=False,
                collisions=collisions,
                skipped=list(session.skipped),
                snapped=ghost.snapped,
            )
            self._publish()
            return self.preview

        dx = ghost.position.x - start.x
        dy = ghost.position.y - start.y
        positions = {session.panel_id: ghost.position}
        placed = [session.panel_id] if primary.visible else []
        skipped = []
        for pid in moving[1:]:
            companion = self.store.get_panel(pid)
            origin = session.start_positions[pid]
            target = constrain_position(origin.offset(dx, dy), companion.size, container)
            rect = Rect.from_position_size(target, companion.size)
            if companion.visible and (
                detector.find_collisions(rect, exclude_ids=moving).colliding
                or self._hits_placed(rect, positions, placed)
            ):
                skipped.append(pid)
                positions[pid] = session.positions[pid]
                continue
            positions[pid] = target
            if companion.visible:
                placed.append(pid)

        # A held companion may now sit under a panel that did move.
        for pid in skipped:
            held = self.store.get_panel(pid)
            if not held.visible:
                continue
            rect = Rect.from_position_size(positions[pid], held.size)
            collisions = self._hits_placed(rect, positions, placed)
            if collisions:
                session.valid = False
                self.preview = DragPreview(
                    positions=dict(session.positions),
                    valid=False,
                    collisions=collisions,
                    skipped=list(session.skipped),
                    snapped=ghost.snapped,
                )
                self._publish()
                return self.preview

        session.positions = positions
        session.skipped = skipped
        session.valid = True
        self.preview = DragPreview(
            positions=dict(positions),
            valid=True,
            skipped=skipped,
            snapped=ghost.snapped,
        )
        self._publish()
        return self.preview

    def _hits_placed(self, rect: Rect, positions: Dict[str, Position],
                     placed: List[str]) -> List[str]:
        """Ids of panels already placed this frame that overlap rect."""
        gap = self.store.detector.gap
        hits = []
        for pid in placed:
            other = Rect.from_position_size(positions[pid], self.store.get_panel(pid).size)
            if check_collision(rect, other, gap):
                hits.append(pid)
        return hits

    def _publish(self):
        if not self._listeners:
            return
        if self._debounce.ready():
            self._deliver()
        else:
            self._preview_pending = True

    def _deliver(self):
        self._preview_pending = False
        for listener in list(self._listeners):
            listener(self.preview)

    def poll_preview(self) -> bool:
        """Deliver a preview held back by the debounce once its interval has passed."""
        if self._preview_pending and self.preview is not None and self._debounce.ready():
            self._deliver()
            return True
        return False

    def end(self) -> Optional[CommitResult]:
        """
        Finish the drag and submit the moves.

        Returns:
            CommitResult if the commit was written immediately, None if it
            was deferred by the throttle or nothing moved

        Raises:
            SessionStateError: no drag in progress
        """
        session = self._require_session("end")
        if self._preview_pending:
            self._deliver()
        self.state = DragState.COMMITTING

        updates = {
            pid: pos for pid, pos in session.positions.items()
            if pos != session.start_positions[pid]
        }
        self.store.set_interaction_flags(session.panel_ids, dragging=False)
        self.session = None
        self.preview = None

        result = None
        if updates:
            result = self.commit_throttle.submit(updates, self._history_recorder(session))
        self.state = DragState.IDLE
        return result

    def _history_recorder(self, session: DragSession):
        operation = OperationKind.GROUP_MOVE if session.is_group else OperationKind.MOVE

        def record(updates: Dict[str, Position], result: CommitResult):
            now = self.workspace.clock()
            for pid in result.accepted:
                self.history.push(HistoryEntry(
                    panel_id=pid,
                    from_position=session.start_positions[pid],
                    to_position=updates[pid],
                    timestamp=now,
                    operation=operation,
                ))

        return record

    def cancel(self) -> bool:
        """Abandon the drag; nothing is committed and no history is written."""
        if self.session is None:
            return False
        self.state = DragState.CANCELLED
        self.store.set_interaction_flags(self.session.panel_ids, dragging=False)
        logger.debug("Drag cancelled: %s", self.session.panel_id)
        self.session = None
        self.preview = None
        self._preview_pending = False
        self.state = DragState.IDLE
        return True

    def undo(self) -> Optional[HistoryEntry]:
        """
        Move the most recently dragged panel back to where it came from.

        The entry is consumed even if the store rejects the move back.

        Returns:
            The undone entry, None if history was empty or the move back
            was rejected
        """
        self.commit_throttle.flush()
        entry = self.history.pop()
        if entry is None:
            logger.debug("Undo: history is empty")
            return None
        if entry.panel_id not in self.store:
            logger.debug("Undo: panel %s no longer exists", entry.panel_id)
            return None

        result = self.store.commit_positions({entry.panel_id: entry.from_position})
        if not result.success:
            return None
        return entry
