"""
Resize Session Controller

    IDLE -> RESIZING -> COMMITTING | CANCELLED -> IDLE

Each move() runs the size constraint pipeline and produces a preview. The
preview is always produced; problems travel with it as violations
(collision, container overflow, broken limits) and warnings (adjustments).
Only end() writes to the store, which validates the commit again.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from ..errors import SessionStateError, Violation, ViolationKind
from ..layout.abstraction import Modifiers, Position, Rect, ResizeDirection, Size
from ..placement.constraints import check_size, enforce_constraints
from .store import CommitResult

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


class ResizeState(Enum):
    IDLE = "idle"
    RESIZING = "resizing"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


@dataclass
class ResizePreview:
    position: Position
    size: Size
    violations: List[Violation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations


@dataclass
class ResizeSession:
    panel_id: str
    direction: ResizeDirection
    start_position: Position
    start_size: Size
    pointer_start: Position
    preview: ResizePreview


class ResizeController:
    """Drives resize sessions for one workspace."""

    def __init__(self, workspace: "Workspace"):
        self.workspace = workspace
        self.store = workspace.store
        self.state = ResizeState.IDLE
        self.session: Optional[ResizeSession] = None

    @property
    def is_active(self) -> bool:
        return self.session is not None

    @property
    def preview(self) -> Optional[ResizePreview]:
        return self.session.preview if self.session else None

    def _require_session(self, operation: str) -> ResizeSession:
        if self.session is None:
            raise SessionStateError(f"Cannot {operation}: no resize in progress")
        return self.session

    def start(
        self,
        panel_id: str,
        direction: ResizeDirection,
        pointer_pos: Optional[Position] = None,
    ) -> ResizeSession:
        """
        Begin resizing a panel from one of its eight handles.

        A drag or resize already in progress is committed first.

        Raises:
            PanelNotFoundError: unknown panel id
        """
        if self.session is not None:
            logger.debug("Resize start while resizing %s: committing previous session",
                         self.session.panel_id)
            self.end()
        if self.workspace.drag.is_active:
            logger.debug("Resize start while dragging: committing the drag")
            self.workspace.drag.end()
        self.workspace.commit_throttle.flush()

        if isinstance(direction, str):
            direction = ResizeDirection(direction)
        panel = self.store.get_panel(panel_id)
        self.store.bring_to_front(panel_id)
        self.store.set_interaction_flags([panel_id], resizing=True)

        position = Position(panel.position.x, panel.position.y)
        size = Size(panel.size.width, panel.size.height)
        self.session = ResizeSession(
            panel_id=panel_id,
            direction=direction,
            start_position=position,
            start_size=size,
            pointer_start=pointer_pos or Position(),
            preview=ResizePreview(position=position, size=size),
        )
        self.state = ResizeState.RESIZING
        return self.session

    def move(self, pointer_delta: Position, modifiers: Optional[Modifiers] = None) -> ResizePreview:
        """
        Update the preview from the pointer delta since start.

        Corner handles change both dimensions. North and west handles keep
        the opposite edge fixed. Shift locks the aspect ratio.

        Raises:
            SessionStateError: no resize in progress
        """
        session = self._require_session("move")
        modifiers = modifiers or Modifiers()
        handle = session.direction.value
        start_pos = session.start_position
        start_size = session.start_size

        width = start_size.width
        height = start_size.height
        if "e" in handle:
            width += pointer_delta.x
        if "w" in handle:
            width -= pointer_delta.x
        if "s" in handle:
            height += pointer_delta.y
        if "n" in handle:
            height -= pointer_delta.y

        panel = self.store.get_panel(session.panel_id)
        constrained = enforce_constraints(
            Size(width, height),
            panel.constraints,
            original_size=start_size,
            aspect_locked=modifiers.shift,
        )
        size = constrained.size

        x = start_pos.x
        y = start_pos.y
        if "w" in handle:
            x = start_pos.x + start_size.width - size.width
        if "n" in handle:
            y = start_pos.y + start_size.height - size.height
        position = Position(x, y)

        violations = []
        for problem in check_size(size, panel.constraints):
            violations.append(Violation(ViolationKind.CONSTRAINT_VIOLATION, problem))
        rect = Rect.from_position_size(position, size)
        if not self.store.container.contains(rect):
            violations.append(Violation(ViolationKind.BOUNDS_EXCEEDED,
                                        "Panel extends beyond the workspace"))
        if panel.visible:
            blockers = self.store.detector.find_collisions(
                rect, exclude_ids=[session.panel_id]).panel_ids
            if blockers:
                violations.append(Violation(ViolationKind.COLLISION,
                                            f"Overlaps {', '.join(blockers)}", blockers))

        session.preview = ResizePreview(
            position=position,
            size=size,
            violations=violations,
            warnings=list(constrained.warnings),
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Resize %s %s: %gx%g at (%g, %g) violations=%d",
                         session.panel_id, handle, size.width, size.height,
                         x, y, len(violations))
        return session.preview

    def end(self) -> CommitResult:
        """
        Commit the previewed geometry.

        Raises:
            SessionStateError: no resize in progress
        """
        session = self._require_session("end")
        self.state = ResizeState.COMMITTING
        self.session = None
        self.store.set_interaction_flags([session.panel_id], resizing=False)

        preview = session.preview
        result = self.store.commit_geometry(session.panel_id, preview.position, preview.size)
        self.state = ResizeState.IDLE
        return result

    def cancel(self) -> bool:
        """Discard the preview."""
        if self.session is None:
            return False
        self.state = ResizeState.CANCELLED
        self.store.set_interaction_flags([self.session.panel_id], resizing=False)
        self.session = None
        self.state = ResizeState.IDLE
        return True
