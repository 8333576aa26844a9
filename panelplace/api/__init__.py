"""
PanelPlace Session API

Stateful side of the layout engine, built around a per-workspace context.

Modules:
- store: Authoritative panel state with validated commits
- drag / resize: Pointer-driven session controllers
- group_resize: Proportional, group and queued multi-panel resizes
- history, throttle: Undo history and commit rate limiting
- actions: Atomic operations and keyboard shortcuts
"""

from .store import CommitResult, LayoutStore
from .history import DragHistory, HistoryEntry, OperationKind
from .throttle import CommitThrottle, Throttle
from .preview import GhostProjection, project_drag_ghost
from .drag import DragController, DragPreview, DragSession, DragState
from .resize import ResizeController, ResizePreview, ResizeSession, ResizeState
from .group_resize import (
    DistributionMode,
    GeometryUpdate,
    GroupResizer,
    ResizeConflict,
    ResizeRequest,
)
from .workspace import Workspace
from .actions import ActionResult, LayoutActions

__all__ = [
    "CommitResult",
    "LayoutStore",
    "DragHistory",
    "HistoryEntry",
    "OperationKind",
    "CommitThrottle",
    "Throttle",
    "GhostProjection",
    "project_drag_ghost",
    "DragController",
    "DragPreview",
    "DragSession",
    "DragState",
    "ResizeController",
    "ResizePreview",
    "ResizeSession",
    "ResizeState",
    "DistributionMode",
    "GeometryUpdate",
    "GroupResizer",
    "ResizeConflict",
    "ResizeRequest",
    "Workspace",
    "ActionResult",
    "LayoutActions",
]
