"""
Layout Store

Authoritative panel state for one workspace. Every geometry change goes
through a validated commit: a change that would leave the container, break
a size limit or overlap another visible panel is rejected and the store
keeps its last valid state.

Accessors hand out copies; callers never hold the store's own panels.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import LayoutConfig
from ..errors import DuplicatePanelError, PanelNotFoundError, PlacementError, ViolationKind
from ..layout.abstraction import Panel, Position, Rect, Size
from ..layout.collision import CollisionDetector, check_collision
from ..placement.bounds import (
    DEFAULT_SCAN_STEP,
    constrain_position,
    constrain_size,
    find_optimal_position,
)
from ..placement.constraints import check_size

logger = logging.getLogger(__name__)

Subscriber = Callable[["LayoutStore", List[str]], None]


@dataclass
class CommitResult:
    """Outcome of a batched commit."""
    accepted: List[str] = field(default_factory=list)
    rejected: Dict[str, ViolationKind] = field(default_factory=dict)
    previous: Dict[str, Position] = field(default_factory=dict)  # positions before the commit
    messages: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.rejected

    def merge(self, other: "CommitResult") -> "CommitResult":
        """Combine with a later commit; later outcomes win per id."""
        merged = CommitResult(
            accepted=[pid for pid in self.accepted if pid not in other.rejected],
            rejected={pid: kind for pid, kind in self.rejected.items()
                      if pid not in other.accepted},
            previous=dict(self.previous),
            messages=self.messages + other.messages,
        )
        for pid in other.accepted:
            if pid not in merged.accepted:
                merged.accepted.append(pid)
        merged.rejected.update(other.rejected)
        for pid, pos in other.previous.items():
            merged.previous.setdefault(pid, pos)
        return merged


class LayoutStore:
    """
    Owns the panels of a workspace.

    Panels are kept in creation order. A CollisionDetector mirrors the
    committed bounds so validation only tests nearby panels.
    """

    def __init__(self, container_size: Optional[Size] = None,
                 config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()
        size = container_size or self.config.container_size
        self.container = Rect(0.0, 0.0, size.width, size.height)
        self._panels: Dict[str, Panel] = {}
        self.detector = CollisionDetector(gap=self.config.min_gap,
                                          cell_size=self.config.index_cell_size)
        self._subscribers: List[Subscriber] = []

    @property
    def container_size(self) -> Size:
        return self.container.size

    def __len__(self) -> int:
        return len(self._panels)

    def __contains__(self, panel_id: str) -> bool:
        return panel_id in self._panels

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def panels(self) -> List[Panel]:
        """Copies of all panels in creation order."""
        return [p.copy() for p in self._panels.values()]

    def get_panel(self, panel_id: str) -> Panel:
        return self._require(panel_id).copy()

    @property
    def selected_ids(self) -> List[str]:
        return [pid for pid, p in self._panels.items() if p.selected]

    @property
    def max_z_index(self) -> int:
        return max((p.z_index for p in self._panels.values()), default=0)

    def _require(self, panel_id: str) -> Panel:
        panel = self._panels.get(panel_id)
        if panel is None:
            raise PanelNotFoundError(panel_id)
        return panel

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a change callback.

        The callback receives the store and the ids that changed. Returns a
        function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def clear_subscribers(self):
        self._subscribers.clear()

    def _notify(self, changed: List[str]):
        if not changed:
            return
        for callback in list(self._subscribers):
            callback(self, list(changed))

    # ------------------------------------------------------------------
    # Panel lifecycle
    # ------------------------------------------------------------------

    def add_panel(self, panel: Panel, resolve_overlap: bool = True) -> Panel:
        """
        Add a panel on top of the stack.

        Its size is clamped to its limits and the container, its position is
        clamped into the container and, when it lands on another panel,
        moved to the nearest free spot. If the nearest-spot search ends
        outside the container, the first free grid slot is used instead.

        Returns:
            Copy of the panel as stored

        Raises:
            DuplicatePanelError: a panel with the same id exists
            PlacementError: the panel cannot fit inside the container, or
                no free spot is left for it
        """
        if panel.id in self._panels:
            raise DuplicatePanelError(panel.id)

        stored = panel.copy()
        stored.dragging = False
        stored.resizing = False
        stored.size = constrain_size(stored.size, stored.constraints.min_size,
                                     stored.constraints.max_size, self.container)
        stored.position = constrain_position(stored.position, stored.size, self.container)
        if not self.container.contains(stored.get_bounds()):
            raise PlacementError(stored.id, "its minimum size exceeds the container")

        if resolve_overlap and stored.visible:
            if self.detector.find_collisions(stored.get_bounds()).colliding:
                stored.position = self._free_position(stored)

        stored.z_index = self.max_z_index + 1
        self._panels[stored.id] = stored
        self.detector.add(stored)
        logger.debug("Added %r", stored)
        self._notify([stored.id])
        return stored.copy()

    def _free_position(self, panel: Panel) -> Position:
        config = self.config
        position = self.detector.prevent_overlap(
            panel.position, panel.size,
            bounds=self.container,
            step=config.grid_size,
            max_rings=config.search_rings,
            stack_offset=config.stack_offset,
        )
        if self.detector.is_valid_position(position, panel.size, bounds=self.container):
            return position

        logger.debug("No nearby spot for %s inside the container, scanning for a free slot",
                     panel.id)
        position = find_optimal_position(
            panel.size,
            list(self._panels.values()),
            self.container,
            step=config.grid_size or DEFAULT_SCAN_STEP,
            gap=config.min_gap,
            stack_offset=config.stack_offset,
        )
        if not self.detector.is_valid_position(position, panel.size, bounds=self.container):
            raise PlacementError(panel.id, "no free space left in the container")
        return position

    def remove_panel(self, panel_id: str) -> Panel:
        panel = self._require(panel_id)
        del self._panels[panel_id]
        self.detector.remove(panel_id)
        logger.debug("Removed panel %s", panel_id)
        self._notify([panel_id])
        return panel

    def replace_all(self, panels: Sequence[Panel]):
        """
        Swap in a complete panel list (snapshot import).

        Panels are stored as given; Workspace.import_layout fits and
        validates them first.
        """
        replacement: Dict[str, Panel] = {}
        for panel in panels:
            if panel.id in replacement:
                raise DuplicatePanelError(panel.id)
            stored = panel.copy()
            stored.dragging = False
            stored.resizing = False
            replacement[stored.id] = stored

        changed = list(self._panels) + [pid for pid in replacement if pid not in self._panels]
        self._panels = replacement
        self.detector.rebuild(self._panels.values())
        logger.info("Loaded %d panels", len(self._panels))
        self._notify(changed)

    # ------------------------------------------------------------------
    # Selection and stacking
    # ------------------------------------------------------------------

    def select_panel(self, panel_id: str, multi: bool = False):
        """Select a panel; without multi, every other panel is deselected."""
        target = self._require(panel_id)
        changed = []
        if not multi:
            for pid, panel in self._panels.items():
                if panel.selected and pid != panel_id:
                    panel.selected = False
                    changed.append(pid)
        if not target.selected:
            target.selected = True
            changed.append(panel_id)
        self._notify(changed)

    def deselect_panel(self, panel_id: str):
        panel = self._require(panel_id)
        if panel.selected:
            panel.selected = False
            self._notify([panel_id])

    def clear_selection(self):
        changed = []
        for pid, panel in self._panels.items():
            if panel.selected:
                panel.selected = False
                changed.append(pid)
        self._notify(changed)

    def select_all(self):
        changed = []
        for pid, panel in self._panels.items():
            if not panel.selected:
                panel.selected = True
                changed.append(pid)
        self._notify(changed)

    def bring_to_front(self, panel_id: str) -> int:
        """Give a panel the highest z-index. Returns its new z-index."""
        panel = self._require(panel_id)
        others = [p.z_index for pid, p in self._panels.items() if pid != panel_id]
        if others and panel.z_index <= max(others):
            panel.z_index = max(others) + 1
            self._notify([panel_id])
        return panel.z_index

    def set_interaction_flags(
        self,
        panel_ids: Iterable[str],
        dragging: Optional[bool] = None,
        resizing: Optional[bool] = None,
    ):
        """Set transient drag/resize flags. Unknown ids are ignored."""
        changed = []
        for pid in panel_ids:
            panel = self._panels.get(pid)
            if panel is None:
                continue
            if dragging is not None and panel.dragging != dragging:
                panel.dragging = dragging
                changed.append(pid)
            if resizing is not None and panel.resizing != resizing:
                panel.resizing = resizing
                if pid not in changed:
                    changed.append(pid)
        self._notify(changed)

    def update_metadata(self, panel_id: str, **values):
        panel = self._require(panel_id)
        panel.metadata.update(values)
        self._notify([panel_id])

    def set_visible(self, panel_id: str, visible: bool) -> bool:
        """
        Show or hide a panel.

        Showing a panel that would overlap another visible panel is refused.
        """
        panel = self._require(panel_id)
        if panel.visible == visible:
            return True
        if visible and self.detector.find_collisions(panel.get_bounds(),
                                                     exclude_ids=[panel_id]).colliding:
            logger.warning("Cannot show %s: it overlaps a visible panel", panel_id)
            return False
        panel.visible = visible
        self._notify([panel_id])
        return True

    # ------------------------------------------------------------------
    # Validated commits
    # ------------------------------------------------------------------

    def commit_positions(self, updates: Dict[str, Position]) -> CommitResult:
        """
        Move several panels in one validated commit.

        Each move is checked against the container and against every other
        visible panel at its post-commit position. Moves that fail are
        rejected individually; a rejected panel stays where it was and counts
        as an obstacle for the others.

        Returns:
            CommitResult with accepted ids, rejection reasons and the
            positions before the commit
        """
        return self._commit({pid: (position, None) for pid, position in updates.items()})

    def commit_geometry(self, panel_id: str, position: Position, size: Size) -> CommitResult:
        """
        Move and resize one panel in a validated commit.

        Raises:
            PanelNotFoundError: unknown id
        """
        self._require(panel_id)
        return self._commit({panel_id: (position, size)})

    def commit_geometries(self, updates: Dict[str, Tuple[Position, Size]]) -> CommitResult:
        """
        Move and resize several panels in one validated commit.

        Sizes are checked against each panel's limits, then the batch is
        validated like commit_positions: panels in the batch are tested at
        their new bounds, rejected ones at their old bounds.
        """
        return self._commit(dict(updates))

    def _commit(self, updates: Dict[str, Tuple[Position, Optional[Size]]]) -> CommitResult:
        result = CommitResult()
        pending: List[str] = []
        targets: Dict[str, Rect] = {}

        for pid, (position, size) in updates.items():
            panel = self._panels.get(pid)
            if panel is None:
                result.rejected[pid] = ViolationKind.VALIDATION
                result.messages.append(f"Panel {pid} not found")
                continue
            if size is None:
                size = panel.size
            else:
                problems = check_size(size, panel.constraints)
                if problems:
                    result.rejected[pid] = ViolationKind.CONSTRAINT_VIOLATION
                    result.messages.extend(f"Panel {pid}: {p}" for p in problems)
                    continue
            rect = Rect.from_position_size(position, size)
            if not self.container.contains(rect):
                result.rejected[pid] = ViolationKind.BOUNDS_EXCEEDED
                result.messages.append(f"Panel {pid} would leave the container")
                continue
            pending.append(pid)
            targets[pid] = rect

        batch = set(updates)
        while True:
            placed: List[str] = []
            newly_rejected = None
            for pid in pending:
                if not self._panels[pid].visible:
                    placed.append(pid)
                    continue
                rect = targets[pid]
                blockers = self.detector.find_collisions(rect, exclude_ids=batch).panel_ids
                blockers += [other for other in placed
                             if self._panels[other].visible and
                             check_collision(rect, targets[other], self.config.min_gap)]
                blockers += [other for other in updates
                             if other in result.rejected and other in self._panels and
                             self._panels[other].visible and
                             check_collision(rect, self._panels[other].get_bounds(),
                                             self.config.min_gap)]
                if blockers:
                    newly_rejected = pid
                    result.rejected[pid] = ViolationKind.COLLISION
                    result.messages.append(f"Panel {pid} would overlap {', '.join(blockers)}")
                    break
                placed.append(pid)
            if newly_rejected is None:
                break
            pending.remove(newly_rejected)

        for pid in pending:
            panel = self._panels[pid]
            result.previous[pid] = Position(panel.position.x, panel.position.y)
            panel.position = targets[pid].position
            panel.size = targets[pid].size
            self.detector.update(panel)
            result.accepted.append(pid)

        if result.rejected:
            logger.warning("Commit rejected for %s: %s",
                           ", ".join(result.rejected), "; ".join(result.messages))
        self._notify(result.accepted)
        return result
