"""
Multi-Panel Resizing

Resizes that touch more than one panel at once:
- proportional: growing a panel shrinks the row to its right (or the
  column below it) so the neighbours share the change by width (height)
- group scaling: the selection scales about an anchor point
- space distribution: panels are stretched to fill the container, either
  keeping their proportions or as an equal grid
- a request queue: resize requests are batched and conflicting requests
  for one panel are settled by priority

The calculations are pure functions over panels. GroupResizer applies them
to a workspace; every write is one batched geometry commit, so the store
still validates sizes, bounds and collisions.

Usage:
    resizer = GroupResizer(workspace)
    resizer.resize_proportional("calendar", Size(360, 200))
    resizer.queue("notes", Size(250, 250), priority=5)
    resizer.process()
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import PanelNotFoundError
from ..layout.abstraction import Panel, Position, Rect, Size
from ..placement.bounds import calculate_minimum_bounds, container_rect
from ..placement.constraints import enforce_constraints
from .store import CommitResult

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)

# Neighbours whose leading edge is within this distance count as one row/column
DEFAULT_ALIGNMENT_TOLERANCE = 50.0
DEFAULT_MAX_OPERATIONS = 10


class DistributionMode(Enum):
    PROPORTIONAL = "proportional"
    EQUAL = "equal"


@dataclass
class GeometryUpdate:
    """New geometry for one panel."""
    panel_id: str
    position: Position
    size: Size


@dataclass
class ResizeRequest:
    """A queued request to resize one panel in place."""
    panel_id: str
    target_size: Size
    priority: int = 1
    sequence: int = 0


@dataclass
class ResizeConflict:
    """Several queued requests for the same panel; the winner was applied."""
    panel_id: str
    requests: List[ResizeRequest] = field(default_factory=list)
    winner: Optional[ResizeRequest] = None


def _constrained(panel: Panel, size: Size) -> Size:
    return enforce_constraints(size, panel.constraints, original_size=panel.size).size


def _redistribute(
    neighbours: Sequence[Panel],
    delta: float,
    dimension: str,
) -> List[GeometryUpdate]:
    """Shift a sorted row (or column) by the primary's growth and shrink it to match."""
    axis = "x" if dimension == "width" else "y"
    total = sum(getattr(p.size, dimension) for p in neighbours)
    if total <= 0:
        return []

    updates = []
    edge_shift = delta
    for panel in neighbours:
        length = getattr(panel.size, dimension)
        requested = length - delta * length / total
        if dimension == "width":
            size = _constrained(panel, Size(requested, panel.size.height))
        else:
            size = _constrained(panel, Size(panel.size.width, requested))

        if axis == "x":
            position = panel.position.offset(edge_shift, 0)
        else:
            position = panel.position.offset(0, edge_shift)
        updates.append(GeometryUpdate(panel.id, position, size))
        edge_shift -= length - getattr(size, dimension)
    return updates


def calculate_proportional_resize(
    primary: Panel,
    new_size: Size,
    neighbours: Sequence[Panel],
    tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE,
) -> List[GeometryUpdate]:
    """
    Resize a panel and let its neighbours absorb the change.

    Panels to the right of the primary whose top edge is within tolerance of
    the primary's form its row; panels below it whose left edge is within
    tolerance form its column. A change in width is shared across the row in
    proportion to each panel's width, and the row shifts so it stays flush
    with the primary's right edge. Height works the same way on the column.
    Every size passes through the panel's own constraints.

    Returns:
        Updates for the primary first, then the row, then the column
    """
    size = _constrained(primary, new_size)
    updates = [GeometryUpdate(primary.id, primary.position, size)]

    bounds = primary.get_bounds()
    others = [p for p in neighbours if p.id != primary.id]
    row = sorted(
        (p for p in others
         if p.position.x >= bounds.right and abs(p.position.y - bounds.top) < tolerance),
        key=lambda p: p.position.x,
    )
    column = sorted(
        (p for p in others
         if p.position.y >= bounds.bottom and abs(p.position.x - bounds.left) < tolerance),
        key=lambda p: p.position.y,
    )

    delta_width = size.width - primary.size.width
    delta_height = size.height - primary.size.height
    if delta_width and row:
        updates.extend(_redistribute(row, delta_width, "width"))
    if delta_height and column:
        updates.extend(_redistribute(column, delta_height, "height"))

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Proportional resize %s: dw=%g dh=%g row=%d column=%d",
                     primary.id, delta_width, delta_height, len(row), len(column))
    return updates


def calculate_group_resize(
    panels: Sequence[Panel],
    scale_x: float,
    scale_y: float,
    anchor: Optional[Position] = None,
) -> List[GeometryUpdate]:
    """
    Scale panels about an anchor point.

    Positions scale relative to the anchor, sizes scale and then pass through
    each panel's constraints.

    Raises:
        ValueError: a scale factor is not positive
    """
    if scale_x <= 0 or scale_y <= 0:
        raise ValueError(f"Scale factors must be positive, got {scale_x:g} x {scale_y:g}")
    anchor = anchor or Position()

    updates = []
    for panel in panels:
        position = Position(
            anchor.x + (panel.position.x - anchor.x) * scale_x,
            anchor.y + (panel.position.y - anchor.y) * scale_y,
        )
        size = _constrained(panel, Size(panel.size.width * scale_x,
                                        panel.size.height * scale_y))
        updates.append(GeometryUpdate(panel.id, position, size))
    return updates


def handle_overflow(
    updates: Sequence[GeometryUpdate],
    container: Union[Rect, Size],
) -> List[GeometryUpdate]:
    """
    Clip updates to the container.

    Boxes past the right or bottom edge are cut at the edge. Boxes past the
    left or top edge move onto it and lose the overhang.
    """
    bounds = container_rect(container)
    clipped = []
    for update in updates:
        x, y = update.position.x, update.position.y
        width, height = update.size.width, update.size.height
        if x + width > bounds.right:
            width = bounds.right - x
        if y + height > bounds.bottom:
            height = bounds.bottom - y
        if x < bounds.left:
            width -= bounds.left - x
            x = bounds.left
        if y < bounds.top:
            height -= bounds.top - y
            y = bounds.top
        clipped.append(GeometryUpdate(update.panel_id, Position(x, y), Size(width, height)))
    return clipped


def distribute_space(
    panels: Sequence[Panel],
    container: Union[Rect, Size],
    mode: DistributionMode = DistributionMode.PROPORTIONAL,
) -> List[GeometryUpdate]:
    """
    Stretch panels to fill the container.

    PROPORTIONAL scales the whole arrangement about the container origin by
    the largest factor that keeps it inside. EQUAL lays the panels out, in
    the given order, on a grid of equal cells.
    """
    if not panels:
        return []
    bounds = container_rect(container)

    if mode is DistributionMode.EQUAL:
        columns = math.ceil(math.sqrt(len(panels)))
        rows = math.ceil(len(panels) / columns)
        cell = Size(bounds.width / columns, bounds.height / rows)
        updates = []
        for i, panel in enumerate(panels):
            position = Position(bounds.left + (i % columns) * cell.width,
                                bounds.top + (i // columns) * cell.height)
            updates.append(GeometryUpdate(panel.id, position, _constrained(panel, cell)))
        return updates

    used = calculate_minimum_bounds(panels)
    extent_x = used.right - bounds.left
    extent_y = used.bottom - bounds.top
    if extent_x <= 0 or extent_y <= 0:
        return []
    factor = min(bounds.width / extent_x, bounds.height / extent_y)
    return calculate_group_resize(panels, factor, factor, bounds.position)


def resolve_conflicts(
    requests: Sequence[ResizeRequest],
) -> Tuple[List[ResizeRequest], List[ResizeConflict]]:
    """
    Keep one request per panel.

    The highest priority wins; among equal priorities the earliest request
    wins. Panels keep the order in which they were first requested.
    """
    grouped: Dict[str, List[ResizeRequest]] = {}
    for request in requests:
        grouped.setdefault(request.panel_id, []).append(request)

    resolved = []
    conflicts = []
    for panel_id, group in grouped.items():
        winner = max(group, key=lambda r: r.priority)
        resolved.append(winner)
        if len(group) > 1:
            conflicts.append(ResizeConflict(panel_id, list(group), winner))
    return resolved, conflicts


class GroupResizer:
    """Applies multi-panel resizes to one workspace."""

    def __init__(
        self,
        workspace: "Workspace",
        max_operations: int = DEFAULT_MAX_OPERATIONS,
        tolerance: float = DEFAULT_ALIGNMENT_TOLERANCE,
    ):
        self.workspace = workspace
        self.store = workspace.store
        self.max_operations = max_operations
        self.tolerance = tolerance
        self.conflicts: List[ResizeConflict] = []
        self._queue: List[ResizeRequest] = []
        self._sequence = 0

    def _commit(self, updates: Sequence[GeometryUpdate], what: str) -> CommitResult:
        result = self.store.commit_geometries({
            u.panel_id: (u.position, u.size) for u in updates
        })
        logger.info("%s: %d panels resized, %d rejected",
                    what, len(result.accepted), len(result.rejected))
        return result

    def resize_proportional(self, panel_id: str, new_size: Size) -> CommitResult:
        """
        Resize one panel and redistribute its row and column.

        Raises:
            PanelNotFoundError: unknown panel id
        """
        self.workspace.end_sessions()
        primary = self.store.get_panel(panel_id)
        updates = calculate_proportional_resize(primary, new_size, self.store.panels,
                                                self.tolerance)
        return self._commit(updates, f"Proportional resize of {panel_id}")

    def scale_selection(
        self,
        scale_x: float,
        scale_y: float,
        anchor: Optional[Position] = None,
    ) -> CommitResult:
        """
        Scale the selected panels together, clipped to the container.

        The anchor defaults to the top-left corner of the selection.
        """
        self.workspace.end_sessions()
        panels = [self.store.get_panel(pid) for pid in self.store.selected_ids]
        if not panels:
            return CommitResult()
        if anchor is None:
            anchor = calculate_minimum_bounds(panels).position
        updates = calculate_group_resize(panels, scale_x, scale_y, anchor)
        updates = handle_overflow(updates, self.store.container)
        return self._commit(updates, "Group scale")

    def distribute(
        self,
        mode: DistributionMode = DistributionMode.PROPORTIONAL,
        panel_ids: Optional[List[str]] = None,
    ) -> CommitResult:
        """
        Stretch panels (all of them by default) to fill the container.

        Raises:
            PanelNotFoundError: unknown panel id
        """
        self.workspace.end_sessions()
        if panel_ids is None:
            panels = self.store.panels
        else:
            panels = [self.store.get_panel(pid) for pid in panel_ids]
        updates = distribute_space(panels, self.store.container, mode)
        updates = handle_overflow(updates, self.store.container)
        return self._commit(updates, f"Distribute ({mode.value})")

    def queue(self, panel_id: str, target_size: Size, priority: int = 1) -> ResizeRequest:
        """
        Queue a resize for the next process() call.

        Raises:
            PanelNotFoundError: unknown panel id
        """
        if panel_id not in self.store:
            raise PanelNotFoundError(panel_id)
        self._sequence += 1
        request = ResizeRequest(panel_id, target_size, priority, self._sequence)
        self._queue.append(request)
        return request

    def process(self) -> Optional[CommitResult]:
        """
        Apply up to max_operations queued requests as one commit.

        Returns:
            CommitResult, or None if the queue was empty
        """
        if not self._queue:
            return None
        self.workspace.end_sessions()
        batch = self._queue[:self.max_operations]
        self._queue = self._queue[self.max_operations:]

        resolved, conflicts = resolve_conflicts(batch)
        self.conflicts.extend(conflicts)
        for conflict in conflicts:
            logger.debug("Resize conflict on %s: %d requests, priority %d wins",
                         conflict.panel_id, len(conflict.requests), conflict.winner.priority)

        updates = []
        for request in resolved:
            if request.panel_id not in self.store:
                logger.debug("Queued resize dropped: panel %s was removed", request.panel_id)
                continue
            panel = self.store.get_panel(request.panel_id)
            updates.append(GeometryUpdate(panel.id, panel.position,
                                          _constrained(panel, request.target_size)))
        return self._commit(updates, "Queued resizes")

    def clear(self):
        self._queue = []
        self.conflicts = []

    def status(self) -> Dict[str, Any]:
        return {
            "queue_length": len(self._queue),
            "conflicts": len(self.conflicts),
            "max_operations": self.max_operations,
        }
