"""
Collision Detection

Two-stage collision detection for panel positioning:
1. Broad phase - SpatialHashIndex returns candidate panels near a box
2. Narrow phase - exact AABB overlap test, optionally inflated by a gap

Also provides overlap avoidance: given a desired position that collides,
find the nearest collision-free position with a deterministic search.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .abstraction import Panel, Position, Rect, Size
from .spatial_index import SpatialHashIndex

logger = logging.getLogger(__name__)

# Search limits for prevent_overlap
DEFAULT_SEARCH_STEP = 20.0
DEFAULT_MAX_RINGS = 25
DEFAULT_STACK_OFFSET = 30.0


@dataclass
class CollisionResult:
    """Result of a narrow-phase collision query."""
    colliding: bool = False
    panels: List[Panel] = field(default_factory=list)
    overlaps: List[Rect] = field(default_factory=list)

    @property
    def panel_ids(self) -> List[str]:
        return [p.id for p in self.panels]


def _as_rect(subject: Union[Panel, Rect]) -> Rect:
    if isinstance(subject, Panel):
        return subject.get_bounds()
    return subject


def check_collision(a: Union[Panel, Rect], b: Union[Panel, Rect], gap: float = 0.0) -> bool:
    """
    Exact AABB overlap test.

    Boxes that only share an edge do not collide. A positive gap inflates
    the test so that boxes closer than the gap count as colliding.
    """
    return _as_rect(a).intersects(_as_rect(b), gap)


def calculate_overlap(a: Union[Panel, Rect], b: Union[Panel, Rect]) -> Optional[Rect]:
    """Intersection rectangle of two boxes, or None if they do not overlap."""
    return _as_rect(a).intersection(_as_rect(b))


def find_collisions(
    candidates: Iterable[Panel],
    subject: Union[Panel, Rect],
    gap: float = 0.0,
    exclude_id: Optional[str] = None,
) -> CollisionResult:
    """
    Narrow phase: test a subject against candidate panels.

    Args:
        candidates: Panels to test (usually pre-filtered by the spatial index)
        subject: Panel or rectangle being placed
        gap: Minimum clearance between boxes
        exclude_id: Panel id to skip; a Panel subject always skips itself

    Returns:
        CollisionResult listing colliding panels and their overlap rectangles
    """
    subject_rect = _as_rect(subject)
    self_id = subject.id if isinstance(subject, Panel) else None

    result = CollisionResult()
    for panel in candidates:
        if not panel.visible:
            continue
        if panel.id == exclude_id or panel.id == self_id:
            continue

        bounds = panel.get_bounds()
        if subject_rect.intersects(bounds, gap):
            result.panels.append(panel)
            overlap = subject_rect.intersection(bounds)
            if overlap is not None:
                result.overlaps.append(overlap)

    result.colliding = bool(result.panels)
    return result


def _within(rect: Rect, bounds: Optional[Rect]) -> bool:
    return bounds is None or bounds.contains(rect)


def is_valid_position(
    position: Position,
    size: Size,
    panels: Iterable[Panel],
    exclude_id: Optional[str] = None,
    bounds: Optional[Rect] = None,
    gap: float = 0.0,
) -> bool:
    """Check a box is inside bounds (if given) and collides with no panel."""
    rect = Rect.from_position_size(position, size)
    if not _within(rect, bounds):
        return False
    return not find_collisions(panels, rect, gap, exclude_id).colliding


def _search_offsets(max_rings: int) -> List[Tuple[int, int]]:
    """Grid offsets ordered by displacement, then top-most, then left-most."""
    offsets = [
        (i, j)
        for j in range(-max_rings, max_rings + 1)
        for i in range(-max_rings, max_rings + 1)
        if (i, j) != (0, 0)
    ]
    offsets.sort(key=lambda o: (o[0] * o[0] + o[1] * o[1], o[1], o[0]))
    return offsets


_OFFSET_CACHE: Dict[int, List[Tuple[int, int]]] = {}


def _cached_offsets(max_rings: int) -> List[Tuple[int, int]]:
    offsets = _OFFSET_CACHE.get(max_rings)
    if offsets is None:
        offsets = _search_offsets(max_rings)
        _OFFSET_CACHE[max_rings] = offsets
    return offsets


def prevent_overlap(
    desired: Position,
    size: Size,
    obstacles: Sequence[Panel],
    gap: float = 0.0,
    step: float = DEFAULT_SEARCH_STEP,
    bounds: Optional[Rect] = None,
    exclude_id: Optional[str] = None,
    max_rings: int = DEFAULT_MAX_RINGS,
    stack_offset: float = DEFAULT_STACK_OFFSET,
) -> Position:
    """
    Find the nearest collision-free position for a box.

    Search strategy:
    1. The desired position itself
    2. Grid offsets (multiples of step) within max_rings rings, visited in
       order of squared displacement; ties go to the top-most, then
       left-most candidate
    3. Cascade: desired + k * stack_offset on both axes
    4. Below every obstacle, which is always free (may leave bounds)

    Args:
        desired: Position the caller would like
        size: Box size
        obstacles: Panels to avoid
        gap: Minimum clearance between boxes
        step: Search step, normally the grid size
        bounds: Optional container the box must stay inside
        exclude_id: Obstacle id to ignore (the panel being moved)
        max_rings: Search radius in steps
        stack_offset: Cascade offset for the fallback

    Returns:
        Adjusted position
    """
    index = SpatialHashIndex(cell_size=max(step, 1.0))
    lookup: Dict[str, Panel] = {}
    for panel in obstacles:
        if not panel.visible or panel.id == exclude_id:
            continue
        index.add(panel)
        lookup[panel.id] = panel

    def is_free(pos: Position) -> bool:
        rect = Rect.from_position_size(pos, size)
        if not _within(rect, bounds):
            return False
        nearby = (lookup[pid] for pid in index.find_nearby(rect, margin=gap))
        return not find_collisions(nearby, rect, gap).colliding

    if is_free(desired):
        return Position(desired.x, desired.y)

    if step > 0:
        for i, j in _cached_offsets(max_rings):
            candidate = Position(desired.x + i * step, desired.y + j * step)
            if is_free(candidate):
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(
                        "prevent_overlap: (%.1f, %.1f) -> (%.1f, %.1f) offset=(%d, %d)",
                        desired.x, desired.y, candidate.x, candidate.y, i, j,
                    )
                return candidate

    for k in range(1, len(lookup) + 11):
        candidate = Position(desired.x + k * stack_offset, desired.y + k * stack_offset)
        if is_free(candidate):
            logger.debug("prevent_overlap: cascade fallback k=%d", k)
            return candidate

    logger.warning(
        "prevent_overlap: search exhausted for %.1fx%.1f box, stacking below obstacles",
        size.width, size.height,
    )
    if not lookup:
        return Position(desired.x, desired.y)
    lowest = max(p.get_bounds().bottom for p in lookup.values())
    x = bounds.left if bounds is not None else desired.x
    return Position(x, lowest + gap + stack_offset)


class CollisionDetector:
    """
    Collision detection over a live set of panels.

    Keeps a SpatialHashIndex in sync with the panels it is given, so each
    query only runs the exact test against nearby candidates.
    """

    def __init__(self, gap: float = 0.0, cell_size: float = DEFAULT_SEARCH_STEP):
        self.gap = gap
        self.index = SpatialHashIndex(cell_size=cell_size)
        self._panels: Dict[str, Panel] = {}

    def __len__(self) -> int:
        return len(self._panels)

    def rebuild(self, panels: Iterable[Panel]):
        self._panels = {}
        self.index.clear()
        for panel in panels:
            self.add(panel)

    def add(self, panel: Panel):
        self._panels[panel.id] = panel
        self.index.add(panel)

    def remove(self, panel_id: str):
        self._panels.pop(panel_id, None)
        self.index.remove(panel_id)

    def update(self, panel: Panel):
        self._panels[panel.id] = panel
        self.index.update(panel.id, panel.get_bounds())

    def candidates_for(
        self,
        rect: Rect,
        exclude_ids: Iterable[str] = (),
    ) -> List[Panel]:
        """Broad phase: visible panels whose buckets touch the (gap-inflated) box."""
        excluded = set(exclude_ids)
        return [
            self._panels[pid]
            for pid in self.index.find_nearby(rect, margin=self.gap)
            if pid not in excluded and self._panels[pid].visible
        ]

    def find_collisions(
        self,
        subject: Union[Panel, Rect],
        exclude_ids: Iterable[str] = (),
    ) -> CollisionResult:
        excluded = set(exclude_ids)
        if isinstance(subject, Panel):
            excluded.add(subject.id)
        rect = _as_rect(subject)
        return find_collisions(self.candidates_for(rect, excluded), rect, self.gap)

    def is_valid_position(
        self,
        position: Position,
        size: Size,
        exclude_ids: Iterable[str] = (),
        bounds: Optional[Rect] = None,
    ) -> bool:
        rect = Rect.from_position_size(position, size)
        if not _within(rect, bounds):
            return False
        return not self.find_collisions(rect, exclude_ids).colliding

    def prevent_overlap(
        self,
        desired: Position,
        size: Size,
        exclude_ids: Iterable[str] = (),
        bounds: Optional[Rect] = None,
        step: float = DEFAULT_SEARCH_STEP,
        max_rings: int = DEFAULT_MAX_RINGS,
        stack_offset: float = DEFAULT_STACK_OFFSET,
    ) -> Position:
        excluded = set(exclude_ids)
        obstacles = [p for pid, p in self._panels.items() if pid not in excluded]
        return prevent_overlap(
            desired, size, obstacles,
            gap=self.gap, step=step, bounds=bounds,
            max_rings=max_rings, stack_offset=stack_offset,
        )
