"""
Bounds Resolution

Keeps panels inside the workspace container and finds free space for new
panels:
- constrain_position / constrain_size clamp a box into the container
- find_optimal_position scans for the first free slot at grid granularity
- calculate_available_space lists the maximal free rectangles
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Union

from ..layout.abstraction import Panel, Position, Rect, Size
from ..layout.collision import DEFAULT_STACK_OFFSET, find_collisions
from ..layout.spatial_index import SpatialHashIndex

logger = logging.getLogger(__name__)

DEFAULT_SCAN_STEP = 20.0
DEFAULT_MAX_SCAN_ITERATIONS = 10000


@dataclass
class AvailableSpace:
    """Free space left in a container."""
    regions: List[Rect] = field(default_factory=list)
    total_area: float = 0.0
    largest_region: Optional[Rect] = None


def container_rect(container: Union[Rect, Size], padding: float = 0.0) -> Rect:
    """Container as a rectangle, optionally shrunk by padding on every side."""
    if isinstance(container, Size):
        rect = Rect(0.0, 0.0, container.width, container.height)
    else:
        rect = Rect(container.x, container.y, container.width, container.height)
    if padding:
        rect = rect.expanded(-padding)
    return rect


def constrain_position(position: Position, size: Size, container: Union[Rect, Size]) -> Position:
    """
    Clamp a box's position so the box lies inside the container.

    On an axis where the box is larger than the container the position is
    pinned to the container origin.
    """
    bounds = container_rect(container)

    def clamp(value, origin, extent, length):
        if length >= extent:
            return origin
        return min(max(value, origin), origin + extent - length)

    return Position(
        clamp(position.x, bounds.x, bounds.width, size.width),
        clamp(position.y, bounds.y, bounds.height, size.height),
    )


def constrain_size(
    size: Size,
    min_size: Size,
    max_size: Optional[Size],
    container: Union[Rect, Size],
    position: Optional[Position] = None,
) -> Size:
    """
    Clamp a size to its limits and to the container. Given a position, the
    room left between it and the far container edges is the limit instead
    of the whole container. The minimum always wins.
    """
    width = max(min_size.width, size.width)
    height = max(min_size.height, size.height)

    if max_size is not None:
        width = min(max_size.width, width)
        height = min(max_size.height, height)

    bounds = container_rect(container)
    if position is not None:
        width = min(width, bounds.right - position.x)
        height = min(height, bounds.bottom - position.y)
    else:
        width = min(width, bounds.width)
        height = min(height, bounds.height)

    return Size(max(min_size.width, width), max(min_size.height, height))


def _fits(
    rect: Rect,
    bounds: Rect,
    index: SpatialHashIndex,
    lookup,
    gap: float,
) -> bool:
    if not bounds.contains(rect):
        return False
    nearby = (lookup[pid] for pid in index.find_nearby(rect, margin=gap))
    return not find_collisions(nearby, rect, gap).colliding


def find_optimal_position(
    size: Size,
    existing: Sequence[Panel],
    container_size: Union[Rect, Size],
    step: float = DEFAULT_SCAN_STEP,
    padding: float = 0.0,
    gap: float = 0.0,
    max_iterations: int = DEFAULT_MAX_SCAN_ITERATIONS,
    stack_offset: float = DEFAULT_STACK_OFFSET,
) -> Position:
    """
    Find a free position for a new panel.

    Scans row by row (top to bottom, left to right) in steps of `step`
    and returns the first slot where the box fits inside the padded
    container without colliding. If the scan finds nothing within
    max_iterations, falls back to cascading from the top-left corner by
    stack_offset; if that fails too, returns the clamped top-left corner.

    Args:
        size: Size of the new panel
        existing: Panels already placed
        container_size: Workspace size or rectangle
        step: Scan granularity, normally the grid size
        padding: Space kept free along the container edges
        gap: Minimum clearance to existing panels
        max_iterations: Upper bound on candidate positions tested
        stack_offset: Offset between cascade candidates

    Returns:
        Position for the new panel
    """
    bounds = container_rect(container_size, padding)
    visible = [p for p in existing if p.visible]

    index = SpatialHashIndex(cell_size=max(step, 1.0))
    lookup = {}
    for panel in visible:
        index.add(panel)
        lookup[panel.id] = panel

    if step > 0 and size.width <= bounds.width and size.height <= bounds.height:
        iterations = 0
        y = bounds.y
        while y + size.height <= bounds.bottom and iterations < max_iterations:
            x = bounds.x
            while x + size.width <= bounds.right and iterations < max_iterations:
                iterations += 1
                rect = Rect(x, y, size.width, size.height)
                if _fits(rect, bounds, index, lookup, gap):
                    if logger.isEnabledFor(logging.DEBUG):
                        logger.debug("find_optimal_position: (%g, %g) after %d candidates",
                                     x, y, iterations)
                    return Position(x, y)
                x += step
            y += step

    # Cascade fallback
    for k in range(len(visible) + 10):
        candidate = Position(bounds.x + k * stack_offset, bounds.y + k * stack_offset)
        rect = Rect.from_position_size(candidate, size)
        if _fits(rect, bounds, index, lookup, gap):
            logger.debug("find_optimal_position: cascade slot k=%d", k)
            return candidate

    logger.warning("find_optimal_position: no free slot for %gx%g panel", size.width, size.height)
    return constrain_position(Position(bounds.x, bounds.y), size, bounds)


def _split_free_rect(free: Rect, occupied: Rect) -> List[Rect]:
    """Guillotine split: the parts of `free` left, right, above and below `occupied`."""
    parts = []
    if occupied.left > free.left:
        parts.append(Rect(free.left, free.top, occupied.left - free.left, free.height))
    if occupied.right < free.right:
        parts.append(Rect(occupied.right, free.top, free.right - occupied.right, free.height))
    if occupied.top > free.top:
        parts.append(Rect(free.left, free.top, free.width, occupied.top - free.top))
    if occupied.bottom < free.bottom:
        parts.append(Rect(free.left, occupied.bottom, free.width, free.bottom - occupied.bottom))
    return parts


def _prune_contained(rects: List[Rect]) -> List[Rect]:
    kept: List[Rect] = []
    for i, rect in enumerate(rects):
        redundant = False
        for j, other in enumerate(rects):
            if i == j or not other.contains(rect):
                continue
            # Identical rectangles: keep the first one
            if rect == other and i < j:
                continue
            redundant = True
            break
        if not redundant:
            kept.append(rect)
    return kept


def _union_area(rects: Sequence[Rect]) -> float:
    """Exact area of a union of rectangles (coordinate compression)."""
    xs = sorted({r.left for r in rects} | {r.right for r in rects})
    total = 0.0
    for x0, x1 in zip(xs, xs[1:]):
        spans = sorted((r.top, r.bottom) for r in rects if r.left <= x0 and r.right >= x1)
        covered = 0.0
        current_top = current_bottom = None
        for top, bottom in spans:
            if current_bottom is None or top > current_bottom:
                if current_bottom is not None:
                    covered += current_bottom - current_top
                current_top, current_bottom = top, bottom
            else:
                current_bottom = max(current_bottom, bottom)
        if current_bottom is not None:
            covered += current_bottom - current_top
        total += covered * (x1 - x0)
    return total


def calculate_available_space(
    panels: Iterable[Panel],
    container_size: Union[Rect, Size],
    padding: float = 0.0,
) -> AvailableSpace:
    """
    Maximal free rectangles left in the container.

    Each occupied box splits every free rectangle it intersects into its
    left/right/top/bottom remainders; rectangles contained in another are
    dropped. Regions may overlap each other. total_area is the exact free
    area, not the sum of region areas.
    """
    bounds = container_rect(container_size, padding)
    if bounds.width <= 0 or bounds.height <= 0:
        return AvailableSpace()

    occupied = []
    for panel in panels:
        if not panel.visible:
            continue
        clipped = panel.get_bounds().intersection(bounds)
        if clipped is not None:
            occupied.append(clipped)

    free = [bounds]
    for box in occupied:
        next_free: List[Rect] = []
        for rect in free:
            if rect.intersects(box):
                next_free.extend(_split_free_rect(rect, box))
            else:
                next_free.append(rect)
        free = _prune_contained(next_free)

    free.sort(key=lambda r: (-r.area, r.y, r.x))
    total = bounds.area - _union_area(occupied) if occupied else bounds.area
    return AvailableSpace(
        regions=free,
        total_area=total,
        largest_region=free[0] if free else None,
    )


def calculate_minimum_bounds(panels: Iterable[Panel]) -> Optional[Rect]:
    """Smallest rectangle containing every panel, None for no panels."""
    rects = [p.get_bounds() for p in panels]
    if not rects:
        return None
    left = min(r.left for r in rects)
    top = min(r.top for r in rects)
    right = max(r.right for r in rects)
    bottom = max(r.bottom for r in rects)
    return Rect(left, top, right - left, bottom - top)
