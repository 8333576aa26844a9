"""
Grid & Snap Engine

Grid rounding for positions and sizes. Plain snapping rounds each axis to
the nearest multiple of the grid size (halves round up, so snapping is
idempotent). Magnetic snapping only engages when the nearest grid point lies
within a radius of the position.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .abstraction import Panel, Position, Size

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE = 20.0
DEFAULT_MAGNETIC_RADIUS = 15.0
DEFAULT_MAJOR_MULTIPLIER = 5


@dataclass
class SnapResult:
    """Outcome of a magnetic snap."""
    position: Position
    snapped: bool = False


@dataclass
class GridLines:
    """Grid line offsets for a container, split into major and minor lines."""
    major_vertical: List[float] = field(default_factory=list)
    major_horizontal: List[float] = field(default_factory=list)
    minor_vertical: List[float] = field(default_factory=list)
    minor_horizontal: List[float] = field(default_factory=list)


def snap_value(value: float, grid_size: float) -> float:
    """Round a scalar to the nearest grid multiple, halves rounding up."""
    if grid_size <= 0:
        return value
    return math.floor(value / grid_size + 0.5) * grid_size


def snap_to_grid(position: Position, grid_size: float) -> Position:
    """Snap both axes to the nearest grid multiple."""
    if grid_size <= 0:
        return Position(position.x, position.y)
    return Position(snap_value(position.x, grid_size), snap_value(position.y, grid_size))


def magnetic_snap_to_grid(
    position: Position,
    grid_size: float,
    radius: float = DEFAULT_MAGNETIC_RADIUS,
    enabled: bool = True,
) -> SnapResult:
    """
    Snap to the nearest grid point only if it is within radius.

    Distance is Euclidean, measured to the nearest grid intersection.
    """
    if not enabled or grid_size <= 0:
        return SnapResult(Position(position.x, position.y), False)

    nearest = snap_to_grid(position, grid_size)
    if position.distance_to(nearest) <= radius:
        return SnapResult(nearest, True)
    return SnapResult(Position(position.x, position.y), False)


def is_on_grid(position: Position, grid_size: float, tolerance: float = 1e-9) -> bool:
    if grid_size <= 0:
        return True
    nearest = snap_to_grid(position, grid_size)
    return (abs(position.x - nearest.x) <= tolerance and
            abs(position.y - nearest.y) <= tolerance)


def align_to_grid(panels: Iterable[Panel], grid_size: float) -> Dict[str, Position]:
    """Snapped position for every panel, keyed by id in input order."""
    return {p.id: snap_to_grid(p.position, grid_size) for p in panels}


def snap_size_to_grid(size: Size, grid_size: float, minimum: Optional[Size] = None) -> Size:
    """
    Round a size to grid multiples.

    Never rounds a dimension down to zero; with a minimum given, a dimension
    rounded below it is raised to the next multiple at or above the minimum.
    """
    if grid_size <= 0:
        return Size(size.width, size.height)

    width = max(snap_value(size.width, grid_size), grid_size)
    height = max(snap_value(size.height, grid_size), grid_size)
    if minimum is not None:
        if width < minimum.width:
            width = math.ceil(minimum.width / grid_size) * grid_size
        if height < minimum.height:
            height = math.ceil(minimum.height / grid_size) * grid_size
    return Size(width, height)


def snap_to_common_sizes(
    size: Size,
    common_sizes: Iterable[Size],
    snap_distance: float,
) -> Optional[Size]:
    """
    Closest preset size whose width and height are both within snap_distance.

    Returns None when no preset is close enough. Ties go to the earlier preset.
    """
    best: Optional[Size] = None
    best_distance = math.inf
    for preset in common_sizes:
        dw = abs(size.width - preset.width)
        dh = abs(size.height - preset.height)
        if dw > snap_distance or dh > snap_distance:
            continue
        distance = math.hypot(dw, dh)
        if distance < best_distance:
            best = preset
            best_distance = distance
    if best is None:
        return None
    return Size(best.width, best.height)


def grid_cell(position: Position, grid_size: float) -> Tuple[int, int]:
    """Integer grid cell containing a position."""
    return (int(math.floor(position.x / grid_size)),
            int(math.floor(position.y / grid_size)))


def position_from_cell(cell_x: int, cell_y: int, grid_size: float) -> Position:
    return Position(cell_x * grid_size, cell_y * grid_size)


def calculate_grid_lines(
    container: Size,
    grid_size: float,
    major_multiplier: int = DEFAULT_MAJOR_MULTIPLIER,
) -> GridLines:
    """Grid line offsets for rendering; every Nth line is a major line."""
    lines = GridLines()
    if grid_size <= 0:
        return lines

    columns = int(math.floor(container.width / grid_size))
    for i in range(columns + 1):
        target = lines.major_vertical if i % major_multiplier == 0 else lines.minor_vertical
        target.append(i * grid_size)

    rows = int(math.floor(container.height / grid_size))
    for i in range(rows + 1):
        target = lines.major_horizontal if i % major_multiplier == 0 else lines.minor_horizontal
        target.append(i * grid_size)

    return lines


def calculate_optimal_grid_size(container: Size, target_density: int = 20) -> float:
    """Grid size giving roughly target_density cells across the width.

    Rounded to a multiple of 5, never below 10.
    """
    base = container.width / max(target_density, 1)
    rounded = math.floor(base / 5 + 0.5) * 5
    return float(max(rounded, 10))
