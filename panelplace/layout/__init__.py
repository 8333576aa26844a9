"""Layout geometry: data model, spatial index, collision and grid snapping."""

from .abstraction import (
    AspectRatio,
    Modifiers,
    Panel,
    PanelConstraints,
    Position,
    Rect,
    ResizeDirection,
    Size,
    SnapConstraints,
)
from .spatial_index import SpatialHashIndex
from .collision import (
    CollisionDetector,
    CollisionResult,
    calculate_overlap,
    check_collision,
    find_collisions,
    is_valid_position,
    prevent_overlap,
)
from .grid import (
    SnapResult,
    align_to_grid,
    is_on_grid,
    magnetic_snap_to_grid,
    snap_to_grid,
)

__all__ = [
    # Data model
    "AspectRatio",
    "Modifiers",
    "Panel",
    "PanelConstraints",
    "Position",
    "Rect",
    "ResizeDirection",
    "Size",
    "SnapConstraints",
    # Broad phase / narrow phase
    "SpatialHashIndex",
    "CollisionDetector",
    "CollisionResult",
    "calculate_overlap",
    "check_collision",
    "find_collisions",
    "is_valid_position",
    "prevent_overlap",
    # Grid
    "SnapResult",
    "align_to_grid",
    "is_on_grid",
    "magnetic_snap_to_grid",
    "snap_to_grid",
]
