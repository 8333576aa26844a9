"""
Drag Ghost Projection

Where the drag ghost of a panel should be drawn, derived only from the drag
start, the cumulative pointer delta and the workspace settings. Holds no
state, so the view layer can recompute it for any frame.
"""

from dataclasses import dataclass
from typing import Union

from ..layout.abstraction import Position, Rect, Size
from ..layout.grid import magnetic_snap_to_grid
from ..placement.bounds import constrain_position


@dataclass
class GhostProjection:
    position: Position
    snapped: bool = False  # magnetic snap engaged
    clamped: bool = False  # pushed back inside the container


def project_drag_ghost(
    start: Position,
    delta: Position,
    size: Size,
    container: Union[Rect, Size],
    grid_size: float = 20.0,
    snap_distance: float = 15.0,
    snap_enabled: bool = True,
) -> GhostProjection:
    """
    Project a dragged panel.

    The raw position (start + delta) is magnetically snapped to the grid,
    then clamped into the container.
    """
    raw = start.offset(delta.x, delta.y)
    snap = magnetic_snap_to_grid(raw, grid_size, snap_distance, enabled=snap_enabled)
    clamped = constrain_position(snap.position, size, container)
    return GhostProjection(
        position=clamped,
        snapped=snap.snapped,
        clamped=clamped != snap.position,
    )
