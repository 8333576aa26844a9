"""Spatial hash index for O(~1) collision candidate lookup.

Panels are hashed into square grid buckets; a panel is registered in every
bucket its box touches. A query walks the buckets of the query box and
returns every panel id found there. This broad phase may return false
positives (panels sharing a bucket without overlapping) but never misses a
true collision, so callers always follow it with an exact narrow-phase test.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union
import math

from .abstraction import Panel, Rect

Cell = Tuple[int, int]


@dataclass
class SpatialHashIndex:
    """Grid-based spatial hash keyed by panel id.

    Cell size selection matters:
    - Too small: a large panel spans many buckets, updates touch many cells
    - Too large: many panels per bucket, more false positives
    The workspace defaults the cell size to the snapping grid size.
    """
    cell_size: float = 20.0
    cells: Dict[Cell, Set[str]] = field(default_factory=dict)
    _bounds: Dict[str, Rect] = field(default_factory=dict)
    _order: Dict[str, int] = field(default_factory=dict)
    _counter: int = 0

    def __post_init__(self):
        if self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")

    def __len__(self) -> int:
        return len(self._bounds)

    def __contains__(self, panel_id: str) -> bool:
        return panel_id in self._bounds

    def _get_cells_for_rect(self, rect: Rect) -> List[Cell]:
        """Get all cells that a rectangle overlaps."""
        start_x = int(math.floor(rect.left / self.cell_size))
        end_x = int(math.floor(rect.right / self.cell_size))
        start_y = int(math.floor(rect.top / self.cell_size))
        end_y = int(math.floor(rect.bottom / self.cell_size))

        return [(cx, cy)
                for cy in range(start_y, end_y + 1)
                for cx in range(start_x, end_x + 1)]

    def add(self, panel: Panel):
        """Add panel to index."""
        self.add_bounds(panel.id, panel.get_bounds())

    def add_bounds(self, panel_id: str, bounds: Rect):
        if panel_id in self._bounds:
            self.update(panel_id, bounds)
            return
        self._order[panel_id] = self._counter
        self._counter += 1
        for cell in self._get_cells_for_rect(bounds):
            self.cells.setdefault(cell, set()).add(panel_id)
        self._bounds[panel_id] = Rect(bounds.x, bounds.y, bounds.width, bounds.height)

    def remove(self, panel_id: str) -> bool:
        """Remove panel from index. Returns False if it was not indexed."""
        bounds = self._bounds.pop(panel_id, None)
        if bounds is None:
            return False
        self._order.pop(panel_id, None)

        for cell in self._get_cells_for_rect(bounds):
            bucket = self.cells.get(cell)
            if bucket is None:
                continue
            bucket.discard(panel_id)
            if not bucket:
                del self.cells[cell]
        return True

    def update(self, panel_id: str, bounds: Rect):
        """Move a panel to new bounds, touching only changed buckets."""
        old = self._bounds.get(panel_id)
        if old is None:
            self.add_bounds(panel_id, bounds)
            return

        old_cells = set(self._get_cells_for_rect(old))
        new_cells = set(self._get_cells_for_rect(bounds))

        for cell in old_cells - new_cells:
            bucket = self.cells.get(cell)
            if bucket is not None:
                bucket.discard(panel_id)
                if not bucket:
                    del self.cells[cell]
        for cell in new_cells - old_cells:
            self.cells.setdefault(cell, set()).add(panel_id)

        self._bounds[panel_id] = Rect(bounds.x, bounds.y, bounds.width, bounds.height)

    def get_bounds(self, panel_id: str) -> Optional[Rect]:
        return self._bounds.get(panel_id)

    def find_nearby(
        self,
        subject: Union[Panel, Rect],
        margin: float = 0.0,
        exclude_id: Optional[str] = None,
    ) -> List[str]:
        """
        Query panel ids that might intersect the subject.

        Args:
            subject: Panel or rectangle to query around
            margin: Extra distance to cover (collision gap)
            exclude_id: Id to leave out; a Panel subject excludes itself

        Returns:
            Candidate ids in insertion order (candidates for detailed check)
        """
        if isinstance(subject, Panel):
            rect = subject.get_bounds()
            if exclude_id is None:
                exclude_id = subject.id
        else:
            rect = subject

        if margin > 0:
            rect = rect.expanded(margin)

        found: Set[str] = set()
        for cell in self._get_cells_for_rect(rect):
            bucket = self.cells.get(cell)
            if bucket:
                found.update(bucket)

        found.discard(exclude_id)
        return sorted(found, key=self._order.__getitem__)

    def clear(self):
        self.cells.clear()
        self._bounds.clear()
        self._order.clear()
        self._counter = 0

    def rebuild(self, panels: Iterable[Panel]):
        self.clear()
        for panel in panels:
            self.add(panel)

    def get_stats(self) -> Dict:
        """Get index statistics for debugging."""
        cell_counts = [len(ids) for ids in self.cells.values()]
        return {
            "total_panels": len(self._bounds),
            "total_cells": len(self.cells),
            "cell_size": self.cell_size,
            "avg_panels_per_cell": sum(cell_counts) / max(len(cell_counts), 1),
            "max_panels_per_cell": max(cell_counts) if cell_counts else 0,
        }
