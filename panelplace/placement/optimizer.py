"""
Layout Optimizer

Cleanup pass over a whole layout. Three phases, each optional:
1. Grid snapping - snap every panel position to the grid (compact mode)
2. Overlap removal - move panels in creation order to the nearest free spot
3. Compaction - sweep panels up, then left, toward the container origin

Panels are never resized. Input panels are left untouched; the optimizer
works on copies.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..layout.abstraction import Panel, Position, Rect, Size
from ..layout.collision import CollisionDetector
from ..layout.grid import snap_to_grid

logger = logging.getLogger(__name__)


@dataclass
class OptimizerConfig:
    """Configuration for the optimization pass."""
    grid_size: float = 20.0
    minimize_overlaps: bool = True
    compact_layout: bool = False
    gap: float = 0.0  # minimum clearance between panels
    max_iterations: int = 50  # overlap removal passes / compaction sweeps
    container_size: Optional[Size] = None


@dataclass
class OptimizationResult:
    """Result of an optimization pass."""
    panels: List[Panel] = field(default_factory=list)
    grid_snapped: int = 0  # panels moved by grid snapping
    overlaps_resolved: int = 0  # panels moved off another panel
    compacted: int = 0  # panels moved by compaction
    iterations_used: int = 0
    final_overlaps: int = 0  # overlapping pairs left (0 unless bounds ran out)


def count_overlaps(panels: Sequence[Panel], gap: float = 0.0) -> int:
    """Number of visible overlapping pairs."""
    detector = CollisionDetector(gap=gap)
    count = 0
    for panel in panels:
        if not panel.visible:
            continue
        count += len(detector.find_collisions(panel).panels)
        detector.add(panel)
    return count


class LayoutOptimizer:
    """
    Optimizes a panel layout.

    Overlap removal visits panels in creation order and places each one
    against the panels already settled, so earlier panels keep their spot
    and later ones move. The collision search always ends in a free spot,
    so a single pass removes every overlap; later passes only confirm it.
    """

    def __init__(self, panels: Sequence[Panel], config: Optional[OptimizerConfig] = None):
        self.config = config or OptimizerConfig()
        self.panels = [p.copy() for p in panels]
        self.bounds: Optional[Rect] = None
        if self.config.container_size is not None:
            size = self.config.container_size
            self.bounds = Rect(0.0, 0.0, size.width, size.height)

    def optimize(self) -> OptimizationResult:
        """
        Run the enabled phases.

        Returns:
            OptimizationResult holding the optimized copies
        """
        result = OptimizationResult()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Optimize start: panels=%d grid=%g minimize=%s compact=%s gap=%g",
                len(self.panels),
                self.config.grid_size,
                self.config.minimize_overlaps,
                self.config.compact_layout,
                self.config.gap,
            )

        # Phase 1: Grid snapping
        if self.config.compact_layout:
            result.grid_snapped = self._snap_to_grid()

        # Phase 2: Overlap removal
        if self.config.minimize_overlaps:
            resolved, iterations = self._remove_overlaps()
            result.overlaps_resolved = resolved
            result.iterations_used += iterations

        # Phase 3: Compaction
        if self.config.compact_layout:
            moved, sweeps = self._compact()
            result.compacted = moved
            result.iterations_used += sweeps

        result.final_overlaps = count_overlaps(self.panels, self.config.gap)
        result.panels = self.panels

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Optimize done: snapped=%d resolved=%d compacted=%d final_overlaps=%d",
                result.grid_snapped,
                result.overlaps_resolved,
                result.compacted,
                result.final_overlaps,
            )
        return result

    def _snap_to_grid(self) -> int:
        snapped = 0
        for panel in self.panels:
            target = snap_to_grid(panel.position, self.config.grid_size)
            if target != panel.position:
                panel.position = target
                snapped += 1
        return snapped

    def _remove_overlaps(self) -> Tuple[int, int]:
        resolved = 0
        iterations = 0
        visible = [p for p in self.panels if p.visible]

        for _ in range(self.config.max_iterations):
            iterations += 1
            moved = 0
            detector = CollisionDetector(gap=self.config.gap,
                                         cell_size=max(self.config.grid_size, 1.0))
            for panel in visible:
                if detector.find_collisions(panel).colliding:
                    target = detector.prevent_overlap(
                        panel.position, panel.size,
                        bounds=self.bounds,
                        step=self.config.grid_size,
                    )
                    if logger.isEnabledFor(logging.DEBUG):
                        logger.debug("Overlap: %s (%g, %g) -> (%g, %g)",
                                     panel.id, panel.position.x, panel.position.y,
                                     target.x, target.y)
                    panel.position = target
                    moved += 1
                detector.add(panel)
            resolved += moved
            if moved == 0:
                break

        return resolved, iterations

    def _compact(self) -> Tuple[int, int]:
        """Sweep panels toward the origin, top rows first."""
        step = self.config.grid_size
        if step <= 0:
            return 0, 0

        origin_x = self.bounds.x if self.bounds is not None else 0.0
        origin_y = self.bounds.y if self.bounds is not None else 0.0

        indexed = [(i, p) for i, p in enumerate(self.panels) if p.visible]
        indexed.sort(key=lambda item: (item[1].position.y, item[1].position.x, item[0]))
        order = [p for _, p in indexed]
        detector = CollisionDetector(gap=self.config.gap, cell_size=max(step, 1.0))
        detector.rebuild(order)

        moved_ids = set()
        sweeps = 0
        for _ in range(self.config.max_iterations):
            sweeps += 1
            moved_this_sweep = False
            for panel in order:
                for axis in ("y", "x"):
                    while True:
                        current = getattr(panel.position, axis)
                        floor = origin_y if axis == "y" else origin_x
                        if current - step < floor - 1e-9:
                            break
                        candidate = (Position(panel.position.x, current - step) if axis == "y"
                                     else Position(current - step, panel.position.y))
                        if not detector.is_valid_position(candidate, panel.size,
                                                          exclude_ids=[panel.id]):
                            break
                        panel.position = candidate
                        detector.update(panel)
                        moved_ids.add(panel.id)
                        moved_this_sweep = True
            if not moved_this_sweep:
                break

        return len(moved_ids), sweeps


def optimize_layout(
    panels: Sequence[Panel],
    grid_size: float = 20.0,
    minimize_overlaps: bool = True,
    compact_layout: bool = False,
    container_size: Optional[Size] = None,
    gap: float = 0.0,
) -> List[Panel]:
    """
    Convenience function to optimize a layout.

    Args:
        panels: Panels in creation order
        grid_size: Grid used for snapping and search steps
        minimize_overlaps: Move panels until no visible pair overlaps
        compact_layout: Snap to grid and sweep panels toward the origin
        container_size: Optional workspace size to stay inside
        gap: Minimum clearance between panels

    Returns:
        Optimized copies of the panels, in input order
    """
    config = OptimizerConfig(
        grid_size=grid_size,
        minimize_overlaps=minimize_overlaps,
        compact_layout=compact_layout,
        gap=gap,
        container_size=container_size,
    )
    return LayoutOptimizer(panels, config).optimize().panels

