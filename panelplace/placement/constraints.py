"""
Size Constraints

Enforces per-panel size rules during resizing. The pipeline always runs in
the same order:

1. Clamp to min/max size
2. Restore the aspect ratio (when locked by modifier or by the constraint)
3. Snap to a common preset size or to the grid (when snapping is enabled)

Each stage records what it changed so previews can show why the size
differs from what the pointer asked for.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..layout.abstraction import PanelConstraints, Size
from ..layout.grid import snap_to_common_sizes

logger = logging.getLogger(__name__)


class ConstraintType(Enum):
    """Stages of the size constraint pipeline."""
    MIN_SIZE = "min_size"
    MAX_SIZE = "max_size"
    ASPECT_RATIO = "aspect_ratio"
    SNAP = "snap"


@dataclass
class SizeAdjustment:
    """One change made to a single dimension."""
    dimension: str  # "width" or "height"
    from_value: float
    to_value: float
    reason: ConstraintType

    def describe(self) -> str:
        return (f"{self.dimension} {self.from_value:g} -> {self.to_value:g} "
                f"({self.reason.value})")


@dataclass
class ConstraintResult:
    """Constrained size plus a record of what happened to the request."""
    size: Size
    violations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    adjustments: List[SizeAdjustment] = field(default_factory=list)

    @property
    def adjusted(self) -> bool:
        return bool(self.adjustments)


def check_size(size: Size, constraints: PanelConstraints) -> List[str]:
    """Limits broken by a size. Empty list means the size is acceptable."""
    problems = []
    min_size = constraints.min_size
    max_size = constraints.max_size

    if size.width < min_size.width:
        problems.append(f"Width {size.width:g} below minimum {min_size.width:g}")
    if size.height < min_size.height:
        problems.append(f"Height {size.height:g} below minimum {min_size.height:g}")
    if max_size is not None:
        if size.width > max_size.width:
            problems.append(f"Width {size.width:g} above maximum {max_size.width:g}")
        if size.height > max_size.height:
            problems.append(f"Height {size.height:g} above maximum {max_size.height:g}")
    return problems


def _limits(constraints: PanelConstraints, dimension: str):
    lo = getattr(constraints.min_size, dimension)
    hi = math.inf
    if constraints.max_size is not None:
        hi = getattr(constraints.max_size, dimension)
    # A max below the min is a configuration mistake; the min wins
    return lo, max(lo, hi)


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def _snap_dimension(value: float, grid: float, lo: float, hi: float) -> float:
    """Round to the grid without leaving [lo, hi]."""
    snapped = math.floor(value / grid + 0.5) * grid
    if snapped < lo:
        snapped = math.ceil(lo / grid) * grid
    if snapped > hi:
        snapped = math.floor(hi / grid) * grid
    if snapped < lo or snapped > hi:
        # No grid multiple inside the range
        return value
    return snapped


class _Pipeline:
    """Mutable working state for one enforce_constraints call."""

    def __init__(self, size: Size, constraints: PanelConstraints):
        self.width = size.width
        self.height = size.height
        self.constraints = constraints
        self.result = ConstraintResult(size=Size(size.width, size.height))

    def set(self, dimension: str, value: float, reason: ConstraintType):
        current = getattr(self, dimension)
        if math.isclose(current, value, abs_tol=1e-9):
            return
        adjustment = SizeAdjustment(dimension, current, value, reason)
        self.result.adjustments.append(adjustment)
        self.result.warnings.append(adjustment.describe())
        setattr(self, dimension, value)

    def clamp(self, dimension: str):
        lo, hi = _limits(self.constraints, dimension)
        value = getattr(self, dimension)
        if value < lo:
            self.set(dimension, lo, ConstraintType.MIN_SIZE)
        elif value > hi:
            self.set(dimension, hi, ConstraintType.MAX_SIZE)

    def finish(self) -> ConstraintResult:
        self.result.size = Size(self.width, self.height)
        return self.result


def _target_ratio(
    constraints: PanelConstraints,
    original_size: Optional[Size],
    aspect_locked: bool,
):
    """Return (ratio, tolerance) to enforce, or None when the ratio is free."""
    aspect = constraints.aspect_ratio
    if aspect is not None and aspect.enforce_on_resize and aspect.ratio > 0:
        return aspect.ratio, aspect.tolerance
    if aspect_locked:
        if original_size is not None and original_size.ratio > 0:
            return original_size.ratio, 0.0
        if aspect is not None and aspect.ratio > 0:
            return aspect.ratio, 0.0
    return None


def enforce_constraints(
    new_size: Size,
    constraints: PanelConstraints,
    original_size: Optional[Size] = None,
    aspect_locked: bool = False,
) -> ConstraintResult:
    """
    Run the size constraint pipeline on a requested size.

    Args:
        new_size: Size the pointer asked for
        constraints: Panel constraints
        original_size: Size at the start of the resize, used for aspect
            locking and to decide which dimension the user is driving
        aspect_locked: Live aspect-lock modifier state (shift)

    Returns:
        ConstraintResult; violations name the limits the requested size
        broke, warnings describe each adjustment
    """
    pipeline = _Pipeline(new_size, constraints)
    pipeline.result.violations = check_size(new_size, constraints)

    # 1. Min/max
    pipeline.clamp("width")
    pipeline.clamp("height")

    # 2. Aspect ratio
    target = _target_ratio(constraints, original_size, aspect_locked)
    if target is not None and pipeline.height > 0:
        ratio, tolerance = target
        current = pipeline.width / pipeline.height
        if abs(current - ratio) > tolerance + 1e-9:
            reference = original_size or new_size
            dw = abs(pipeline.width - reference.width)
            dh = abs(pipeline.height - reference.height)
            if dw >= dh:
                pipeline.set("height", pipeline.width / ratio, ConstraintType.ASPECT_RATIO)
                pipeline.clamp("height")
            else:
                pipeline.set("width", pipeline.height * ratio, ConstraintType.ASPECT_RATIO)
                pipeline.clamp("width")

    # 3. Snapping
    snap = constraints.snap
    if snap is not None and snap.enabled:
        w_lo, w_hi = _limits(constraints, "width")
        h_lo, h_hi = _limits(constraints, "height")
        preset = snap_to_common_sizes(
            Size(pipeline.width, pipeline.height),
            snap.common_sizes,
            snap.snap_distance,
        )
        if (preset is not None and w_lo <= preset.width <= w_hi and
                h_lo <= preset.height <= h_hi):
            pipeline.set("width", preset.width, ConstraintType.SNAP)
            pipeline.set("height", preset.height, ConstraintType.SNAP)
        elif snap.grid_size > 0:
            pipeline.set("width",
                         _snap_dimension(pipeline.width, snap.grid_size, w_lo, w_hi),
                         ConstraintType.SNAP)
            pipeline.set("height",
                         _snap_dimension(pipeline.height, snap.grid_size, h_lo, h_hi),
                         ConstraintType.SNAP)

    result = pipeline.finish()
    if logger.isEnabledFor(logging.DEBUG) and result.adjustments:
        logger.debug("enforce_constraints: %gx%g -> %gx%g (%d adjustments)",
                     new_size.width, new_size.height,
                     result.size.width, result.size.height,
                     len(result.adjustments))
    return result
