"""Placement: bounds resolution, size constraints and layout optimization."""

from .bounds import (
    AvailableSpace,
    calculate_available_space,
    calculate_minimum_bounds,
    constrain_position,
    constrain_size,
    find_optimal_position,
)
from .constraints import (
    ConstraintResult,
    ConstraintType,
    check_size,
    enforce_constraints,
)
from .optimizer import (
    LayoutOptimizer,
    OptimizerConfig,
    OptimizationResult,
    optimize_layout,
)

__all__ = [
    "AvailableSpace",
    "calculate_available_space",
    "calculate_minimum_bounds",
    "constrain_position",
    "constrain_size",
    "find_optimal_position",
    "ConstraintResult",
    "ConstraintType",
    "check_size",
    "enforce_constraints",
    "LayoutOptimizer",
    "OptimizerConfig",
    "OptimizationResult",
    "optimize_layout",
]
