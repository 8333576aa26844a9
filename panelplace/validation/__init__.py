"""Layout validation and metrics."""

from .layout_check import (
    LayoutMetrics,
    LayoutValidator,
    LayoutViolation,
    ValidationResult,
    calculate_layout_metrics,
    validate_layout,
)

__all__ = [
    "LayoutMetrics",
    "LayoutValidator",
    "LayoutViolation",
    "ValidationResult",
    "calculate_layout_metrics",
    "validate_layout",
]
