"""
Layout Validation

Rule checks over a complete layout (duplicate ids, container bounds, size
limits, overlaps) plus summary metrics for reports.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..layout.abstraction import Panel, Position, Rect, Size
from ..layout.collision import CollisionDetector
from ..placement.bounds import calculate_minimum_bounds
from ..placement.constraints import check_size

logger = logging.getLogger(__name__)

# Thresholds for suggestions
MANY_PANELS = 20
DENSE_UTILIZATION = 80.0  # percent


@dataclass
class LayoutViolation:
    """A layout rule violation."""
    rule: str
    severity: str  # "error", "warning"
    message: str
    items: List[str]  # Affected panel ids


@dataclass
class ValidationResult:
    """Outcome of validating a layout."""
    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    violations: List[LayoutViolation] = field(default_factory=list)


@dataclass
class LayoutMetrics:
    """Summary numbers for a layout."""
    total_panels: int = 0
    total_area: float = 0.0
    used_area: float = 0.0
    free_area: float = 0.0
    utilization: float = 0.0  # percent of the container covered
    average_panel_size: Size = field(default_factory=Size)
    overlapping_pairs: int = 0
    bounding_box: Optional[Rect] = None
    center_of_mass: Position = field(default_factory=Position)

    def to_dict(self) -> Dict:
        return {
            "totalPanels": self.total_panels,
            "totalArea": self.total_area,
            "usedArea": self.used_area,
            "freeArea": self.free_area,
            "utilization": round(self.utilization, 2),
            "averagePanelSize": self.average_panel_size.to_dict(),
            "overlappingPairs": self.overlapping_pairs,
            "boundingBox": self.bounding_box.to_dict() if self.bounding_box else None,
            "centerOfMass": self.center_of_mass.to_dict(),
        }


def find_overlapping_pairs(panels: Sequence[Panel], gap: float = 0.0) -> List[Tuple[str, str]]:
    """Visible overlapping pairs, each as (earlier id, later id) in input order."""
    detector = CollisionDetector(gap=gap)
    pairs = []
    for panel in panels:
        if not panel.visible:
            continue
        for other in detector.find_collisions(panel).panels:
            pairs.append((other.id, panel.id))
        detector.add(panel)
    return pairs


class LayoutValidator:
    """Layout rule checker."""

    def __init__(self, container_size: Size, gap: float = 0.0):
        self.container_size = container_size
        self.gap = gap
        self.violations: List[LayoutViolation] = []

    def run_checks(self, panels: Sequence[Panel]) -> Tuple[bool, List[LayoutViolation]]:
        """
        Run all layout checks.

        Returns:
            (passed, violations) - passed is True if no errors
        """
        self.violations = []

        unique = self._check_duplicate_ids(panels)
        self._check_bounds(unique)
        self._check_size_limits(unique)
        self._check_overlaps(unique)

        passed = not any(v.severity == "error" for v in self.violations)
        return (passed, self.violations)

    def _check_duplicate_ids(self, panels: Sequence[Panel]) -> List[Panel]:
        """Report repeated ids; later checks only see the first panel per id."""
        seen = set()
        unique = []
        for panel in panels:
            if panel.id in seen:
                self.violations.append(LayoutViolation(
                    rule="duplicate_id",
                    severity="error",
                    message=f"Duplicate panel ID: {panel.id}",
                    items=[panel.id],
                ))
                continue
            seen.add(panel.id)
            unique.append(panel)
        return unique

    def _check_bounds(self, panels: Sequence[Panel]):
        container = Rect(0.0, 0.0, self.container_size.width, self.container_size.height)
        for panel in panels:
            bounds = panel.get_bounds()
            if bounds.x < 0 or bounds.y < 0:
                self.violations.append(LayoutViolation(
                    rule="negative_position",
                    severity="error",
                    message=f"Panel {panel.id} has negative position",
                    items=[panel.id],
                ))
            elif not container.contains(bounds):
                self.violations.append(LayoutViolation(
                    rule="container_bounds",
                    severity="error",
                    message=f"Panel {panel.id} extends beyond container bounds",
                    items=[panel.id],
                ))

    def _check_size_limits(self, panels: Sequence[Panel]):
        for panel in panels:
            for problem in check_size(panel.size, panel.constraints):
                self.violations.append(LayoutViolation(
                    rule="size_limit",
                    severity="error",
                    message=f"Panel {panel.id}: {problem}",
                    items=[panel.id],
                ))

    def _check_overlaps(self, panels: Sequence[Panel]):
        for first, second in find_overlapping_pairs(panels, self.gap):
            self.violations.append(LayoutViolation(
                rule="overlap",
                severity="error",
                message=f"Panels {first} and {second} overlap",
                items=[first, second],
            ))

    def get_summary(self) -> str:
        """Get summary of check results."""
        if not self.violations:
            return "Layout passed with no violations."

        errors = sum(1 for v in self.violations if v.severity == "error")
        warnings = sum(1 for v in self.violations if v.severity == "warning")

        lines = [f"Layout: {errors} errors, {warnings} warnings", ""]
        for v in self.violations:
            prefix = "[ERROR]" if v.severity == "error" else "[WARN]"
            lines.append(f"{prefix} {v.message}")
        return "\n".join(lines)


def calculate_layout_metrics(panels: Sequence[Panel], container_size: Size) -> LayoutMetrics:
    """Utilization, bounding box, center of mass and overlap count."""
    total_area = container_size.width * container_size.height
    if not panels:
        return LayoutMetrics(total_area=total_area, free_area=total_area)

    count = len(panels)
    used_area = sum(p.size.area for p in panels)
    centers = [p.get_bounds().center for p in panels]

    return LayoutMetrics(
        total_panels=count,
        total_area=total_area,
        used_area=used_area,
        free_area=max(total_area - used_area, 0.0),
        utilization=(used_area / total_area * 100.0) if total_area > 0 else 0.0,
        average_panel_size=Size(
            sum(p.size.width for p in panels) / count,
            sum(p.size.height for p in panels) / count,
        ),
        overlapping_pairs=len(find_overlapping_pairs(panels)),
        bounding_box=calculate_minimum_bounds(panels),
        center_of_mass=Position(
            sum(c.x for c in centers) / count,
            sum(c.y for c in centers) / count,
        ),
    )


def validate_layout(
    panels: Sequence[Panel],
    container_size: Size,
    gap: float = 0.0,
) -> ValidationResult:
    """
    Validate a layout.

    Args:
        panels: Panels to check
        container_size: Workspace size
        gap: Minimum clearance between panels

    Returns:
        ValidationResult; valid is False when any error was found
    """
    validator = LayoutValidator(container_size, gap)
    passed, violations = validator.run_checks(panels)

    result = ValidationResult(valid=passed, violations=list(violations))
    for v in violations:
        if v.severity == "error":
            result.errors.append(v.message)
        else:
            result.warnings.append(v.message)

    if len(panels) > MANY_PANELS:
        result.suggestions.append("Consider reducing the number of panels for better performance")
    metrics = calculate_layout_metrics(panels, container_size)
    if metrics.utilization > DENSE_UTILIZATION:
        result.suggestions.append(
            "Layout is very dense - consider increasing container size or reducing panel sizes"
        )
    if any(v.rule == "overlap" for v in violations):
        result.suggestions.append("Run layout optimization to resolve overlapping panels")

    if not passed:
        logger.debug("validate_layout: %d errors", len(result.errors))
    return result
