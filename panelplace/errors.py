"""
PanelPlace error types.

Geometry code never raises for soft conditions (collisions, limit breaks,
container overflow); those travel as ViolationKind values on preview and
commit results. The exceptions below signal misuse of the API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ViolationKind(Enum):
    """Soft conditions reported during previews and commits."""
    CONSTRAINT_VIOLATION = "constraint"
    COLLISION = "collision"
    BOUNDS_EXCEEDED = "bounds"
    VALIDATION = "validation"


@dataclass
class Violation:
    """A soft condition attached to a preview."""
    kind: ViolationKind
    message: str
    items: List[str] = field(default_factory=list)  # Other panel ids involved


class PanelPlaceError(Exception):
    """Base class for layout engine errors."""
    pass


class PanelNotFoundError(PanelPlaceError):
    """A panel id does not exist in the layout store."""

    def __init__(self, panel_id: str):
        self.panel_id = panel_id
        super().__init__(f"Panel {panel_id} not found")


class DuplicatePanelError(PanelPlaceError):
    """A panel with the same id is already present."""

    def __init__(self, panel_id: str):
        self.panel_id = panel_id
        super().__init__(f"Panel {panel_id} already exists")


class PlacementError(PanelPlaceError):
    """No free spot inside the container can hold a panel."""

    def __init__(self, panel_id: str, reason: str):
        self.panel_id = panel_id
        super().__init__(f"Cannot place panel {panel_id}: {reason}")


class SessionStateError(PanelPlaceError):
    """A session operation was called in the wrong state."""
    pass


class ConfigError(PanelPlaceError):
    """Configuration file is missing, malformed or holds bad values."""
    pass
