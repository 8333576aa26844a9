"""
PanelPlace - Panel Layout Engine

Drag, resize and arrange rectangular panels inside a bounded workspace
while keeping them apart, within their size limits and on the grid.
"""

__version__ = "0.1.0"
__author__ = "PanelPlace Team"

from .layout.abstraction import Panel, PanelConstraints, Position, Size
from .config import LayoutConfig, load_config
from .errors import PanelPlaceError
from .api.workspace import Workspace

__all__ = [
    "Panel",
    "PanelConstraints",
    "Position",
    "Size",
    "LayoutConfig",
    "load_config",
    "PanelPlaceError",
    "Workspace",
]
