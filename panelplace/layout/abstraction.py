"""
Layout Abstraction Layer

Provides the geometric data model shared by every part of the layout engine:
positions, sizes, axis-aligned rectangles, panel constraints and the panel
descriptor itself. Panels are plain dataclasses; the layout store owns the
authoritative instances and hands out copies to everyone else.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional
import copy


class ResizeDirection(Enum):
    """Resize handle identifiers."""
    NORTH = "n"
    SOUTH = "s"
    EAST = "e"
    WEST = "w"
    NORTH_EAST = "ne"
    NORTH_WEST = "nw"
    SOUTH_EAST = "se"
    SOUTH_WEST = "sw"

    @property
    def affects_width(self) -> bool:
        return "e" in self.value or "w" in self.value

    @property
    def affects_height(self) -> bool:
        return "n" in self.value or "s" in self.value


@dataclass
class Position:
    """Workspace coordinates of a panel's top-left corner."""
    x: float = 0.0
    y: float = 0.0

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)

    def distance_to(self, other: "Position") -> float:
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(x=float(data["x"]), y=float(data["y"]))


@dataclass
class Size:
    """Panel dimensions in workspace units."""
    width: float = 0.0
    height: float = 0.0

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def ratio(self) -> float:
        """Width / height, 0 for a degenerate size."""
        if self.height == 0:
            return 0.0
        return self.width / self.height

    def to_dict(self) -> Dict[str, float]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Size":
        return cls(width=float(data["width"]), height=float(data["height"]))


@dataclass
class Rect:
    """Axis-aligned bounding box (AABB)."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_position_size(cls, position: Position, size: Size) -> "Rect":
        return cls(position.x, position.y, size.width, size.height)

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def center(self) -> Position:
        return Position(self.x + self.width / 2, self.y + self.height / 2)

    def expanded(self, margin: float) -> "Rect":
        """Return new rect grown by margin on all sides."""
        return Rect(
            self.x - margin,
            self.y - margin,
            self.width + 2 * margin,
            self.height + 2 * margin,
        )

    def intersects(self, other: "Rect", gap: float = 0.0) -> bool:
        """Strict overlap test; edges that merely touch do not intersect."""
        return not (
            self.right + gap <= other.left or
            self.left >= other.right + gap or
            self.bottom + gap <= other.top or
            self.top >= other.bottom + gap
        )

    def contains(self, other: "Rect") -> bool:
        """True if other lies entirely inside this rect."""
        return (other.left >= self.left and other.top >= self.top and
                other.right <= self.right and other.bottom <= self.bottom)

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right - left, bottom - top)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class AspectRatio:
    """Aspect-ratio rule attached to a panel."""
    ratio: float
    tolerance: float = 0.1
    enforce_on_resize: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ratio": self.ratio,
            "tolerance": self.tolerance,
            "enforceOnResize": self.enforce_on_resize,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AspectRatio":
        return cls(
            ratio=float(data["ratio"]),
            tolerance=float(data.get("tolerance", 0.1)),
            enforce_on_resize=bool(data.get("enforceOnResize", False)),
        )


@dataclass
class SnapConstraints:
    """Size snapping rules used while resizing."""
    enabled: bool = True
    grid_size: float = 20.0
    snap_distance: float = 15.0
    common_sizes: List[Size] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "gridSize": self.grid_size,
            "snapDistance": self.snap_distance,
            "commonSizes": [s.to_dict() for s in self.common_sizes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnapConstraints":
        return cls(
            enabled=bool(data.get("enabled", True)),
            grid_size=float(data.get("gridSize", 20.0)),
            snap_distance=float(data.get("snapDistance", 15.0)),
            common_sizes=[Size.from_dict(s) for s in data.get("commonSizes", [])],
        )


DEFAULT_MIN_SIZE = Size(100.0, 100.0)


@dataclass
class PanelConstraints:
    """Size limits and resize rules for one panel."""
    min_size: Size = field(default_factory=lambda: Size(DEFAULT_MIN_SIZE.width,
                                                        DEFAULT_MIN_SIZE.height))
    max_size: Optional[Size] = None
    aspect_ratio: Optional[AspectRatio] = None
    snap: Optional[SnapConstraints] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"minSize": self.min_size.to_dict()}
        if self.max_size is not None:
            d["maxSize"] = self.max_size.to_dict()
        if self.aspect_ratio is not None:
            d["aspectRatio"] = self.aspect_ratio.to_dict()
        if self.snap is not None:
            d["snapConstraints"] = self.snap.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PanelConstraints":
        max_size = data.get("maxSize")
        aspect = data.get("aspectRatio")
        snap = data.get("snapConstraints")
        return cls(
            min_size=Size.from_dict(data["minSize"]),
            max_size=Size.from_dict(max_size) if max_size else None,
            aspect_ratio=AspectRatio.from_dict(aspect) if aspect else None,
            snap=SnapConstraints.from_dict(snap) if snap else None,
        )


@dataclass
class Panel:
    """A rectangular panel hosted in the workspace."""
    id: str
    component: str = ""
    position: Position = field(default_factory=Position)
    size: Size = field(default_factory=lambda: Size(DEFAULT_MIN_SIZE.width,
                                                    DEFAULT_MIN_SIZE.height))
    z_index: int = 0
    visible: bool = True
    constraints: PanelConstraints = field(default_factory=PanelConstraints)

    # Interaction state
    selected: bool = False
    dragging: bool = False
    resizing: bool = False

    # Title, description, icon, color
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_bounds(self) -> Rect:
        return Rect.from_position_size(self.position, self.size)

    def moved_to(self, position: Position) -> "Panel":
        """Copy of this panel at another position."""
        return replace(self, position=Position(position.x, position.y))

    def copy(self) -> "Panel":
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (f"Panel({self.id!r}, x={self.position.x:g}, y={self.position.y:g}, "
                f"w={self.size.width:g}, h={self.size.height:g}, z={self.z_index})")


@dataclass
class Modifiers:
    """Keyboard modifier state delivered with pointer events."""
    shift: bool = False  # aspect lock while resizing
    alt: bool = False  # suspend magnetic snapping while dragging
    ctrl: bool = False
    meta: bool = False
