"""
Shared test fixtures for PanelPlace tests.

Provides reusable panels, a steppable clock and ready-made workspaces
for testing the geometry helpers and the session API.
"""

import pytest
from typing import List

from panelplace.config import LayoutConfig
from panelplace.layout.abstraction import Panel, PanelConstraints, Position, Size
from panelplace.api.workspace import Workspace


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms / 1000.0


def make_panel(panel_id: str, x: float, y: float, width: float = 200.0,
               height: float = 150.0, **kwargs) -> Panel:
    return Panel(
        id=panel_id,
        component=kwargs.pop("component", "widget"),
        position=Position(x, y),
        size=Size(width, height),
        **kwargs,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def container() -> Size:
    """The default 1200x800 workspace."""
    return Size(1200, 800)


@pytest.fixture
def calendar_panel() -> Panel:
    """A panel at the top-left corner."""
    return make_panel("calendar", 0, 0, 300, 200, component="calendar",
                      metadata={"title": "Calendar"})


@pytest.fixture
def notes_panel() -> Panel:
    """A panel to the right of the calendar."""
    return make_panel("notes", 400, 0, 200, 200, component="notes")


@pytest.fixture
def weather_panel() -> Panel:
    """A panel below the calendar."""
    return make_panel("weather", 0, 300, 200, 100, component="weather")


@pytest.fixture
def sample_panels(calendar_panel, notes_panel, weather_panel) -> List[Panel]:
    """Three non-overlapping panels."""
    return [calendar_panel, notes_panel, weather_panel]


@pytest.fixture
def overlapping_panels() -> List[Panel]:
    """Two panels that overlap and one that does not."""
    return [
        make_panel("a", 0, 0, 200, 200),
        make_panel("b", 100, 100, 200, 200),
        make_panel("c", 800, 500, 200, 200),
    ]


@pytest.fixture
def workspace(clock, container) -> Workspace:
    """An empty workspace driven by the fake clock."""
    return Workspace(container, LayoutConfig(), clock=clock)


@pytest.fixture
def populated_workspace(workspace, sample_panels) -> Workspace:
    """Workspace holding the sample panels."""
    for panel in sample_panels:
        workspace.store.add_panel(panel)
    return workspace


@pytest.fixture
def constrained_panel() -> Panel:
    """The resize scenario panel: 300x200 at the origin, min 100x100."""
    return make_panel("A", 0, 0, 300, 200,
                      constraints=PanelConstraints(min_size=Size(100, 100)))


@pytest.fixture
def panel_factory():
    """Build panels as make_panel(id, x, y, width, height, **fields)."""
    return make_panel
