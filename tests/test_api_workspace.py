"""
Tests for the PanelPlace workspace context.

Tests snapshot export/import through a live workspace, teardown and
isolation between workspaces.
"""

from panelplace.api.workspace import Workspace
from panelplace.layout.abstraction import Position, Size
from panelplace.placement.optimizer import count_overlaps
from panelplace.validation.layout_check import validate_layout


class TestSnapshots:
    """Test export and import on a workspace."""

    def test_round_trip(self, populated_workspace, clock, container):
        snapshot = populated_workspace.export_layout(name="desk")

        target = Workspace(container, clock=clock)
        result = target.import_layout(snapshot)

        assert result.success is True
        assert result.name == "desk"
        assert [(p.id, p.position, p.size) for p in target.store.panels] == \
               [(p.id, p.position, p.size) for p in populated_workspace.store.panels]

    def test_export_writes_deferred_commits(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 0))
        ws.drag.end()
        ws.drag.start("weather")
        ws.drag.move(Position(300, 0))
        ws.drag.end()

        snapshot = ws.export_layout()
        weather = [p for p in snapshot["panels"] if p["id"] == "weather"][0]
        assert weather["position"] == {"x": 300, "y": 300}

    def test_invalid_import_leaves_state(self, populated_workspace):
        before = populated_workspace.store.panels
        result = populated_workspace.import_layout({"version": "1.0.0", "panels": [{"id": 5}]})

        assert result.success is False
        assert result.errors
        assert populated_workspace.store.panels == before

    def test_non_finite_import_rejected_without_raising(self, populated_workspace):
        before = populated_workspace.store.panels
        text = ('{"version": "1.0.0", "panels": [{"id": "a", '
                '"position": {"x": NaN, "y": 0}, "size": {"width": 200, "height": 200}}]}')

        result = populated_workspace.import_layout(text)
        assert result.success is False

        snapshot = {"version": "1.0.0", "panels": [
            {"id": "a", "position": {"x": float("inf"), "y": 0},
             "size": {"width": 200, "height": 200}},
        ]}
        assert populated_workspace.import_layout(snapshot).success is False
        assert populated_workspace.store.panels == before

    def test_import_separates_overlaps(self, workspace):
        snapshot = {
            "version": "1.0.0",
            "panels": [
                {"id": "a", "position": {"x": 0, "y": 0}, "size": {"width": 200, "height": 200}},
                {"id": "b", "position": {"x": 50, "y": 50}, "size": {"width": 200, "height": 200}},
            ],
        }
        result = workspace.import_layout(snapshot)

        assert result.success
        assert count_overlaps(workspace.store.panels) == 0
        assert workspace.store.get_panel("a").position == Position(0, 0)

    def test_import_fits_panels_to_limits_and_container(self, workspace, container):
        snapshot = {
            "version": "1.0.0",
            "panels": [
                {"id": "tiny", "position": {"x": 0, "y": 0}, "size": {"width": 50, "height": 50}},
                {"id": "far", "position": {"x": 5000, "y": 0}, "size": {"width": 200, "height": 200}},
            ],
        }
        result = workspace.import_layout(snapshot)

        assert result.success is True
        assert workspace.store.get_panel("tiny").size == Size(100, 100)
        assert workspace.store.get_panel("far").position == Position(1000, 0)
        assert validate_layout(workspace.store.panels, container).valid

    def test_import_rejects_panel_that_cannot_fit(self, populated_workspace):
        before = populated_workspace.store.panels
        snapshot = {
            "version": "1.0.0",
            "panels": [{
                "id": "huge",
                "position": {"x": 0, "y": 0},
                "size": {"width": 1500, "height": 200},
                "constraints": {"minSize": {"width": 1500, "height": 100}},
            }],
        }
        result = populated_workspace.import_layout(snapshot)

        assert result.success is False
        assert result.panels == []
        assert "Panel huge extends beyond container bounds" in result.errors
        assert populated_workspace.store.panels == before

    def test_import_clears_history(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 0))
        ws.drag.end()

        ws.import_layout(ws.export_layout())

        assert len(ws.history) == 0
        assert ws.undo_last_drag() is None


class TestWorkspaceLifecycle:
    """Test construction, teardown and isolation."""

    def test_from_config_file(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("layout:\n  grid_size: 10\n  container_width: 640\n  container_height: 480\n")

        ws = Workspace.from_config_file(path)

        assert ws.config.grid_size == 10
        assert ws.container_size == Size(640, 480)

    def test_close_flushes_and_unsubscribes(self, populated_workspace):
        ws = populated_workspace
        calls = []
        ws.store.subscribe(lambda store, ids: calls.append(ids))
        ws.drag.start("notes")
        ws.drag.move(Position(200, 0))
        ws.drag.end()
        ws.drag.start("weather")
        ws.drag.move(Position(300, 0))
        ws.drag.end()

        ws.close()

        assert ws.store.get_panel("weather").position == Position(300, 300)
        count = len(calls)
        ws.store.select_panel("notes")
        assert len(calls) == count

    def test_cancel_sessions(self, populated_workspace):
        ws = populated_workspace
        ws.resize.start("notes", "e")
        assert ws.cancel_sessions() is True
        assert ws.cancel_sessions() is False

    def test_workspaces_are_independent(self, clock, container, panel_factory):
        first = Workspace(container, clock=clock)
        second = Workspace(container, clock=clock)
        first.store.add_panel(panel_factory("p", 0, 0))
        first.drag.start("p")
        first.drag.move(Position(100, 0))
        first.drag.end()

        assert len(second.store) == 0
        assert len(second.history) == 0
        assert second.undo_last_drag() is None
