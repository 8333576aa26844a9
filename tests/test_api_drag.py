"""
Tests for the PanelPlace drag session controller.

Tests the drag lifecycle, snapping, collision handling, group drags,
throttled commits and single-step undo.
"""

import pytest

from panelplace.api.drag import DragState
from panelplace.api.history import OperationKind
from panelplace.errors import PanelNotFoundError, SessionStateError
from panelplace.layout.abstraction import Modifiers, Position, Size


class TestDragLifecycle:
    """Test start/move/end/cancel."""

    def test_simple_drag_commits(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        preview = ws.drag.move(Position(200, 100))
        result = ws.drag.end()

        assert preview.valid is True
        assert result.accepted == ["notes"]
        assert ws.store.get_panel("notes").position == Position(600, 100)
        assert ws.drag.state == DragState.IDLE

    def test_store_untouched_while_dragging(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 100))

        panel = ws.store.get_panel("notes")
        assert panel.position == Position(400, 0)
        assert panel.dragging is True

    def test_start_selects_and_raises(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("calendar")

        panel = ws.store.get_panel("calendar")
        assert ws.store.selected_ids == ["calendar"]
        assert panel.z_index == ws.store.max_z_index == 4

    def test_cancel_discards(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 100))

        assert ws.drag.cancel() is True
        assert ws.store.get_panel("notes").position == Position(400, 0)
        assert ws.store.get_panel("notes").dragging is False
        assert len(ws.history) == 0
        assert ws.drag.cancel() is False

    def test_move_without_session_raises(self, populated_workspace):
        with pytest.raises(SessionStateError):
            populated_workspace.drag.move(Position(10, 10))
        with pytest.raises(SessionStateError):
            populated_workspace.drag.end()

    def test_unknown_panel(self, populated_workspace):
        with pytest.raises(PanelNotFoundError):
            populated_workspace.drag.start("ghost")

    def test_end_without_movement_commits_nothing(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        assert ws.drag.end() is None
        assert len(ws.history) == 0

    def test_second_start_commits_first_session(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 100))
        ws.drag.start("calendar")

        assert ws.store.get_panel("notes").position == Position(600, 100)
        assert ws.drag.session.panel_id == "calendar"


class TestDragGeometry:
    """Test snapping, clamping and collisions during a drag."""

    def test_magnetic_snap(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        preview = ws.drag.move(Position(203, 107))

        assert preview.snapped is True
        assert preview.positions["notes"] == Position(600, 100)

    def test_alt_suspends_snap(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        preview = ws.drag.move(Position(203, 107), Modifiers(alt=True))

        assert preview.snapped is False
        assert preview.positions["notes"] == Position(603, 107)

    def test_clamped_to_container(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        preview = ws.drag.move(Position(5000, 5000))

        assert preview.positions["notes"] == Position(1000, 600)

    def test_collision_keeps_last_valid_position(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("weather")
        ws.drag.move(Position(300, 0))
        preview = ws.drag.move(Position(0, -250))

        assert preview.valid is False
        assert preview.collisions == ["calendar"]
        assert preview.positions["weather"] == Position(300, 300)

        ws.drag.end()
        assert ws.store.get_panel("weather").position == Position(300, 300)


class TestGroupDrag:
    """Test dragging several selected panels together."""

    def test_companions_follow(self, populated_workspace):
        ws = populated_workspace
        ws.store.select_panel("calendar")
        ws.store.select_panel("weather", multi=True)

        session = ws.drag.start("calendar")
        ws.drag.move(Position(600, 0))
        result = ws.drag.end()

        assert session.panel_ids == ["calendar", "weather"]
        assert result.accepted == ["calendar", "weather"]
        assert ws.store.get_panel("weather").position == Position(600, 300)
        assert [e.operation for e in ws.history.entries] == [OperationKind.GROUP_MOVE] * 2

    def test_colliding_companion_skipped(self, populated_workspace, panel_factory):
        ws = populated_workspace
        ws.store.add_panel(panel_factory("clock", 600, 300, 200, 100))
        ws.store.select_panel("calendar")
        ws.store.select_panel("weather", multi=True)

        ws.drag.start("calendar")
        preview = ws.drag.move(Position(600, 0))

        assert preview.valid is True
        assert preview.skipped == ["weather"]
        assert preview.positions["weather"] == Position(0, 300)

        result = ws.drag.end()
        assert result.accepted == ["calendar"]
        assert ws.store.get_panel("weather").position == Position(0, 300)

    def test_skip_lasts_one_frame(self, populated_workspace, panel_factory):
        ws = populated_workspace
        ws.store.add_panel(panel_factory("clock", 600, 300, 200, 100))
        ws.store.select_panel("calendar")
        ws.store.select_panel("weather", multi=True)

        ws.drag.start("calendar")
        ws.drag.move(Position(600, 0))
        preview = ws.drag.move(Position(600, 100))

        assert preview.skipped == []
        assert preview.positions["weather"] == Position(600, 400)

    def test_group_members_may_not_land_on_each_other(self, workspace, panel_factory):
        """Both panels clamp to the right edge; the frame is refused."""
        ws = workspace
        ws.store.add_panel(panel_factory("a", 600, 0, 200, 150))
        ws.store.add_panel(panel_factory("b", 900, 0, 200, 150))
        ws.store.select_panel("a")
        ws.store.select_panel("b", multi=True)

        ws.drag.start("a")
        preview = ws.drag.move(Position(400, 0))

        assert preview.valid is False
        assert preview.collisions == ["a"]
        assert preview.positions == {"a": Position(600, 0), "b": Position(900, 0)}
        assert ws.drag.end() is None
        assert ws.store.get_panel("a").position == Position(600, 0)
        assert ws.store.get_panel("b").position == Position(900, 0)


class TestUndo:
    """Test single-step undo."""

    def test_undo_restores_once(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 100))
        ws.drag.end()

        entry = ws.drag.undo()

        assert entry.panel_id == "notes"
        assert entry.from_position == Position(400, 0)
        assert entry.to_position == Position(600, 100)
        assert ws.store.get_panel("notes").position == Position(400, 0)
        assert ws.drag.undo() is None
        assert ws.store.get_panel("notes").position == Position(400, 0)

    def test_empty_history(self, workspace):
        assert workspace.drag.undo() is None

    def test_rejected_undo_consumes_entry(self, populated_workspace, panel_factory):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 100))
        ws.drag.end()
        ws.store.add_panel(panel_factory("blocker", 400, 0, 200, 200))

        assert ws.drag.undo() is None
        assert len(ws.history) == 0
        assert ws.store.get_panel("notes").position == Position(600, 100)

    def test_history_bounded(self, clock, container, panel_factory):
        from panelplace.api.workspace import Workspace
        from panelplace.config import LayoutConfig

        ws = Workspace(container, LayoutConfig(history_depth=3, commit_throttle_ms=0), clock)
        ws.store.add_panel(panel_factory("p", 0, 0, 100, 100))
        for _ in range(5):
            ws.drag.start("p")
            ws.drag.move(Position(20, 0))
            ws.drag.end()

        assert len(ws.history) == 3
        assert ws.history.peek().to_position == Position(100, 0)


class TestThrottledCommits:
    """Test commit throttling with the fake clock."""

    def test_commit_inside_interval_deferred(self, populated_workspace, clock):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 0))
        assert ws.drag.end() is not None

        ws.drag.start("weather")
        ws.drag.move(Position(300, 0))
        assert ws.drag.end() is None
        assert ws.store.get_panel("weather").position == Position(0, 300)
        assert ws.poll() is None

        clock.advance(40)
        result = ws.poll()

        assert result.accepted == ["weather"]
        assert ws.store.get_panel("weather").position == Position(300, 300)
        assert len(ws.history) == 2

    def test_undo_flushes_pending(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(200, 0))
        ws.drag.end()
        ws.drag.start("weather")
        ws.drag.move(Position(300, 0))
        ws.drag.end()

        entry = ws.undo_last_drag()

        assert entry.panel_id == "weather"
        assert ws.store.get_panel("weather").position == Position(0, 300)

    def test_preview_listener_debounced(self, populated_workspace, clock):
        ws = populated_workspace
        seen = []
        ws.drag.add_preview_listener(seen.append)

        ws.drag.start("notes")
        for dx in (20, 40, 60):
            ws.drag.move(Position(dx, 0))
        assert len(seen) == 1

        clock.advance(20)
        ws.drag.move(Position(80, 0))
        assert len(seen) == 2
        assert seen[-1].positions["notes"] == Position(480, 0)

    def test_trailing_preview_delivered_on_end(self, populated_workspace):
        ws = populated_workspace
        seen = []
        ws.drag.add_preview_listener(seen.append)

        ws.drag.start("notes")
        for dx in (20, 40, 60):
            ws.drag.move(Position(dx, 0))
        assert len(seen) == 1

        ws.drag.end()
        assert len(seen) == 2
        assert seen[-1].positions["notes"] == Position(460, 0)

    def test_trailing_preview_delivered_on_poll(self, populated_workspace, clock):
        ws = populated_workspace
        seen = []
        ws.drag.add_preview_listener(seen.append)

        ws.drag.start("notes")
        ws.drag.move(Position(20, 0))
        ws.drag.move(Position(40, 0))
        ws.poll()
        assert len(seen) == 1

        clock.advance(20)
        ws.poll()
        assert len(seen) == 2
        assert seen[-1].positions["notes"] == Position(440, 0)

        clock.advance(20)
        ws.poll()
        assert len(seen) == 2

    def test_cancel_drops_pending_preview(self, populated_workspace, clock):
        ws = populated_workspace
        seen = []
        ws.drag.add_preview_listener(seen.append)

        ws.drag.start("notes")
        ws.drag.move(Position(20, 0))
        ws.drag.move(Position(40, 0))
        ws.drag.cancel()
        clock.advance(20)
        ws.poll()

        assert len(seen) == 1


class TestSessionExclusivity:
    """A drag and a resize never run at the same time."""

    def test_resize_start_commits_drag(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(100, 0))

        ws.resize.start("notes", "se")

        assert ws.drag.is_active is False
        assert ws.store.get_panel("notes").position == Position(500, 0)
        ws.resize.move(Position(100, 100))
        assert ws.resize.end().success

        notes = ws.store.get_panel("notes")
        assert notes.position == Position(500, 0)
        assert notes.size == Size(300, 300)
        assert notes.dragging is False
        assert len(ws.history) == 1

    def test_drag_start_commits_resize(self, populated_workspace):
        ws = populated_workspace
        ws.resize.start("notes", "se")
        ws.resize.move(Position(100, 100))

        ws.drag.start("notes")

        assert ws.resize.is_active is False
        assert ws.store.get_panel("notes").size == Size(300, 300)
        ws.drag.move(Position(0, 300))
        ws.drag.end()

        notes = ws.store.get_panel("notes")
        assert notes.position == Position(400, 300)
        assert notes.size == Size(300, 300)
        assert notes.resizing is False

    def test_end_sessions(self, populated_workspace):
        ws = populated_workspace
        ws.drag.start("notes")
        ws.drag.move(Position(100, 0))

        ws.end_sessions()

        assert ws.drag.is_active is False
        assert ws.resize.is_active is False
        assert ws.store.get_panel("notes").position == Position(500, 0)
