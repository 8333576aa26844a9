"""Tests for collision detection and overlap avoidance."""

from panelplace.layout.abstraction import Position, Rect, Size
from panelplace.layout.collision import (
    CollisionDetector,
    calculate_overlap,
    check_collision,
    find_collisions,
    is_valid_position,
    prevent_overlap,
)


class TestCheckCollision:
    """Tests for the exact AABB test."""

    def test_overlapping_boxes(self):
        assert check_collision(Rect(0, 0, 100, 100), Rect(50, 50, 100, 100))

    def test_touching_edges_do_not_collide(self):
        assert not check_collision(Rect(0, 0, 100, 100), Rect(100, 0, 100, 100))
        assert not check_collision(Rect(0, 0, 100, 100), Rect(0, 100, 100, 100))

    def test_gap_inflates_test(self):
        """Boxes closer than the gap count as colliding."""
        assert check_collision(Rect(0, 0, 100, 100), Rect(100, 0, 100, 100), gap=10)
        assert not check_collision(Rect(0, 0, 100, 100), Rect(110, 0, 100, 100), gap=10)

    def test_calculate_overlap(self):
        assert calculate_overlap(Rect(0, 0, 100, 100), Rect(50, 60, 100, 100)) == Rect(50, 60, 50, 40)
        assert calculate_overlap(Rect(0, 0, 100, 100), Rect(200, 0, 10, 10)) is None


class TestFindCollisions:
    """Tests for the narrow phase."""

    def test_example_pair_collides(self, panel_factory):
        candidates = [panel_factory("p", 100, 100, 200, 150)]
        result = find_collisions(candidates, Rect(150, 125, 200, 150))

        assert result.colliding is True
        assert result.panel_ids == ["p"]
        assert result.overlaps == [Rect(150, 125, 150, 125)]

    def test_far_subject_does_not_collide(self, panel_factory):
        candidates = [panel_factory("p", 400, 400, 200, 150)]
        result = find_collisions(candidates, Rect(150, 125, 200, 150))

        assert result.colliding is False
        assert result.panels == []

    def test_panel_subject_skips_itself(self, panel_factory):
        a = panel_factory("a", 0, 0, 100, 100)
        assert not find_collisions([a], a).colliding

    def test_invisible_candidates_ignored(self, panel_factory):
        hidden = panel_factory("hidden", 0, 0, 100, 100, visible=False)
        assert not find_collisions([hidden], Rect(10, 10, 10, 10)).colliding

    def test_exclude_id(self, panel_factory):
        a = panel_factory("a", 0, 0, 100, 100)
        assert not find_collisions([a], Rect(10, 10, 10, 10), exclude_id="a").colliding

    def test_is_valid_position(self, sample_panels):
        container = Rect(0, 0, 1200, 800)
        assert is_valid_position(Position(700, 0), Size(100, 100), sample_panels, bounds=container)
        assert not is_valid_position(Position(350, 0), Size(100, 100), sample_panels)
        assert not is_valid_position(Position(1150, 0), Size(100, 100), [], bounds=container)
        assert is_valid_position(Position(0, 0), Size(300, 200), sample_panels,
                                 exclude_id="calendar")


class TestPreventOverlap:
    """Tests for the nearest-free-position search."""

    def test_free_position_kept(self, panel_factory):
        obstacles = [panel_factory("a", 0, 0, 100, 100)]
        assert prevent_overlap(Position(300, 300), Size(100, 100), obstacles) == Position(300, 300)

    def test_ties_go_top_most_first(self, panel_factory):
        """Equal displacements prefer the smallest dy, then the smallest dx."""
        obstacles = [panel_factory("a", 0, 0, 100, 100)]
        result = prevent_overlap(Position(0, 0), Size(100, 100), obstacles, step=20)
        assert result == Position(0, -100)

    def test_bounds_respected(self, panel_factory):
        obstacles = [panel_factory("a", 0, 0, 100, 100)]
        result = prevent_overlap(Position(0, 0), Size(100, 100), obstacles, step=20,
                                 bounds=Rect(0, 0, 1200, 800))
        assert result == Position(100, 0)

    def test_deterministic(self, overlapping_panels):
        args = (Position(120, 120), Size(150, 150), overlapping_panels)
        assert prevent_overlap(*args) == prevent_overlap(*args)

    def test_result_is_free(self, overlapping_panels):
        size = Size(150, 150)
        result = prevent_overlap(Position(120, 120), size, overlapping_panels,
                                 bounds=Rect(0, 0, 1200, 800))
        assert is_valid_position(result, size, overlapping_panels, bounds=Rect(0, 0, 1200, 800))

    def test_cascade_fallback(self, panel_factory):
        """With a tiny search radius the cascade offset finds the spot."""
        obstacles = [panel_factory("big", 0, 0, 200, 200)]
        result = prevent_overlap(Position(0, 0), Size(100, 100), obstacles,
                                 step=20, max_rings=1, stack_offset=30)
        assert result == Position(210, 210)

    def test_stacks_below_when_everything_fails(self, panel_factory):
        obstacles = [panel_factory("big", 0, 0, 200, 200)]
        result = prevent_overlap(Position(0, 0), Size(100, 100), obstacles,
                                 step=20, bounds=Rect(0, 0, 300, 300),
                                 max_rings=1, stack_offset=30)
        assert result == Position(0, 230)

    def test_excluded_obstacle_ignored(self, panel_factory):
        obstacles = [panel_factory("self", 0, 0, 100, 100)]
        result = prevent_overlap(Position(0, 0), Size(100, 100), obstacles, exclude_id="self")
        assert result == Position(0, 0)


class TestCollisionDetector:
    """Tests for the index-backed detector."""

    def test_tracks_updates(self, panel_factory):
        detector = CollisionDetector()
        panel = panel_factory("a", 0, 0, 100, 100)
        detector.add(panel)
        assert detector.find_collisions(Rect(50, 50, 10, 10)).colliding

        panel.position = Position(500, 500)
        detector.update(panel)
        assert not detector.find_collisions(Rect(50, 50, 10, 10)).colliding
        assert detector.find_collisions(Rect(550, 550, 10, 10)).panel_ids == ["a"]

    def test_exclude_ids(self, overlapping_panels):
        detector = CollisionDetector()
        detector.rebuild(overlapping_panels)

        assert detector.find_collisions(overlapping_panels[0]).panel_ids == ["b"]
        assert not detector.find_collisions(overlapping_panels[0], exclude_ids=["b"]).colliding

    def test_gap(self, panel_factory):
        detector = CollisionDetector(gap=10)
        detector.add(panel_factory("a", 0, 0, 100, 100))
        assert detector.find_collisions(Rect(105, 0, 50, 50)).colliding
        assert not detector.find_collisions(Rect(120, 0, 50, 50)).colliding

    def test_remove(self, panel_factory):
        detector = CollisionDetector()
        detector.add(panel_factory("a", 0, 0, 100, 100))
        detector.remove("a")
        assert len(detector) == 0
        assert detector.is_valid_position(Position(0, 0), Size(100, 100))

    def test_prevent_overlap_skips_excluded(self, overlapping_panels):
        detector = CollisionDetector()
        detector.rebuild(overlapping_panels)
        b = overlapping_panels[1]
        result = detector.prevent_overlap(b.position, b.size, exclude_ids=["b"],
                                          bounds=Rect(0, 0, 1200, 800))
        assert result != b.position
        assert detector.is_valid_position(result, b.size, exclude_ids=["b"])
