"""Tests for container bounds and free-space search."""

import pytest

from panelplace.layout.abstraction import Position, Rect, Size
from panelplace.layout.collision import is_valid_position
from panelplace.placement.bounds import (
    calculate_available_space,
    calculate_minimum_bounds,
    constrain_position,
    constrain_size,
    container_rect,
    find_optimal_position,
)


class TestConstrain:
    """Tests for clamping into the container."""

    def test_position_clamped_inside(self, container):
        assert constrain_position(Position(1100, 700), Size(200, 150), container) == Position(1000, 650)
        assert constrain_position(Position(-30, -5), Size(200, 150), container) == Position(0, 0)

    def test_oversized_axis_pins_to_origin(self, container):
        assert constrain_position(Position(50, 50), Size(1300, 100), container) == Position(0, 50)

    def test_rect_container_with_offset(self):
        bounds = Rect(100, 100, 500, 500)
        assert constrain_position(Position(0, 0), Size(50, 50), bounds) == Position(100, 100)

    def test_size_clamped_to_room(self, container):
        assert constrain_size(Size(50, 900), Size(100, 100), None, container,
                              Position(0, 0)) == Size(100, 800)

    def test_minimum_wins(self, container):
        size = constrain_size(Size(300, 300), Size(100, 100), None, container, Position(1150, 0))
        assert size.width == 100

    def test_padding(self, container):
        assert container_rect(container, padding=10) == Rect(10, 10, 1180, 780)


class TestFindOptimalPosition:
    """Tests for first-free-slot placement."""

    def test_empty_container(self, container):
        assert find_optimal_position(Size(100, 100), [], container) == Position(0, 0)

    def test_row_major_scan(self, sample_panels, container):
        """First slot to the right of the calendar on the top row."""
        assert find_optimal_position(Size(100, 100), sample_panels, container) == Position(300, 0)

    def test_result_is_free(self, sample_panels, container):
        size = Size(250, 250)
        result = find_optimal_position(size, sample_panels, container)
        assert is_valid_position(result, size, sample_panels, bounds=container_rect(container))

    def test_padding(self, container):
        assert find_optimal_position(Size(100, 100), [], container, padding=20) == Position(20, 20)

    def test_gap(self, calendar_panel, container):
        assert find_optimal_position(Size(100, 100), [calendar_panel], container,
                                     gap=10) == Position(320, 0)

    def test_full_container_terminates(self, panel_factory):
        full = [panel_factory("full", 0, 0, 200, 200)]
        assert find_optimal_position(Size(100, 100), full, Size(200, 200)) == Position(0, 0)


class TestAvailableSpace:
    """Tests for free-space reporting."""

    def test_empty_container(self):
        space = calculate_available_space([], Size(1000, 500))
        assert space.regions == [Rect(0, 0, 1000, 500)]
        assert space.total_area == 500000

    def test_single_panel(self, panel_factory):
        space = calculate_available_space([panel_factory("p", 0, 0, 400, 500)], Size(1000, 500))
        assert space.regions == [Rect(400, 0, 600, 500)]
        assert space.largest_region == Rect(400, 0, 600, 500)
        assert space.total_area == 300000

    def test_overlapping_panels_counted_once(self, overlapping_panels):
        space = calculate_available_space(overlapping_panels[:2], Size(1000, 1000))
        assert space.total_area == pytest.approx(1000 * 1000 - 70000)

    def test_panel_clipped_to_container(self, panel_factory):
        space = calculate_available_space([panel_factory("p", 900, 0, 200, 100)], Size(1000, 500))
        assert space.total_area == pytest.approx(490000)

    def test_regions_do_not_cover_panels(self, sample_panels, container):
        space = calculate_available_space(sample_panels, container)
        for region in space.regions:
            for panel in sample_panels:
                assert not region.intersects(panel.get_bounds())

    def test_minimum_bounds(self, sample_panels):
        assert calculate_minimum_bounds(sample_panels) == Rect(0, 0, 600, 400)
        assert calculate_minimum_bounds([]) is None
