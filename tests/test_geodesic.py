import math
import pytest

from sched2anim.common.shared import EARTH_RADIUS_METERS
from sched2anim.geo.geodesic import bearing, bearing_difference, coordinate_distance, destination, distance, interpolate_along_line, line_length, synthetic_line


def test_distance_one_degree_latitude():
    expected: float = EARTH_RADIUS_METERS * math.pi / 180

    assert distance(8.4, 49.0, 8.4, 50.0) == pytest.approx(expected, rel=1e-9)
    assert distance(8.4, 49.0, 8.4, 49.0) == 0.0


def test_distance_is_symmetric():
    assert distance(8.4, 49.0, 8.41, 49.01) == pytest.approx(distance(8.41, 49.01, 8.4, 49.0))


def test_bearing_cardinal_directions():
    assert bearing(0.0, 0.0, 0.0, 1.0) == pytest.approx(0.0)
    assert bearing(0.0, 0.0, 1.0, 0.0) == pytest.approx(90.0)
    assert bearing(0.0, 1.0, 0.0, 0.0) == pytest.approx(180.0)
    assert bearing(1.0, 0.0, 0.0, 0.0) == pytest.approx(270.0)


def test_bearing_difference():
    assert bearing_difference(350.0, 10.0) == pytest.approx(20.0)
    assert bearing_difference(10.0, 350.0) == pytest.approx(20.0)
    assert bearing_difference(0.0, 180.0) == pytest.approx(180.0)
    assert bearing_difference(90.0, 90.0) == 0.0


def test_interpolate_degenerate_lines():
    assert interpolate_along_line([], 0.5) == (0.0, 0.0)
    assert interpolate_along_line([(8.4, 49.0)], 0.5) == (8.4, 49.0)


def test_interpolate_clamps_progress():
    line: list = [(8.40, 49.0), (8.41, 49.0)]

    assert interpolate_along_line(line, -0.5) == (8.40, 49.0)
    assert interpolate_along_line(line, 1.5) == (8.41, 49.0)


def test_interpolate_is_monotonic():
    line: list = [(8.400, 49.000), (8.402, 49.000), (8.402, 49.002), (8.405, 49.003)]

    last_distance: float = -1.0
    for i in range(0, 21):
        point = interpolate_along_line(line, i / 20)
        distance_from_start: float = line_length(line) * i / 20

        assert coordinate_distance(line[0], point) <= distance_from_start + 1e-3

        # distance walked along the line grows with progress
        walked: float = _walked_distance(line, point)
        assert walked >= last_distance - 1e-6
        last_distance = walked


def test_interpolate_midpoint_of_straight_line():
    point = interpolate_along_line([(8.40, 49.0), (8.42, 49.0)], 0.5)

    assert point[0] == pytest.approx(8.41)
    assert point[1] == pytest.approx(49.0)


def test_synthetic_line():
    points: list = synthetic_line((8.40, 49.0), (8.44, 49.04))

    assert len(points) == 5
    assert points[0] == (8.40, 49.0)
    assert points[2] == pytest.approx((8.42, 49.02))
    assert points[-1] == pytest.approx((8.44, 49.04))


def test_destination_matches_distance_and_bearing():
    start: tuple = (8.4, 49.0)
    target = destination(start, 45.0, 1000.0)

    assert coordinate_distance(start, target) == pytest.approx(1000.0, rel=1e-6)
    assert bearing(start[0], start[1], target[0], target[1]) == pytest.approx(45.0, abs=1e-3)


def _walked_distance(line: list, point: tuple) -> float:
    walked: float = 0.0
    for i in range(0, len(line) - 1):
        piece_length: float = coordinate_distance(line[i], line[i + 1])
        to_point: float = coordinate_distance(line[i], point)
        from_point: float = coordinate_distance(point, line[i + 1])

        if abs(to_point + from_point - piece_length) < 1e-3:
            return walked + to_point

        walked += piece_length

    return walked
