import pytest

from sched2anim.geo.geodesic import coordinate_distance
from sched2anim.geo.linearroute import LinearizedRoute, LinearizedRouteCache
from sched2anim.model.types import RouteGeometry


def test_total_length(route_geometry):
    linearized_route: LinearizedRoute = LinearizedRoute(route_geometry)

    assert linearized_route.total_length == pytest.approx(coordinate_distance((8.3990, 49.0), (8.4150, 49.0)), rel=1e-6)
    assert not linearized_route.is_empty()


def test_round_trip(route_geometry):
    linearized_route: LinearizedRoute = LinearizedRoute(route_geometry)

    for distance in [0.0, 10.0, 250.0, 587.5, 1000.0, linearized_route.total_length]:
        coordinate, bearing = linearized_route.from_linear(distance)

        assert linearized_route.to_linear(coordinate) == pytest.approx(distance, abs=0.5)
        assert bearing == pytest.approx(90.0, abs=0.1)


def test_from_linear_clamps(route_geometry):
    linearized_route: LinearizedRoute = LinearizedRoute(route_geometry)

    start, _ = linearized_route.from_linear(-100.0)
    end, _ = linearized_route.from_linear(linearized_route.total_length + 100.0)

    assert start == pytest.approx((8.3990, 49.0))
    assert end == pytest.approx((8.4150, 49.0))


def test_locate_reports_offset(route_geometry):
    linearized_route: LinearizedRoute = LinearizedRoute(route_geometry)

    # roughly 111m north of the track
    linear_position, offset = linearized_route.locate((8.4030, 49.001))

    assert offset == pytest.approx(111.2, abs=1.0)
    assert linear_position == pytest.approx(coordinate_distance((8.3990, 49.0), (8.4030, 49.0)), abs=1.0)


def test_chain_reverses_segments():
    geometry: RouteGeometry = RouteGeometry(route_id='R2', segments=[
        [(8.401, 49.0), (8.400, 49.0)],
        [(8.401, 49.0), (8.402, 49.0)],
        [(8.403, 49.0), (8.402, 49.0)]
    ])

    linearized_route: LinearizedRoute = LinearizedRoute(geometry)

    assert linearized_route.coordinates == [(8.400, 49.0), (8.401, 49.0), (8.402, 49.0), (8.403, 49.0)]


def test_bearing_disambiguates_overlapping_directions():
    # out and back on nearly the same coordinates
    geometry: RouteGeometry = RouteGeometry(route_id='R3', segments=[
        [(8.400, 49.0), (8.405, 49.0)],
        [(8.405, 49.00002), (8.400, 49.00002)]
    ])

    linearized_route: LinearizedRoute = LinearizedRoute(geometry)
    coordinate: tuple = (8.402, 49.00001)

    eastbound: float = linearized_route.to_linear(coordinate, 90.0)
    westbound: float = linearized_route.to_linear(coordinate, 270.0)

    assert eastbound < linearized_route.total_length / 2
    assert westbound > linearized_route.total_length / 2
    assert linearized_route.is_forward(eastbound, 90.0)
    assert not linearized_route.is_forward(eastbound, 270.0)


def test_empty_route():
    linearized_route: LinearizedRoute = LinearizedRoute(RouteGeometry(route_id='R4', segments=[]))

    assert linearized_route.is_empty()
    assert linearized_route.from_linear(10.0) == ((0.0, 0.0), 0.0)
    assert linearized_route.locate((8.4, 49.0)) == (0.0, float('inf'))


def test_cache_reuses_identical_geometry(route_geometry):
    route_cache: LinearizedRouteCache = LinearizedRouteCache()

    first: LinearizedRoute = route_cache.get(route_geometry)

    assert route_cache.get(route_geometry) is first
    assert route_cache.lookup('R1') is first


def test_cache_reuses_same_version(route_geometry):
    route_cache: LinearizedRouteCache = LinearizedRouteCache()
    first: LinearizedRoute = route_cache.get(route_geometry)

    refreshed: RouteGeometry = RouteGeometry(route_id='R1', segments=list(route_geometry.segments), version='v1')

    assert route_cache.get(refreshed) is first


def test_cache_rebuilds_on_change(route_geometry):
    route_cache: LinearizedRouteCache = LinearizedRouteCache()
    first: LinearizedRoute = route_cache.get(route_geometry)

    changed: RouteGeometry = RouteGeometry(route_id='R1', segments=[[(8.40, 49.0), (8.41, 49.0)]], version='v2')
    unversioned: RouteGeometry = RouteGeometry(route_id='R1', segments=[[(8.40, 49.0), (8.41, 49.0)]])

    second: LinearizedRoute = route_cache.get(changed)
    assert second is not first
    assert route_cache.get(unversioned) is not second


def test_cache_ignores_empty_version():
    route_cache: LinearizedRouteCache = LinearizedRouteCache()
    first: LinearizedRoute = route_cache.get(RouteGeometry(route_id='R1', segments=[[(8.40, 49.0), (8.41, 49.0)]], version=''))

    changed: RouteGeometry = RouteGeometry(route_id='R1', segments=[[(8.40, 49.0), (8.42, 49.0)]], version='')

    assert route_cache.get(changed) is not first


def test_cache_retain(route_geometry):
    route_cache: LinearizedRouteCache = LinearizedRouteCache()
    route_cache.get(route_geometry)

    route_cache.retain({'R2'})

    assert len(route_cache) == 0
    assert route_cache.lookup('R1') is None
