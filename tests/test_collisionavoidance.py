import pytest

from sched2anim.features.collisionavoidance import CollisionAvoidanceFeature
from sched2anim.geo.geodesic import coordinate_distance
from sched2anim.geo.linearroute import LinearizedRoute
from sched2anim.model.types import RenderPosition, VehicleRenderContext, VehicleStatus


@pytest.fixture
def linearized_route(route_geometry) -> LinearizedRoute:
    return LinearizedRoute(route_geometry)


def _vehicles(linearized_route, smoothed_position, placements: list) -> tuple[list, dict]:
    contexts: list = list()
    render_positions: dict = dict()

    for trip_id, linear_position, bearing, status in placements:
        coordinate, _ = linearized_route.from_linear(linear_position)

        contexts.append(VehicleRenderContext(
            trip_id=trip_id,
            route_id='R1',
            linear_position=linear_position,
            smoothed_position=smoothed_position(trip_id, coordinate, bearing=bearing, status=status)
        ))

        render_positions[trip_id] = RenderPosition(coordinate[0], coordinate[1], bearing)

    return contexts, render_positions


def test_trailing_vehicle_falls_back(linearized_route, smoothed_position):
    contexts, render_positions = _vehicles(linearized_route, smoothed_position, [
        ('LEADER', 300.0, 90.0, VehicleStatus.IN_TRANSIT),
        ('TRAILER', 270.0, 90.0, VehicleStatus.IN_TRANSIT)
    ])
    leader_before: RenderPosition = render_positions['LEADER']

    CollisionAvoidanceFeature().process_positions(contexts, render_positions, {'R1': linearized_route})

    assert render_positions['LEADER'] == leader_before
    assert coordinate_distance(render_positions['LEADER'].coordinate, render_positions['TRAILER'].coordinate) == pytest.approx(50.0, abs=1.0)
    assert linearized_route.to_linear(render_positions['TRAILER'].coordinate) == pytest.approx(250.0, abs=1.0)


def test_trailing_vehicle_falls_back_against_line_direction(linearized_route, smoothed_position):
    contexts, render_positions = _vehicles(linearized_route, smoothed_position, [
        ('LEADER', 270.0, 270.0, VehicleStatus.IN_TRANSIT),
        ('TRAILER', 300.0, 270.0, VehicleStatus.IN_TRANSIT)
    ])
    leader_before: RenderPosition = render_positions['LEADER']

    CollisionAvoidanceFeature().process_positions(contexts, render_positions, {'R1': linearized_route})

    assert render_positions['LEADER'] == leader_before
    assert linearized_route.to_linear(render_positions['TRAILER'].coordinate) == pytest.approx(320.0, abs=1.0)
    assert render_positions['TRAILER'].bearing == pytest.approx(270.0, abs=0.1)


def test_distant_vehicles_untouched(linearized_route, smoothed_position):
    contexts, render_positions = _vehicles(linearized_route, smoothed_position, [
        ('LEADER', 300.0, 90.0, VehicleStatus.IN_TRANSIT),
        ('TRAILER', 200.0, 90.0, VehicleStatus.IN_TRANSIT)
    ])
    before: dict = dict(render_positions)

    CollisionAvoidanceFeature().process_positions(contexts, render_positions, {'R1': linearized_route})

    assert render_positions == before


def test_opposite_directions_never_adjusted(linearized_route, smoothed_position):
    contexts, render_positions = _vehicles(linearized_route, smoothed_position, [
        ('LEADER', 300.0, 90.0, VehicleStatus.IN_TRANSIT),
        ('ONCOMING', 290.0, 190.0, VehicleStatus.IN_TRANSIT)
    ])
    before: dict = dict(render_positions)

    CollisionAvoidanceFeature().process_positions(contexts, render_positions, {'R1': linearized_route})

    assert render_positions == before


def test_stationary_vehicles_exempt(linearized_route, smoothed_position):
    contexts, render_positions = _vehicles(linearized_route, smoothed_position, [
        ('LEADER', 300.0, 90.0, VehicleStatus.STOPPED),
        ('DWELLING', 290.0, 90.0, VehicleStatus.STOPPED)
    ])
    before: dict = dict(render_positions)

    CollisionAvoidanceFeature().process_positions(contexts, render_positions, {'R1': linearized_route})

    assert render_positions == before


def test_chain_of_vehicles(linearized_route, smoothed_position):
    contexts, render_positions = _vehicles(linearized_route, smoothed_position, [
        ('FIRST', 400.0, 90.0, VehicleStatus.IN_TRANSIT),
        ('SECOND', 380.0, 90.0, VehicleStatus.IN_TRANSIT),
        ('THIRD', 370.0, 90.0, VehicleStatus.IN_TRANSIT)
    ])

    CollisionAvoidanceFeature().process_positions(contexts, render_positions, {'R1': linearized_route})

    assert linearized_route.to_linear(render_positions['SECOND'].coordinate) == pytest.approx(350.0, abs=1.0)
    assert linearized_route.to_linear(render_positions['THIRD'].coordinate) == pytest.approx(300.0, abs=1.0)


def test_feature_metadata():
    feature: CollisionAvoidanceFeature = CollisionAvoidanceFeature()

    assert feature.id == 'collision-avoidance'
    assert feature.min_separation == 50.0
    assert feature.default_enabled
