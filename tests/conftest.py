import pytest

from datetime import datetime, timezone

from sched2anim.model.types import Platform, RouteGeometry, SmoothedVehiclePosition, StopTime, Trip, VehicleStatus

LATITUDE: float = 49.0

# straight track along the 49th parallel, stops roughly 500m apart
TRACK: list[tuple[float, float]] = [
    (8.3990, LATITUDE),
    (8.4030, LATITUDE),
    (8.4070, LATITUDE),
    (8.4110, LATITUDE),
    (8.4150, LATITUDE)
]


def at(hour: int, minute: int = 0, second: int = 0) -> int:
    return int(datetime(2026, 3, 2, hour, minute, second, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.fixture
def timestamp():
    return at


@pytest.fixture
def route_geometry() -> RouteGeometry:
    return RouteGeometry(route_id='R1', segments=[list(TRACK)], version='v1', color='#e30613')


@pytest.fixture
def stop_a() -> Platform:
    return Platform(stop_id='A', name='Marktplatz', longitude=8.4000, latitude=LATITUDE)


@pytest.fixture
def stop_b() -> Platform:
    return Platform(stop_id='B', name='Kronenplatz', longitude=8.4068, latitude=LATITUDE)


@pytest.fixture
def stop_c() -> Platform:
    return Platform(stop_id='C', name='Durlacher Tor', longitude=8.4136, latitude=LATITUDE)


@pytest.fixture
def simple_trip(stop_a, stop_b) -> Trip:
    return Trip(
        trip_id='T1',
        route_id='R1',
        line_number='1',
        destination='Kronenplatz',
        stop_times=[
            StopTime(stop=stop_a, planned_time=at(8, 0)),
            StopTime(stop=stop_b, planned_time=at(8, 5))
        ]
    )


@pytest.fixture
def smoothed_position():
    def _smoothed_position(trip_id: str, coordinate: tuple[float, float], bearing: float = 90.0, status: str = VehicleStatus.IN_TRANSIT, **kwargs) -> SmoothedVehiclePosition:
        values: dict = dict(
            trip_id=trip_id,
            route_id='R1',
            line_number='1',
            destination=None,
            rendered_coordinate=coordinate,
            rendered_bearing=bearing,
            target_coordinate=coordinate,
            target_bearing=bearing,
            progress=0.5,
            status=status
        )
        values.update(kwargs)

        return SmoothedVehiclePosition(**values)

    return _smoothed_position
