import hashlib
import json
import logging
import polyline

from sched2anim.common.shared import unixtimestamp_ms
from sched2anim.model.serialization import deserialize
from sched2anim.model.types import Coordinate, RouteGeometry, StopPlace, Trip, VehicleSupply, resolve_stop_place

TIME_FIELDS: tuple[str, ...] = (
    'planned_time',
    'estimated_time',
    'planned_departure_time',
    'estimated_departure_time'
)


def parse_supply(data: dict, polyline_precision: int = 5) -> VehicleSupply:
    supply: VehicleSupply = VehicleSupply()

    for route_data in data.get('routes', []):
        geometry: RouteGeometry = parse_route_geometry(route_data, polyline_precision)
        supply.geometries[geometry.route_id] = geometry

    for trip_data in data.get('trips', []):
        try:
            supply.trips.append(parse_trip(trip_data))
        except (KeyError, TypeError, ValueError) as ex:
            logging.warning(f"Discarding invalid trip {trip_data.get('trip_id')}: {ex}")

    return supply

def parse_route_geometry(route_data: dict, polyline_precision: int = 5) -> RouteGeometry:
    segments: list[list[Coordinate]] = list()
    for segment in route_data.get('segments', []):
        if isinstance(segment, str):
            # encoded polylines are [lat, lon]
            segments.append([(c[1], c[0]) for c in polyline.decode(segment, polyline_precision)])
        else:
            segments.append([(float(c[0]), float(c[1])) for c in segment])

    version: str|None = route_data.get('version')
    if version is None:
        version = hashlib.sha1(json.dumps(segments).encode('utf-8')).hexdigest()

    return RouteGeometry(
        route_id=str(route_data['route_id']),
        segments=segments,
        version=str(version),
        color=route_data.get('color')
    )

def parse_trip(trip_data: dict) -> Trip:
    trip_data = dict(trip_data)
    trip_data['route_id'] = str(trip_data['route_id'])
    trip_data['line_number'] = str(trip_data['line_number'])
    trip_data['stop_times'] = [_normalize_stop_time(s) for s in trip_data.get('stop_times', [])]

    return deserialize(Trip, trip_data, resolvers={StopPlace: resolve_stop_place})

def _normalize_stop_time(stop_time_data: dict) -> dict:
    stop_time_data = dict(stop_time_data)
    for field_name in TIME_FIELDS:
        value = stop_time_data.get(field_name)
        if isinstance(value, str):
            stop_time_data[field_name] = unixtimestamp_ms(value)

    return stop_time_data
