from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar, Optional

Coordinate = tuple[float, float]


class VehicleStatus:
    WAITING: str = 'waiting'
    STOPPED: str = 'stopped'
    IN_TRANSIT: str = 'in_transit'
    APPROACHING: str = 'approaching'
    COMPLETED: str = 'completed'

    MOVING: tuple[str, ...] = (IN_TRANSIT, APPROACHING)

@dataclass
class StopPlace:
    stop_id: str
    name: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None

    kind: ClassVar[str] = 'stop_place'

    @property
    def display_name(self) -> str:
        return self.name if self.name else self.stop_id

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.longitude is None or self.latitude is None:
            return None

        return (self.longitude, self.latitude)

@dataclass
class Platform(StopPlace):
    kind: ClassVar[str] = 'platform'

@dataclass
class StopPosition(StopPlace):
    kind: ClassVar[str] = 'stop_position'

def resolve_stop_place(data: dict) -> StopPlace:
    kind: str = data.get('kind', data.get('type', 'platform'))
    cls: type = StopPosition if kind == StopPosition.kind else Platform

    # [lat, lon] pairs as delivered by the departure monitor
    if 'coord' in data and data['coord'] is not None and len(data['coord']) == 2:
        latitude, longitude = data['coord']
    else:
        latitude, longitude = data.get('latitude'), data.get('longitude')

    return cls(
        stop_id=str(data.get('stop_id', data.get('id'))),
        name=data.get('name'),
        longitude=float(longitude) if longitude is not None else None,
        latitude=float(latitude) if latitude is not None else None
    )

@dataclass
class StopTime:
    stop: StopPlace
    planned_time: int
    estimated_time: Optional[int] = None
    delay_minutes: Optional[int] = None
    planned_departure_time: Optional[int] = None
    estimated_departure_time: Optional[int] = None

    @property
    def arrival_time(self) -> int:
        return self.estimated_time if self.estimated_time is not None else self.planned_time

    @property
    def departure_time(self) -> int:
        if self.estimated_departure_time is not None:
            return max(self.estimated_departure_time, self.arrival_time)
        if self.planned_departure_time is not None:
            # shift the planned dwell along with the estimated arrival
            return max(self.planned_departure_time - self.planned_time + self.arrival_time, self.arrival_time)

        return self.arrival_time

    @property
    def has_explicit_dwell(self) -> bool:
        return self.departure_time > self.arrival_time

@dataclass
class Trip:
    trip_id: str
    route_id: str
    line_number: str
    destination: Optional[str] = None
    stop_times: list[StopTime] = field(default_factory=list)

@dataclass
class RouteGeometry:
    route_id: str
    segments: list[list[Coordinate]] = field(default_factory=list)
    version: Optional[str] = None
    color: Optional[str] = None

@dataclass
class RawVehiclePosition:
    trip_id: str
    route_id: str
    line_number: str
    destination: Optional[str]
    coordinate: Coordinate
    bearing: float
    progress: float
    status: str
    current_stop: Optional[StopPlace] = None
    next_stop: Optional[StopPlace] = None
    delay_minutes: Optional[int] = None
    is_final_leg: bool = False
    departure_time: Optional[int] = None

@dataclass
class SmoothedVehiclePosition:
    trip_id: str
    route_id: str
    line_number: str
    destination: Optional[str]
    rendered_coordinate: Coordinate
    rendered_bearing: float
    target_coordinate: Coordinate
    target_bearing: float
    progress: float
    status: str
    current_stop: Optional[StopPlace] = None
    next_stop: Optional[StopPlace] = None
    delay_minutes: Optional[int] = None
    is_final_leg: bool = False
    departure_time: Optional[int] = None

@dataclass
class RenderPosition:
    longitude: float
    latitude: float
    bearing: float

    @property
    def coordinate(self) -> Coordinate:
        return (self.longitude, self.latitude)

@dataclass
class VehicleRenderContext:
    trip_id: str
    route_id: str
    linear_position: float
    smoothed_position: SmoothedVehiclePosition

@dataclass
class BodySegmentTemplate:
    front_offset: float
    rear_offset: float
    height: float

    @property
    def nominal_length(self) -> float:
        return self.rear_offset - self.front_offset

@dataclass
class BodySegmentShape:
    trip_id: str
    index: int
    front: Coordinate
    rear: Coordinate
    polygon: list[Coordinate]
    color: str
    height: float

    def to_feature(self) -> dict:
        return {
            'type': 'Feature',
            'geometry': {
                'type': 'Polygon',
                'coordinates': [[list(c) for c in self.polygon]]
            },
            'properties': {
                'trip_id': self.trip_id,
                'segment': self.index,
                'color': self.color,
                'height': self.height
            }
        }

@dataclass
class RenderRecord:
    trip_id: str
    coordinate: Coordinate
    bearing: float
    status: str
    line_number: str
    destination: Optional[str] = None
    delay_minutes: Optional[int] = None
    current_stop_name: Optional[str] = None
    next_stop_name: Optional[str] = None

    def to_feature(self) -> dict:
        return {
            'type': 'Feature',
            'geometry': {
                'type': 'Point',
                'coordinates': list(self.coordinate)
            },
            'properties': {
                'trip_id': self.trip_id,
                'bearing': self.bearing,
                'status': self.status,
                'line_number': self.line_number,
                'destination': self.destination,
                'delay': self.delay_minutes,
                'current_stop': self.current_stop_name,
                'next_stop': self.next_stop_name
            }
        }

@dataclass
class VehicleSupply:
    geometries: dict[str, RouteGeometry] = field(default_factory=dict)
    trips: list[Trip] = field(default_factory=list)

@dataclass
class RenderFrame:
    timestamp: int
    records: list[RenderRecord] = field(default_factory=list)
    shapes: dict[str, list[BodySegmentShape]] = field(default_factory=dict)
