import logging

from shapely.geometry import LineString, Polygon

from sched2anim.geo.geodesic import coordinate_distance, destination
from sched2anim.geo.linearroute import LinearizedRoute
from sched2anim.model.types import BodySegmentShape, BodySegmentTemplate, Coordinate

# five cars of 8m with 0.5m joints, 42m overall
DEFAULT_TRAM_TEMPLATE: list[BodySegmentTemplate] = [
    BodySegmentTemplate(front_offset=i * 8.5, rear_offset=i * 8.5 + 8.0, height=3.4) for i in range(0, 5)
]

DEFAULT_VEHICLE_WIDTH: float = 2.65
DEFAULT_COLOR: str = '#3b82f6'


class SegmentSampler:

    MIN_LENGTH_RATIO: float = 0.5
    MAX_LENGTH_RATIO: float = 1.5
    MAX_JUMP_METERS: float = 20.0

    def __init__(
        self,
        template: list[BodySegmentTemplate]|None = None,
        vehicle_width: float = DEFAULT_VEHICLE_WIDTH,
        max_jump: float = MAX_JUMP_METERS
    ) -> None:
        self._template: list[BodySegmentTemplate] = template if template is not None else DEFAULT_TRAM_TEMPLATE
        self._vehicle_width = vehicle_width
        self._max_jump = max_jump

        self._valid_shapes: dict[str, list[BodySegmentShape]] = dict()
        self._last_fronts: dict[str, list[Coordinate]] = dict()

    def sample(
        self,
        trip_id: str,
        linearized_route: LinearizedRoute,
        head_linear_position: float,
        forward: bool = True,
        color: str|None = None
    ) -> list[BodySegmentShape]|None:
        if linearized_route.is_empty():
            return self._valid_shapes.get(trip_id)

        # the body trails behind the head against the direction of travel
        direction: int = -1 if forward else 1

        sampled_points: list[tuple[Coordinate, Coordinate]] = list()
        for segment in self._template:
            front: Coordinate = self._sample_point(linearized_route, head_linear_position + direction * segment.front_offset)
            rear: Coordinate = self._sample_point(linearized_route, head_linear_position + direction * segment.rear_offset)

            sampled_points.append((front, rear))

        is_consistent: bool = self._is_consistent(trip_id, sampled_points)
        self._last_fronts[trip_id] = [p[0] for p in sampled_points]

        if not is_consistent:
            logging.debug(f"{self.__class__.__name__}: Inconsistent body sample for trip {trip_id}, using last valid shape.")
            return self._valid_shapes.get(trip_id)

        shapes: list[BodySegmentShape] = [
            self._build_shape(trip_id, i, linearized_route, front, rear, color)
            for i, (front, rear) in enumerate(sampled_points)
        ]

        self._valid_shapes[trip_id] = shapes

        return shapes

    def get_cached(self, trip_id: str) -> list[BodySegmentShape]|None:
        return self._valid_shapes.get(trip_id)

    def retain(self, trip_ids: set[str]) -> None:
        for trip_id in [t for t in self._valid_shapes.keys() if t not in trip_ids]:
            del self._valid_shapes[trip_id]

        for trip_id in [t for t in self._last_fronts.keys() if t not in trip_ids]:
            del self._last_fronts[trip_id]

    def remove(self, trip_id: str) -> None:
        self._valid_shapes.pop(trip_id, None)
        self._last_fronts.pop(trip_id, None)

    def clear(self) -> None:
        self._valid_shapes.clear()
        self._last_fronts.clear()

    def __contains__(self, trip_id: str) -> bool:
        return trip_id in self._valid_shapes or trip_id in self._last_fronts

    def _sample_point(self, linearized_route: LinearizedRoute, linear_position: float) -> Coordinate:
        # continue straight beyond the ends of the track
        if linear_position < 0.0:
            start, start_bearing = linearized_route.from_linear(0.0)
            return destination(start, (start_bearing + 180) % 360, -linear_position)

        if linear_position > linearized_route.total_length:
            end, end_bearing = linearized_route.from_linear(linearized_route.total_length)
            return destination(end, end_bearing, linear_position - linearized_route.total_length)

        coordinate, _ = linearized_route.from_linear(linear_position)
        return coordinate

    def _is_consistent(self, trip_id: str, sampled_points: list[tuple[Coordinate, Coordinate]]) -> bool:
        for segment, (front, rear) in zip(self._template, sampled_points):
            nominal_length: float = segment.nominal_length
            sampled_length: float = coordinate_distance(front, rear)

            if not self.MIN_LENGTH_RATIO * nominal_length <= sampled_length <= self.MAX_LENGTH_RATIO * nominal_length:
                return False

        last_fronts: list[Coordinate]|None = self._last_fronts.get(trip_id)
        if last_fronts is not None and len(last_fronts) == len(sampled_points):
            for last_front, (front, _) in zip(last_fronts, sampled_points):
                if coordinate_distance(last_front, front) > self._max_jump:
                    return False

        return True

    def _build_shape(
        self,
        trip_id: str,
        index: int,
        linearized_route: LinearizedRoute,
        front: Coordinate,
        rear: Coordinate,
        color: str|None
    ) -> BodySegmentShape:
        # buffer in metres, then back to WGS84
        axis: LineString = linearized_route.projection.local_metric(LineString([front, rear]))
        footprint: Polygon = axis.buffer(self._vehicle_width / 2, cap_style='flat')
        footprint = linearized_route.projection.wgs_84(footprint)

        return BodySegmentShape(
            trip_id=trip_id,
            index=index,
            front=front,
            rear=rear,
            polygon=[tuple(c) for c in footprint.exterior.coords],
            color=color if color is not None else DEFAULT_COLOR,
            height=self._template[index].height
        )
