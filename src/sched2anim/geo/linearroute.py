import logging

from bisect import bisect_right
from shapely.geometry import LineString, Point
from shapely.strtree import STRtree

from sched2anim.common.shared import LocalProjection, clamp
from sched2anim.geo.geodesic import bearing_difference, coordinate_bearing, coordinate_distance
from sched2anim.model.types import Coordinate, RouteGeometry


class LinearizedRoute:

    SEARCH_RADIUS_METERS: float = 100.0
    MAX_BEARING_DEVIATION: float = 90.0

    def __init__(self, geometry: RouteGeometry) -> None:
        self.route_id: str = geometry.route_id
        self.version: str|None = geometry.version
        self.source: RouteGeometry = geometry

        self.coordinates: list[Coordinate] = self._chain_segments(geometry.segments)

        self._piece_lengths: list[float] = list()
        self._piece_bearings: list[float] = list()
        self._cumulative_distances: list[float] = [0.0]

        for i in range(0, len(self.coordinates) - 1):
            piece_length: float = coordinate_distance(self.coordinates[i], self.coordinates[i + 1])

            self._piece_lengths.append(piece_length)
            self._piece_bearings.append(coordinate_bearing(self.coordinates[i], self.coordinates[i + 1]))
            self._cumulative_distances.append(self._cumulative_distances[-1] + piece_length)

        self.total_length: float = self._cumulative_distances[-1]

        if self.is_empty():
            logging.warning(f"{self.__class__.__name__}: Route {self.route_id} has no usable geometry.")

            self.projection: LocalProjection|None = None
            self._pieces: list[LineString] = list()
            self._tree: STRtree|None = None
            return

        # project the track into a local metric plane for the nearest piece search
        center: Coordinate = self.coordinates[len(self.coordinates) // 2]
        self.projection = LocalProjection(*center)

        projected_coordinates: list = list(self.projection.local_metric(LineString(self.coordinates)).coords)
        self._pieces = [LineString([projected_coordinates[i], projected_coordinates[i + 1]]) for i in range(0, len(projected_coordinates) - 1)]
        self._tree = STRtree(self._pieces)

    def is_empty(self) -> bool:
        return len(self.coordinates) < 2 or self.total_length <= 0.0

    def locate(self, coordinate: Coordinate, reference_bearing: float|None = None) -> tuple[float, float]:
        if self.is_empty():
            return (0.0, float('inf'))

        point: Point = self.projection.local_metric(Point(coordinate))

        candidates: list[int] = [int(i) for i in self._tree.query(point, predicate='dwithin', distance=self.SEARCH_RADIUS_METERS)]
        if len(candidates) == 0:
            candidates = [int(self._tree.nearest(point))]

        # prefer pieces running the same direction, overlapping and circular tracks share coordinates
        if reference_bearing is not None:
            preferred: list[int] = [
                i for i in candidates
                if bearing_difference(self._piece_bearings[i], reference_bearing) < self.MAX_BEARING_DEVIATION
            ]

            if len(preferred) > 0:
                candidates = preferred

        best_index: int = min(candidates, key=lambda i: (self._pieces[i].distance(point), i))
        best_piece: LineString = self._pieces[best_index]

        piece_fraction: float = best_piece.project(point, normalized=True)
        linear_position: float = self._cumulative_distances[best_index] + piece_fraction * self._piece_lengths[best_index]

        track_coordinate, _ = self.from_linear(linear_position)

        return (linear_position, coordinate_distance(coordinate, track_coordinate))

    def to_linear(self, coordinate: Coordinate, reference_bearing: float|None = None) -> float:
        return self.locate(coordinate, reference_bearing)[0]

    def from_linear(self, distance: float) -> tuple[Coordinate, float]:
        if self.is_empty():
            return ((0.0, 0.0), 0.0)

        distance = clamp(distance, 0.0, self.total_length)

        piece_index: int = bisect_right(self._cumulative_distances, distance) - 1
        piece_index = clamp(piece_index, 0, len(self._piece_lengths) - 1)

        piece_length: float = self._piece_lengths[piece_index]
        piece_fraction: float = (distance - self._cumulative_distances[piece_index]) / piece_length if piece_length > 0 else 0.0
        piece_fraction = clamp(piece_fraction, 0.0, 1.0)

        lon1, lat1 = self.coordinates[piece_index]
        lon2, lat2 = self.coordinates[piece_index + 1]

        coordinate: Coordinate = (
            lon1 + (lon2 - lon1) * piece_fraction,
            lat1 + (lat2 - lat1) * piece_fraction
        )

        return (coordinate, self._piece_bearings[piece_index])

    def is_forward(self, linear_position: float, vehicle_bearing: float) -> bool:
        _, track_bearing = self.from_linear(linear_position)
        return bearing_difference(track_bearing, vehicle_bearing) < self.MAX_BEARING_DEVIATION

    def _chain_segments(self, segments: list[list[Coordinate]]) -> list[Coordinate]:
        usable_segments: list[list[Coordinate]] = [[tuple(c) for c in s] for s in segments if len(s) > 0]
        if len(usable_segments) == 0:
            return list()

        # orient the first segment towards the second one
        if len(usable_segments) > 1:
            first: list[Coordinate] = usable_segments[0]
            second: list[Coordinate] = usable_segments[1]

            start_gap: float = min(coordinate_distance(first[0], second[0]), coordinate_distance(first[0], second[-1]))
            end_gap: float = min(coordinate_distance(first[-1], second[0]), coordinate_distance(first[-1], second[-1]))
            if start_gap < end_gap:
                usable_segments[0] = list(reversed(first))

        chain: list[Coordinate] = list(usable_segments[0])
        for segment in usable_segments[1:]:
            if coordinate_distance(chain[-1], segment[-1]) < coordinate_distance(chain[-1], segment[0]):
                segment = list(reversed(segment))

            chain.extend(segment)

        # consecutive duplicates would produce zero length pieces
        deduplicated: list[Coordinate] = [chain[0]]
        for coordinate in chain[1:]:
            if coordinate != deduplicated[-1]:
                deduplicated.append(coordinate)

        return deduplicated


class LinearizedRouteCache:

    def __init__(self) -> None:
        self._routes: dict[str, LinearizedRoute] = dict()

    def get(self, geometry: RouteGeometry) -> LinearizedRoute:
        linearized_route: LinearizedRoute|None = self._routes.get(geometry.route_id)

        if linearized_route is None or not self._is_current(linearized_route, geometry):
            logging.debug(f"{self.__class__.__name__}: Linearizing route {geometry.route_id} ...")

            linearized_route = LinearizedRoute(geometry)
            self._routes[geometry.route_id] = linearized_route

        return linearized_route

    def lookup(self, route_id: str) -> LinearizedRoute|None:
        return self._routes.get(route_id)

    def as_dict(self) -> dict[str, LinearizedRoute]:
        return dict(self._routes)

    def retain(self, route_ids: set[str]) -> None:
        for route_id in [r for r in self._routes.keys() if r not in route_ids]:
            del self._routes[route_id]

    def clear(self) -> None:
        self._routes.clear()

    def __len__(self) -> int:
        return len(self._routes)

    def _is_current(self, linearized_route: LinearizedRoute, geometry: RouteGeometry) -> bool:
        if linearized_route.source is geometry:
            return True

        # polling delivers fresh objects, a matching version keeps the cached table
        return bool(geometry.version) and linearized_route.version == geometry.version
