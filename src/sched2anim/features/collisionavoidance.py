import logging

from sched2anim.features.basefeature import RenderPositionFeature
from sched2anim.geo.geodesic import bearing_difference, coordinate_distance
from sched2anim.geo.linearroute import LinearizedRoute
from sched2anim.model.types import RenderPosition, VehicleRenderContext, VehicleStatus

# vehicle length (42m) plus buffer
MIN_VEHICLE_SEPARATION: float = 50.0
MAX_SAME_DIRECTION_BEARING: float = 90.0


class CollisionAvoidanceFeature(RenderPositionFeature):

    ID: str = 'collision-avoidance'

    def __init__(self, min_separation: float = MIN_VEHICLE_SEPARATION) -> None:
        super().__init__(
            self.ID,
            'Collision Avoidance',
            'Prevents vehicles from overlapping by maintaining minimum separation distance',
            True
        )

        self.min_separation: float = min_separation

    def process_positions(
        self,
        vehicles: list[VehicleRenderContext],
        render_positions: dict[str, RenderPosition],
        linearized_routes: dict[str, LinearizedRoute]
    ) -> None:
        if len(vehicles) < 2:
            return

        forward_vehicles: list[VehicleRenderContext] = list()
        backward_vehicles: list[VehicleRenderContext] = list()

        for vehicle in vehicles:
            linearized_route: LinearizedRoute|None = linearized_routes.get(vehicle.route_id)
            if linearized_route is None or linearized_route.is_empty():
                continue

            if linearized_route.is_forward(vehicle.linear_position, vehicle.smoothed_position.rendered_bearing):
                forward_vehicles.append(vehicle)
            else:
                backward_vehicles.append(vehicle)

        # furthest ahead in the direction of travel first
        num_adjusted: int = 0
        num_adjusted += self._separate(sorted(forward_vehicles, key=lambda v: v.linear_position, reverse=True), True, render_positions, linearized_routes)
        num_adjusted += self._separate(sorted(backward_vehicles, key=lambda v: v.linear_position), False, render_positions, linearized_routes)

        if num_adjusted > 0:
            logging.debug(f"{self.__class__.__name__}: Adjusted {num_adjusted} render positions.")

    def _separate(
        self,
        sorted_vehicles: list[VehicleRenderContext],
        forward: bool,
        render_positions: dict[str, RenderPosition],
        linearized_routes: dict[str, LinearizedRoute]
    ) -> int:
        num_adjusted: int = 0
        for i in range(1, len(sorted_vehicles)):
            vehicle: VehicleRenderContext = sorted_vehicles[i]

            # stopped vehicles may share multi-platform stations
            if vehicle.smoothed_position.status not in VehicleStatus.MOVING:
                continue

            linearized_route: LinearizedRoute = linearized_routes[vehicle.route_id]

            my_render_position: RenderPosition|None = render_positions.get(vehicle.trip_id)
            if my_render_position is None:
                continue

            for j in range(0, i):
                ahead_vehicle: VehicleRenderContext = sorted_vehicles[j]

                if bearing_difference(vehicle.smoothed_position.rendered_bearing, ahead_vehicle.smoothed_position.rendered_bearing) >= MAX_SAME_DIRECTION_BEARING:
                    continue

                ahead_render_position: RenderPosition|None = render_positions.get(ahead_vehicle.trip_id)
                if ahead_render_position is None:
                    continue

                distance: float = coordinate_distance(my_render_position.coordinate, ahead_render_position.coordinate)
                if distance >= self.min_separation:
                    continue

                # fall back behind the vehicle ahead on our own route
                ahead_linear_position: float = linearized_route.to_linear(
                    ahead_render_position.coordinate,
                    ahead_render_position.bearing
                )

                if forward:
                    safe_coordinate, safe_bearing = linearized_route.from_linear(ahead_linear_position - self.min_separation)
                else:
                    safe_coordinate, track_bearing = linearized_route.from_linear(ahead_linear_position + self.min_separation)
                    safe_bearing = (track_bearing + 180.0) % 360.0

                my_render_position = RenderPosition(safe_coordinate[0], safe_coordinate[1], safe_bearing)
                render_positions[vehicle.trip_id] = my_render_position

                num_adjusted += 1

        return num_adjusted
