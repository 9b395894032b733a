import logging

from datetime import tzinfo

from sched2anim.common.shared import log_exception
from sched2anim.features.featuremanager import FeatureManager
from sched2anim.features.simulatedstops import SimulatedStopsFeature
from sched2anim.geo.linearroute import LinearizedRoute, LinearizedRouteCache
from sched2anim.model.types import BodySegmentShape, RawVehiclePosition, RenderFrame, RenderPosition, RenderRecord, RouteGeometry, SmoothedVehiclePosition, VehicleRenderContext, VehicleSupply
from sched2anim.sim.positioncalculator import PositionCalculator
from sched2anim.sim.segmentsampler import SegmentSampler
from sched2anim.sim.smoothing import SmoothingTracker, visible_trip_ids


class TickProcessor:

    def __init__(
        self,
        feature_manager: FeatureManager,
        body_segments: bool = True,
        sampler: SegmentSampler|None = None,
        tracker: SmoothingTracker|None = None,
        tz: tzinfo|None = None
    ) -> None:
        self.feature_manager = feature_manager
        self.body_segments = body_segments

        self.route_cache: LinearizedRouteCache = LinearizedRouteCache()
        self.position_calculator: PositionCalculator = PositionCalculator(self.route_cache, tz)
        self.tracker: SmoothingTracker = tracker if tracker is not None else SmoothingTracker()
        self.sampler: SegmentSampler = sampler if sampler is not None else SegmentSampler()

    def process(self, supply: VehicleSupply, now: int, elapsed_ms: float) -> RenderFrame:
        self.route_cache.retain(set(supply.geometries.keys()))

        # 1. raw schedule positions
        simulated_stops: bool = self.feature_manager.is_enabled(SimulatedStopsFeature.ID)

        raw_positions: list[RawVehiclePosition] = list()
        for trip in supply.trips:
            raw_position: RawVehiclePosition|None = self.position_calculator.calculate(
                trip,
                supply.geometries.get(trip.route_id),
                now,
                simulated_stops
            )

            if raw_position is not None:
                raw_positions.append(raw_position)

        # 2. smoothed render positions, retired trips leave every cache
        removed_trip_ids: list[str] = self.tracker.update(raw_positions, elapsed_ms)
        for trip_id in removed_trip_ids:
            self.sampler.remove(trip_id)

        smoothed_positions: dict[str, SmoothedVehiclePosition] = self.tracker.snapshot()
        self.sampler.retain(set(smoothed_positions.keys()))

        visible: list[str] = sorted(visible_trip_ids(list(smoothed_positions.values())))

        render_positions: dict[str, RenderPosition] = {
            trip_id: RenderPosition(
                smoothed_positions[trip_id].rendered_coordinate[0],
                smoothed_positions[trip_id].rendered_coordinate[1],
                smoothed_positions[trip_id].rendered_bearing
            )
            for trip_id in visible
        }

        # 3. render position features, route by route
        contexts_by_route: dict[str, list[VehicleRenderContext]] = dict()
        for trip_id in visible:
            smoothed_position: SmoothedVehiclePosition = smoothed_positions[trip_id]
            linearized_route: LinearizedRoute|None = self._linearized_route(supply, smoothed_position.route_id)

            if linearized_route is None or linearized_route.is_empty():
                continue

            try:
                linear_position: float = linearized_route.to_linear(smoothed_position.rendered_coordinate, smoothed_position.rendered_bearing)
            except Exception as ex:
                logging.error(f"{self.__class__.__name__}: Failed to linearize trip {trip_id}.")
                log_exception(ex)
                continue

            contexts_by_route.setdefault(smoothed_position.route_id, list()).append(VehicleRenderContext(
                trip_id=trip_id,
                route_id=smoothed_position.route_id,
                linear_position=linear_position,
                smoothed_position=smoothed_position
            ))

        linearized_routes: dict[str, LinearizedRoute] = self.route_cache.as_dict()
        for route_id, contexts in contexts_by_route.items():
            try:
                self.feature_manager.process_render_positions(contexts, render_positions, linearized_routes)
            except Exception as ex:
                logging.error(f"{self.__class__.__name__}: Failed to process render positions of route {route_id}.")
                log_exception(ex)

        # 4. body segments along the track
        shapes: dict[str, list[BodySegmentShape]] = dict()
        if self.body_segments:
            for trip_id in visible:
                try:
                    trip_shapes: list[BodySegmentShape]|None = self._sample_body(supply, smoothed_positions[trip_id], render_positions[trip_id])
                except Exception as ex:
                    logging.error(f"{self.__class__.__name__}: Failed to sample body segments of trip {trip_id}.")
                    log_exception(ex)
                    continue

                if trip_shapes is not None:
                    shapes[trip_id] = trip_shapes

        records: list[RenderRecord] = [
            self._create_record(smoothed_positions[trip_id], render_positions[trip_id])
            for trip_id in visible
        ]

        return RenderFrame(timestamp=now, records=records, shapes=shapes)

    def clear(self) -> None:
        self.tracker.clear()
        self.sampler.clear()
        self.route_cache.clear()

    def _linearized_route(self, supply: VehicleSupply, route_id: str) -> LinearizedRoute|None:
        geometry: RouteGeometry|None = supply.geometries.get(route_id)
        if geometry is None:
            return None

        return self.route_cache.get(geometry)

    def _sample_body(self, supply: VehicleSupply, smoothed_position: SmoothedVehiclePosition, render_position: RenderPosition) -> list[BodySegmentShape]|None:
        linearized_route: LinearizedRoute|None = self._linearized_route(supply, smoothed_position.route_id)
        if linearized_route is None or linearized_route.is_empty():
            return self.sampler.get_cached(smoothed_position.trip_id)

        head_linear_position: float = linearized_route.to_linear(render_position.coordinate, render_position.bearing)
        forward: bool = linearized_route.is_forward(head_linear_position, render_position.bearing)

        return self.sampler.sample(
            smoothed_position.trip_id,
            linearized_route,
            head_linear_position,
            forward,
            supply.geometries[smoothed_position.route_id].color
        )

    def _create_record(self, smoothed_position: SmoothedVehiclePosition, render_position: RenderPosition) -> RenderRecord:
        return RenderRecord(
            trip_id=smoothed_position.trip_id,
            coordinate=render_position.coordinate,
            bearing=render_position.bearing,
            status=smoothed_position.status,
            line_number=smoothed_position.line_number,
            destination=smoothed_position.destination,
            delay_minutes=smoothed_position.delay_minutes,
            current_stop_name=smoothed_position.current_stop.display_name if smoothed_position.current_stop is not None else None,
            next_stop_name=smoothed_position.next_stop.display_name if smoothed_position.next_stop is not None else None
        )
