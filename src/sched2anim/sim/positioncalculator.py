import logging

from datetime import tzinfo

from sched2anim.common.datetime import local_datetime
from sched2anim.common.shared import clamp, log_exception
from sched2anim.features.simulatedstops import get_dwell_time_ms, should_stop_at_station
from sched2anim.geo.geodesic import coordinate_bearing, interpolate_along_line, synthetic_line
from sched2anim.geo.linearroute import LinearizedRoute, LinearizedRouteCache
from sched2anim.model.types import Coordinate, RawVehiclePosition, RouteGeometry, StopPlace, StopTime, Trip, VehicleStatus


class PositionCalculator:

    NEAR_ARRIVAL_THRESHOLD: float = 0.9
    MAX_STOP_TRACK_DISTANCE: float = 500.0
    MAX_DWELL_SHARE: float = 0.5

    def __init__(self, route_cache: LinearizedRouteCache, tz: tzinfo|None = None) -> None:
        self._route_cache = route_cache
        self._tz = tz

    def calculate(self, trip: Trip, geometry: RouteGeometry|None, now: int, simulated_stops: bool = True) -> RawVehiclePosition|None:
        try:
            return self._calculate(trip, geometry, now, simulated_stops)
        except Exception as ex:
            logging.error(f"{self.__class__.__name__}: Failed to calculate position of trip {trip.trip_id}.")
            log_exception(ex)

            return None

    def _calculate(self, trip: Trip, geometry: RouteGeometry|None, now: int, simulated_stops: bool) -> RawVehiclePosition|None:
        stop_times: list[StopTime] = [s for s in trip.stop_times if s.stop.coordinate is not None]
        if len(stop_times) < len(trip.stop_times):
            logging.debug(f"{self.__class__.__name__}: Trip {trip.trip_id} has {len(trip.stop_times) - len(stop_times)} stops without coordinates.")

        if len(stop_times) < 2:
            logging.debug(f"{self.__class__.__name__}: Trip {trip.trip_id} has less than 2 usable stops, skipping.")
            return None

        first_stop_time: StopTime = stop_times[0]
        last_stop_time: StopTime = stop_times[-1]

        # trip has not started yet
        if now < first_stop_time.departure_time:
            coordinate, bearing = self._position_on_leg(geometry, first_stop_time.stop, stop_times[1].stop, 0.0)

            return self._create_position(
                trip, stop_times, 0, coordinate, bearing, 0.0, VehicleStatus.WAITING,
                departure_time=first_stop_time.departure_time
            )

        # trip is over
        if now > last_stop_time.arrival_time:
            coordinate, bearing = self._position_on_leg(geometry, stop_times[-2].stop, last_stop_time.stop, 1.0)

            return self._create_position(
                trip, stop_times, len(stop_times) - 1, coordinate, bearing, 1.0, VehicleStatus.COMPLETED
            )

        # find the bracketing stops of the current leg
        current_index: int = 0
        for i in range(0, len(stop_times) - 1):
            if stop_times[i].arrival_time <= now:
                current_index = i

        current_stop_time: StopTime = stop_times[current_index]
        next_stop_time: StopTime = stop_times[current_index + 1]

        dwell_end: int = self._dwell_end(trip, stop_times, current_index, simulated_stops)
        if now < dwell_end:
            coordinate, bearing = self._position_on_leg(geometry, current_stop_time.stop, next_stop_time.stop, 0.0)

            return self._create_position(
                trip, stop_times, current_index, coordinate, bearing, 0.0, VehicleStatus.STOPPED,
                departure_time=dwell_end
            )

        travel_duration: int = next_stop_time.arrival_time - dwell_end
        progress: float = clamp((now - dwell_end) / travel_duration, 0.0, 1.0) if travel_duration > 0 else 1.0

        status: str = VehicleStatus.APPROACHING if progress >= self.NEAR_ARRIVAL_THRESHOLD else VehicleStatus.IN_TRANSIT
        coordinate, bearing = self._position_on_leg(geometry, current_stop_time.stop, next_stop_time.stop, progress)

        return self._create_position(trip, stop_times, current_index, coordinate, bearing, progress, status)

    def _dwell_end(self, trip: Trip, stop_times: list[StopTime], index: int, simulated_stops: bool) -> int:
        stop_time: StopTime = stop_times[index]
        if stop_time.has_explicit_dwell:
            return stop_time.departure_time

        # origin stops are covered by the waiting state
        if not simulated_stops or index == 0:
            return stop_time.arrival_time

        # decide with the arrival time, the decision must not flip while dwelling
        arrival_time = local_datetime(stop_time.arrival_time, self._tz)
        if not should_stop_at_station(trip.trip_id, stop_time.stop.stop_id, arrival_time):
            return stop_time.arrival_time

        leg_duration: int = stop_times[index + 1].arrival_time - stop_time.arrival_time
        dwell_time: float = min(get_dwell_time_ms(trip.trip_id, stop_time.stop.stop_id), leg_duration * self.MAX_DWELL_SHARE)

        return stop_time.arrival_time + int(max(dwell_time, 0))

    def _position_on_leg(self, geometry: RouteGeometry|None, from_stop: StopPlace, to_stop: StopPlace, progress: float) -> tuple[Coordinate, float]:
        from_coordinate: Coordinate = from_stop.coordinate
        to_coordinate: Coordinate = to_stop.coordinate
        leg_bearing: float = coordinate_bearing(from_coordinate, to_coordinate)

        if geometry is not None:
            linearized_route: LinearizedRoute = self._route_cache.get(geometry)

            if not linearized_route.is_empty():
                from_linear, from_offset = linearized_route.locate(from_coordinate, leg_bearing)
                to_linear, to_offset = linearized_route.locate(to_coordinate, leg_bearing)

                if max(from_offset, to_offset) <= self.MAX_STOP_TRACK_DISTANCE and from_linear != to_linear:
                    coordinate, track_bearing = linearized_route.from_linear(from_linear + (to_linear - from_linear) * progress)

                    # leg runs against the linearization order
                    if to_linear < from_linear:
                        track_bearing = (track_bearing + 180) % 360

                    return (coordinate, track_bearing)

                logging.debug(f"{self.__class__.__name__}: Could not match stops {from_stop.stop_id} and {to_stop.stop_id} onto route {geometry.route_id}, using direct path.")
            else:
                logging.debug(f"{self.__class__.__name__}: Route {geometry.route_id} has no geometry, using direct path.")

        fallback_path: list[Coordinate] = synthetic_line(from_coordinate, to_coordinate)
        return (interpolate_along_line(fallback_path, progress), leg_bearing)

    def _create_position(
        self,
        trip: Trip,
        stop_times: list[StopTime],
        current_index: int,
        coordinate: Coordinate,
        bearing: float,
        progress: float,
        status: str,
        departure_time: int|None = None
    ) -> RawVehiclePosition:
        current_stop_time: StopTime = stop_times[current_index]
        next_stop_time: StopTime|None = stop_times[current_index + 1] if current_index + 1 < len(stop_times) else None

        delay_minutes: int|None = current_stop_time.delay_minutes
        if next_stop_time is not None and next_stop_time.delay_minutes is not None:
            delay_minutes = next_stop_time.delay_minutes

        return RawVehiclePosition(
            trip_id=trip.trip_id,
            route_id=trip.route_id,
            line_number=trip.line_number,
            destination=trip.destination,
            coordinate=coordinate,
            bearing=bearing,
            progress=progress,
            status=status,
            current_stop=current_stop_time.stop,
            next_stop=next_stop_time.stop if next_stop_time is not None else None,
            delay_minutes=delay_minutes,
            is_final_leg=current_index >= len(stop_times) - 2,
            departure_time=departure_time
        )
