import logging
import math

from dataclasses import replace
from threading import Lock

from sched2anim.geo.geodesic import coordinate_distance
from sched2anim.model.types import RawVehiclePosition, SmoothedVehiclePosition, StopPlace, VehicleStatus


class SmoothingTracker:

    TIME_CONSTANT_MS: float = 1000.0
    SNAP_DISTANCE_METERS: float = 1000.0

    def __init__(self, time_constant_ms: float = TIME_CONSTANT_MS, snap_distance: float = SNAP_DISTANCE_METERS) -> None:
        self._time_constant_ms = time_constant_ms
        self._snap_distance = snap_distance

        self._positions: dict[str, SmoothedVehiclePosition] = dict()
        self._lock = Lock()

    def update(self, raw_positions: list[RawVehiclePosition], elapsed_ms: float) -> list[str]:
        smoothing_factor: float = 1.0 - math.exp(-max(elapsed_ms, 0.0) / self._time_constant_ms)

        with self._lock:
            for raw_position in raw_positions:
                smoothed_position: SmoothedVehiclePosition|None = self._positions.get(raw_position.trip_id)

                if smoothed_position is None:
                    self._positions[raw_position.trip_id] = self._create(raw_position)
                else:
                    self._advance(smoothed_position, raw_position, smoothing_factor)

            # retire trips which are gone from the latest supply
            active_trip_ids: set[str] = {p.trip_id for p in raw_positions}
            removed_trip_ids: list[str] = [t for t in self._positions.keys() if t not in active_trip_ids]

            for trip_id in removed_trip_ids:
                del self._positions[trip_id]

        if len(removed_trip_ids) > 0:
            logging.debug(f"{self.__class__.__name__}: Removed {len(removed_trip_ids)} trips no longer supplied.")

        return removed_trip_ids

    def get(self, trip_id: str) -> SmoothedVehiclePosition|None:
        with self._lock:
            smoothed_position: SmoothedVehiclePosition|None = self._positions.get(trip_id)
            return replace(smoothed_position) if smoothed_position is not None else None

    def snapshot(self) -> dict[str, SmoothedVehiclePosition]:
        with self._lock:
            return {t: replace(p) for t, p in self._positions.items()}

    def clear(self) -> None:
        with self._lock:
            self._positions.clear()

    def __contains__(self, trip_id: str) -> bool:
        with self._lock:
            return trip_id in self._positions

    def __len__(self) -> int:
        with self._lock:
            return len(self._positions)

    def _create(self, raw_position: RawVehiclePosition) -> SmoothedVehiclePosition:
        return SmoothedVehiclePosition(
            trip_id=raw_position.trip_id,
            route_id=raw_position.route_id,
            line_number=raw_position.line_number,
            destination=raw_position.destination,
            rendered_coordinate=raw_position.coordinate,
            rendered_bearing=raw_position.bearing,
            target_coordinate=raw_position.coordinate,
            target_bearing=raw_position.bearing,
            progress=raw_position.progress,
            status=raw_position.status,
            current_stop=raw_position.current_stop,
            next_stop=raw_position.next_stop,
            delay_minutes=raw_position.delay_minutes,
            is_final_leg=raw_position.is_final_leg,
            departure_time=raw_position.departure_time
        )

    def _advance(self, smoothed_position: SmoothedVehiclePosition, raw_position: RawVehiclePosition, smoothing_factor: float) -> None:
        smoothed_position.target_coordinate = raw_position.coordinate
        smoothed_position.target_bearing = raw_position.bearing

        jump_distance: float = coordinate_distance(smoothed_position.rendered_coordinate, raw_position.coordinate)
        if jump_distance > self._snap_distance:
            smoothed_position.rendered_coordinate = raw_position.coordinate
            smoothed_position.rendered_bearing = raw_position.bearing
        else:
            lon, lat = smoothed_position.rendered_coordinate
            target_lon, target_lat = raw_position.coordinate

            smoothed_position.rendered_coordinate = (
                lon + (target_lon - lon) * smoothing_factor,
                lat + (target_lat - lat) * smoothing_factor
            )

            # turn along the shortest arc
            bearing_delta: float = ((raw_position.bearing - smoothed_position.rendered_bearing + 540) % 360) - 180
            smoothed_position.rendered_bearing = (smoothed_position.rendered_bearing + bearing_delta * smoothing_factor) % 360

        # discrete values are never smoothed
        smoothed_position.route_id = raw_position.route_id
        smoothed_position.line_number = raw_position.line_number
        smoothed_position.destination = raw_position.destination
        smoothed_position.progress = raw_position.progress
        smoothed_position.status = raw_position.status
        smoothed_position.current_stop = raw_position.current_stop
        smoothed_position.next_stop = raw_position.next_stop
        smoothed_position.delay_minutes = raw_position.delay_minutes
        smoothed_position.is_final_leg = raw_position.is_final_leg
        smoothed_position.departure_time = raw_position.departure_time


SAME_STOP_DISTANCE_METERS: float = 50.0


def _is_same_stop(stop1: StopPlace|None, stop2: StopPlace|None) -> bool:
    if stop1 is None or stop2 is None:
        return False
    if stop1.stop_id == stop2.stop_id:
        return True

    # terminus platforms of both directions
    if stop1.coordinate is None or stop2.coordinate is None:
        return False

    return coordinate_distance(stop1.coordinate, stop2.coordinate) <= SAME_STOP_DISTANCE_METERS

def visible_trip_ids(positions: list[SmoothedVehiclePosition]) -> set[str]:
    finishing_positions: list[SmoothedVehiclePosition] = [
        p for p in positions
        if p.status in VehicleStatus.MOVING and p.is_final_leg and p.progress > 0.5
    ]

    visible: set[str] = set()
    waiting_candidates: dict[tuple[str, str], list[SmoothedVehiclePosition]] = dict()

    for position in positions:
        if position.status == VehicleStatus.COMPLETED:
            continue

        if position.status != VehicleStatus.WAITING:
            visible.add(position.trip_id)
            continue

        finishing: SmoothedVehiclePosition|None = next((
            f for f in finishing_positions
            if f.trip_id != position.trip_id
            and f.line_number == position.line_number
            and _is_same_stop(f.next_stop, position.current_stop)
        ), None)

        if finishing is not None:
            waiting_candidates.setdefault((finishing.trip_id, position.line_number), list()).append(position)

    # one waiting vehicle continues each finishing one, the earliest departure wins
    for candidates in waiting_candidates.values():
        chosen: SmoothedVehiclePosition = min(
            candidates,
            key=lambda p: (p.departure_time if p.departure_time is not None else float('inf'), p.trip_id)
        )

        visible.add(chosen.trip_id)

    return visible
