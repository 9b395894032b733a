import math

from sched2anim.common.shared import EARTH_RADIUS_METERS, clamp
from sched2anim.model.types import Coordinate


def distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    phi1: float = math.radians(lat1)
    phi2: float = math.radians(lat2)

    dphi: float = math.radians(lat2 - lat1)
    dlambda: float = math.radians(lon2 - lon1)

    a: float = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c: float = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c

def coordinate_distance(coord1: Coordinate, coord2: Coordinate) -> float:
    return distance(coord1[0], coord1[1], coord2[0], coord2[1])

def bearing(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    phi1: float = math.radians(lat1)
    phi2: float = math.radians(lat2)

    dlambda: float = math.radians(lon2 - lon1)

    x: float = math.sin(dlambda) * math.cos(phi2)
    y: float = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)

    bearing_deg: float = math.degrees(math.atan2(x, y))

    return (bearing_deg + 360) % 360

def coordinate_bearing(coord1: Coordinate, coord2: Coordinate) -> float:
    return bearing(coord1[0], coord1[1], coord2[0], coord2[1])

def bearing_difference(bearing1: float, bearing2: float) -> float:
    difference: float = abs(bearing1 - bearing2) % 360
    if difference > 180:
        difference = 360 - difference

    return difference

def line_length(coordinates: list[Coordinate]) -> float:
    total_length: float = 0.0
    for i in range(0, len(coordinates) - 1):
        total_length += coordinate_distance(coordinates[i], coordinates[i + 1])

    return total_length

def interpolate_along_line(coordinates: list[Coordinate], progress: float) -> Coordinate:
    if len(coordinates) == 0:
        return (0.0, 0.0)
    if len(coordinates) == 1:
        return coordinates[0]
    if progress <= 0:
        return coordinates[0]
    if progress >= 1:
        return coordinates[-1]

    target_distance: float = line_length(coordinates) * progress

    # walk along the line until the piece containing the target distance
    accumulated_distance: float = 0.0
    for i in range(0, len(coordinates) - 1):
        lon1, lat1 = coordinates[i]
        lon2, lat2 = coordinates[i + 1]

        piece_length: float = distance(lon1, lat1, lon2, lat2)
        if piece_length > 0 and accumulated_distance + piece_length >= target_distance:
            piece_progress: float = clamp((target_distance - accumulated_distance) / piece_length, 0.0, 1.0)

            return (
                lon1 + (lon2 - lon1) * piece_progress,
                lat1 + (lat2 - lat1) * piece_progress
            )

        accumulated_distance += piece_length

    return coordinates[-1]

def synthetic_line(start: Coordinate, end: Coordinate, num_points: int = 5) -> list[Coordinate]:
    points: list[Coordinate] = list()
    for i in range(0, num_points):
        t: float = i / (num_points - 1)
        points.append((
            start[0] + (end[0] - start[0]) * t,
            start[1] + (end[1] - start[1]) * t
        ))

    return points

def destination(coordinate: Coordinate, bearing_deg: float, distance_m: float) -> Coordinate:
    lon1: float = math.radians(coordinate[0])
    lat1: float = math.radians(coordinate[1])
    theta: float = math.radians(bearing_deg)
    delta: float = distance_m / EARTH_RADIUS_METERS

    lat2: float = math.asin(math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(theta))
    lon2: float = lon1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * math.sin(lat2)
    )

    return (math.degrees(lon2), math.degrees(lat2))
