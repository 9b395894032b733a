import struct

from datetime import datetime

from sched2anim.common.datetime import get_time_of_day_hours
from sched2anim.common.shared import clamp
from sched2anim.features.basefeature import VehicleFeature

MIN_DWELL_TIME_MS: int = 20000
MAX_DWELL_TIME_MS: int = 30000

MORNING_HOUR: float = 5.0
MIDNIGHT_HOUR: float = 24.0
MORNING_PROBABILITY: float = 0.95
MIDNIGHT_PROBABILITY: float = 0.50


def get_stop_probability_for_time(time: datetime) -> float:
    time_in_hours: float = get_time_of_day_hours(time)

    # hours after midnight continue the previous evening
    normalized_hour: float = time_in_hours + 24 if time_in_hours < MORNING_HOUR else time_in_hours

    hours_from_morning: float = normalized_hour - MORNING_HOUR
    probability: float = MORNING_PROBABILITY - (hours_from_morning / (MIDNIGHT_HOUR - MORNING_HOUR)) * (MORNING_PROBABILITY - MIDNIGHT_PROBABILITY)

    return clamp(probability, MIDNIGHT_PROBABILITY, MORNING_PROBABILITY)

def string_hash(value: str) -> int:
    # rolling hash over UTF-16 code units, signed 32 bit wrap-around
    data: bytes = value.encode('utf-16-le')
    code_units: tuple = struct.unpack(f"<{len(data) // 2}H", data)

    hash_value: int = 0
    for code_unit in code_units:
        hash_value = (hash_value * 31 + code_unit) & 0xFFFFFFFF

    return hash_value - 0x100000000 if hash_value >= 0x80000000 else hash_value

def deterministic_random(trip_id: str, stop_id: str) -> float:
    return (abs(string_hash(f"{trip_id}:{stop_id}")) % 10000) / 10000

def should_stop_at_station(trip_id: str, stop_id: str, current_time: datetime) -> bool:
    probability: float = get_stop_probability_for_time(current_time)
    random: float = deterministic_random(trip_id, stop_id)

    return random < probability

def get_dwell_time_ms(trip_id: str, stop_id: str) -> float:
    random: float = deterministic_random(trip_id, f"{stop_id}:dwell")
    return MIN_DWELL_TIME_MS + random * (MAX_DWELL_TIME_MS - MIN_DWELL_TIME_MS)


class SimulatedStopsFeature(VehicleFeature):

    ID: str = 'simulated-stops'

    def __init__(self) -> None:
        super().__init__(
            self.ID,
            'Simulated Station Stops',
            'Vehicles stop at stations even without explicit dwell time (probability varies by time of day)',
            True
        )
