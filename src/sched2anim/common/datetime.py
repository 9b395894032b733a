import os
import pytz

from datetime import datetime, tzinfo


def configured_timezone() -> tzinfo:
    return pytz.timezone(os.getenv('S2A_TIMEZONE', 'Europe/Berlin'))

def local_datetime(timestamp_ms: int, tz: tzinfo|None = None) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=tz)

def get_time_of_day_hours(time: datetime) -> float:
    # minute resolution
    return time.hour + time.minute / 60.0

def get_operation_time_str(timestamp_ms: int, tz: tzinfo|None = None) -> str:
    return local_datetime(timestamp_ms, tz).strftime('%H:%M:%S')
