import logging

from datetime import datetime, timezone
from shapely.ops import transform
from pyproj import CRS, Transformer

from sched2anim.common.env import is_debug

EARTH_RADIUS_METERS: float = 6371000.0


def unixtimestamp_ms(iso_str: str|None = None) -> int:
    if iso_str is not None:
        timestamp: float = datetime.fromisoformat(iso_str.replace('Z', '+00:00')).timestamp()
        return int(timestamp * 1000)
    else:
        timestamp: float = datetime.now(timezone.utc).timestamp()
        return int(timestamp * 1000)

def clamp(value: float|int, min_value: float|int, max_value: float|int) -> float|int:
    return max(min_value, min(max_value, value))

def log_exception(ex: Exception) -> None:
    if is_debug():
        logging.exception(ex)
    else:
        logging.error(str(ex))


class LocalProjection:

    def __init__(self, longitude: float, latitude: float) -> None:
        # azimuthal equidistant on the haversine sphere, metres around the origin
        local_crs: CRS = CRS.from_proj4(
            f"+proj=aeqd +lat_0={latitude} +lon_0={longitude} +R={EARTH_RADIUS_METERS} +units=m +no_defs"
        )

        self._forward: Transformer = Transformer.from_crs(CRS("EPSG:4326"), local_crs, always_xy=True)
        self._inverse: Transformer = Transformer.from_crs(local_crs, CRS("EPSG:4326"), always_xy=True)

    def local_metric(self, geometry: object) -> object:
        return transform(self._forward.transform, geometry)

    def wgs_84(self, geometry: object) -> object:
        return transform(self._inverse.transform, geometry)
