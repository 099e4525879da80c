"""
Stop records as seen by the clustering engine
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional

from geoindex.config import SYNTHETIC_PARENT_PREFIX


class LocationType(IntEnum):
    """GTFS location_type codes."""
    STOP = 0
    STATION = 1
    ENTRANCE = 2
    GENERIC_NODE = 3
    BOARDING_AREA = 4


@dataclass(eq=False)
class Stop:
    """
    A stop, platform or station record.

    Compared by identity: two records are the same stop only if they are
    the same object. parent_station holds the parent record itself.
    """
    stop_id: str
    name: str
    lat: float
    lon: float
    location_type: LocationType = LocationType.STOP
    parent_station: Optional["Stop"] = None
    timezone: Optional[str] = None

    @property
    def is_synthetic_parent(self) -> bool:
        return self.stop_id.startswith(SYNTHETIC_PARENT_PREFIX)

    def __repr__(self) -> str:
        parent = self.parent_station.stop_id if self.parent_station is not None else None
        return f"Stop({self.stop_id!r}, {self.name!r}, {self.lat}, {self.lon}, parent={parent!r})"


StopMap = Dict[str, Stop]


def synthetic_parent_id(stop_id: str) -> str:
    return SYNTHETIC_PARENT_PREFIX + stop_id


def make_parent_station(representative: Stop) -> Stop:
    """Synthesize a station record copying the representative's name, position and timezone."""
    return Stop(
        stop_id=synthetic_parent_id(representative.stop_id),
        name=representative.name,
        lat=representative.lat,
        lon=representative.lon,
        location_type=LocationType.STATION,
        timezone=representative.timezone,
    )
