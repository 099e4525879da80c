"""
Shared geodesy helpers for stopmerge
Great-circle distance and the degree windows used to prune spatial searches
"""

import math
from typing import Tuple


EARTH_RADIUS_KM = 6371.0

LAT_AXIS = 0
LON_AXIS = 1

# Widens search boxes past float rounding at the exact radius
_BOX_SLACK_DEG = 1e-9


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in kilometers using the Haversine formula.

    Args:
        lat1, lon1: First point coordinates
        lat2, lon2: Second point coordinates

    Returns:
        Distance in kilometers
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi/2)**2 + math.cos(phi1) * \
        math.cos(phi2) * math.sin(delta_lambda/2)**2
    # Rounding can push a a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

    return EARTH_RADIUS_KM * c


def coord_degrees(radius_km: float, lat: float, axis: int) -> float:
    """
    Convert a search radius into a degree delta along one axis.

    The latitude delta is exact: no point within radius_km can differ in
    latitude by more. The longitude delta widens with latitude to follow
    meridian convergence, and becomes 180 once the circle reaches a pole,
    at which point every longitude is in range.

    Args:
        radius_km: Search radius in kilometers
        lat: Latitude of the search center
        axis: LAT_AXIS or LON_AXIS

    Returns:
        Non-negative delta in degrees
    """
    angular = radius_km / EARTH_RADIUS_KM
    lat_delta = math.degrees(angular)
    if axis == LAT_AXIS:
        return lat_delta

    if abs(lat) + lat_delta >= 90.0:
        return 180.0
    # asin(sin r / cos lat) is the true half-width of the circle in longitude;
    # it is never narrower than r / cos lat.
    ratio = math.sin(angular) / math.cos(math.radians(lat))
    return min(180.0, math.degrees(math.asin(min(1.0, ratio))))


def lat_lon_bounding_box(lat: float, lon: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    Bounding box (in degrees) that contains every point within radius_km.

    Longitude bounds are not wrapped; a box that crosses the antimeridian
    or covers a pole is widened to the full [-180, 180] range.

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    d_lat = coord_degrees(radius_km, lat, LAT_AXIS)
    d_lon = coord_degrees(radius_km, lat, LON_AXIS)

    d_lat += _BOX_SLACK_DEG
    d_lon += _BOX_SLACK_DEG

    min_lon, max_lon = lon - d_lon, lon + d_lon
    if d_lon >= 180.0 or min_lon < -180.0 or max_lon > 180.0:
        min_lon, max_lon = -180.0, 180.0

    return lat - d_lat, lat + d_lat, min_lon, max_lon
