"""
Geo Verifier Module - QR Attendance Session Service

Great-circle distance on a spherical earth (haversine) and the classroom
radius check applied to every scan. Malformed coordinates never raise out of
this module: they simply fail verification.
"""

import json
import logging
import math
from typing import Any, Optional, Tuple

EARTH_RADIUS_METERS = 6371000.0
MAX_DISTANCE_METERS = 100.0

logger = logging.getLogger(__name__)


def parse_location(value: Any) -> Optional[Tuple[float, float]]:
    """
    Normalize a location into a (latitude, longitude) tuple in degrees.

    Accepts a ``{'latitude': .., 'longitude': ..}`` dict, a JSON string of
    that dict, or a two-item (lat, lon) sequence. Returns None for anything
    missing, malformed or outside the valid coordinate ranges.
    """
    if value is None:
        return None

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except (TypeError, ValueError):
            return None

    if isinstance(value, dict):
        lat, lon = value.get('latitude'), value.get('longitude')
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lat, lon = value
    else:
        return None

    try:
        if isinstance(lat, bool) or isinstance(lon, bool):
            return None
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return None

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None

    return lat, lon


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float,
                       radius: float = EARTH_RADIUS_METERS) -> float:
    """Distance in meters between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (math.sin(d_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return radius * c


class GeoVerifier:
    """Classroom proximity check with a configurable radius."""

    def __init__(self, max_distance: float = MAX_DISTANCE_METERS,
                 earth_radius: float = EARTH_RADIUS_METERS):
        self.max_distance = max_distance
        self.earth_radius = earth_radius

    def distance(self, point_a: Any, point_b: Any) -> Optional[float]:
        """Distance in meters, or None if either point is malformed."""
        a = parse_location(point_a)
        b = parse_location(point_b)
        if a is None or b is None:
            return None
        return haversine_distance(a[0], a[1], b[0], b[1], self.earth_radius)

    def within_range(self, point_a: Any, point_b: Any) -> bool:
        """True when both points are valid and at most max_distance apart."""
        try:
            distance = self.distance(point_a, point_b)
        except Exception as e:
            logger.error(f"Location verification error: {str(e)}")
            return False

        if distance is None:
            logger.debug("Location verification failed: malformed coordinates")
            return False

        return distance <= self.max_distance


_default_verifier = GeoVerifier()


def within_range(point_a: Any, point_b: Any) -> bool:
    """Module-level check against the default 100 meter radius."""
    return _default_verifier.within_range(point_a, point_b)
