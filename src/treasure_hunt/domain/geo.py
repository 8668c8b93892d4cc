"""Great-circle distance helpers used for location gating."""

import math
from dataclasses import dataclass

EARTH_RADIUS_METERS = 6_371_000.0
DEFAULT_MAX_DISTANCE_METERS = 1000.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude reading in decimal degrees."""

    lat: float
    lng: float

    def is_valid(self) -> bool:
        """Return True when both coordinates are finite and in range."""
        if math.isnan(self.lat) or math.isnan(self.lng):
            return False
        return -90 <= self.lat <= 90 and -180 <= self.lng <= 180


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the haversine distance between two coordinates in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_between(current: GeoPoint, target: GeoPoint) -> float:
    """Return the distance between two points in meters."""
    return distance_meters(current.lat, current.lng, target.lat, target.lng)


def is_within_range(
    current: GeoPoint,
    target: GeoPoint,
    max_meters: float = DEFAULT_MAX_DISTANCE_METERS,
) -> bool:
    """Return True when target is at most max_meters away from current."""
    return distance_between(current, target) <= max_meters
