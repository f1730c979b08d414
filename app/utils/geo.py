"""
Coordinate helpers for report/emergency locations.
Locations are stored GeoJSON style: coordinates = [longitude, latitude].
"""

import math
from typing import Optional, Sequence, Tuple

from app.core.errors import ErrorMessages, ValidationFailedError

EARTH_RADIUS_M = 6371000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)
    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_valid_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    if latitude is None or longitude is None:
        return False
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def validate_coordinates(coordinates: Optional[Sequence[float]]) -> Tuple[float, float]:
    """
    Validate a [longitude, latitude] pair.

    Returns:
        (latitude, longitude)

    Raises:
        ValidationFailedError: missing or out-of-range coordinates
    """
    if not coordinates or len(coordinates) != 2:
        raise ValidationFailedError(ErrorMessages.LOCATION_REQUIRED)
    longitude, latitude = float(coordinates[0]), float(coordinates[1])
    if not is_valid_coordinates(latitude, longitude):
        raise ValidationFailedError(ErrorMessages.INVALID_COORDINATES)
    return latitude, longitude


def location_lat_lng(location: Optional[dict]) -> Optional[Tuple[float, float]]:
    """(latitude, longitude) of a stored location, or None if unusable."""
    coords = (location or {}).get("coordinates") or []
    if len(coords) != 2:
        return None
    try:
        longitude, latitude = float(coords[0]), float(coords[1])
    except (TypeError, ValueError):
        return None
    return (latitude, longitude) if is_valid_coordinates(latitude, longitude) else None
