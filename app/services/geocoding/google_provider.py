import logging
from typing import Any, Dict, List, Optional

import requests

from .base import GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


def _component(components: List[Dict], types: List[str]) -> Optional[str]:
    for c in components:
        if any(t in c.get("types", []) for t in types):
            return c.get("long_name")
    return None


class GoogleMapsProvider(GeocodingProvider):
    """Google Maps Geocoding API; used when GEOCODING_PROVIDER=google and a key is set."""

    name = "google"
    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
    TIMEOUT_SECONDS = 3.0

    def __init__(self, api_key: str):
        self.api_key = api_key

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        params = {"latlng": f"{latitude},{longitude}", "key": self.api_key}
        try:
            resp = requests.get(self.BASE_URL, params=params, timeout=self.TIMEOUT_SECONDS)
        except requests.RequestException as e:
            logger.warning(f"Google geocoding request failed for ({latitude}, {longitude}): {e}")
            return empty_result(self.name)

        if resp.status_code != 200:
            logger.warning(f"Google geocoding returned HTTP {resp.status_code}")
            return empty_result(self.name)

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError:
            logger.warning("Google geocoding returned a non-JSON body")
            return empty_result(self.name)

        results = data.get("results") or []
        if not results:
            return empty_result(self.name)

        first = results[0]
        components = first.get("address_components") or []
        return {
            "formatted_address": first.get("formatted_address"),
            "locality": _component(components, ["sublocality", "neighborhood"]),
            "city": _component(components, ["locality", "postal_town"]),
            "state": _component(components, ["administrative_area_level_1"]),
            "country": _component(components, ["country"]),
            "provider": self.name,
        }
