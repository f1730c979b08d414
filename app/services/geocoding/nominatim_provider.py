import logging
from typing import Any, Dict, Optional

import requests

from app.core.settings import settings
from .base import GeocodingProvider, empty_result

logger = logging.getLogger(__name__)


class NominatimProvider(GeocodingProvider):
    """
    OpenStreetMap Nominatim reverse geocoding (no API key).

    Nominatim's usage policy requires an identifying User-Agent.
    """

    name = "nominatim"
    BASE_URL = "https://nominatim.openstreetmap.org/reverse"
    TIMEOUT_SECONDS = 3.0

    def __init__(self, user_agent: Optional[str] = None):
        self.user_agent = user_agent or f"civic-desk/{settings.APP_VERSION}"

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        params = {"lat": latitude, "lon": longitude, "format": "json", "addressdetails": 1}
        try:
            resp = requests.get(
                self.BASE_URL,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.warning(f"Nominatim request failed for ({latitude}, {longitude}): {e}")
            return empty_result(self.name)

        if resp.status_code != 200:
            logger.warning(f"Nominatim returned HTTP {resp.status_code} for ({latitude}, {longitude})")
            return empty_result(self.name)

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError:
            logger.warning("Nominatim returned a non-JSON body")
            return empty_result(self.name)

        address = data.get("address") or {}
        return {
            "formatted_address": data.get("display_name"),
            "locality": address.get("suburb") or address.get("neighbourhood") or address.get("quarter"),
            "city": address.get("city") or address.get("town") or address.get("village"),
            "state": address.get("state"),
            "country": address.get("country"),
            "provider": self.name,
        }
