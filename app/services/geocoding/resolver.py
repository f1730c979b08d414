import logging
from typing import Optional

from app.core.settings import settings
from .base import GeocodingProvider, NoOpProvider
from .google_provider import GoogleMapsProvider
from .nominatim_provider import NominatimProvider

logger = logging.getLogger(__name__)

_provider_instance: Optional[GeocodingProvider] = None


def get_geocoding_provider() -> GeocodingProvider:
    """
    Resolve the active provider from GEOCODING_PROVIDER.

    - "none": no lookups
    - "google": Google Maps when GOOGLE_MAPS_API_KEY is set, otherwise Nominatim
    - anything else: Nominatim
    """
    global _provider_instance
    if _provider_instance is not None:
        return _provider_instance

    provider_name = (settings.GEOCODING_PROVIDER or "nominatim").lower()

    if provider_name == "none":
        _provider_instance = NoOpProvider()
    elif provider_name == "google" and settings.GOOGLE_MAPS_API_KEY:
        _provider_instance = GoogleMapsProvider(api_key=settings.GOOGLE_MAPS_API_KEY)
    else:
        if provider_name == "google":
            logger.warning("GEOCODING_PROVIDER=google without GOOGLE_MAPS_API_KEY; using nominatim")
        _provider_instance = NominatimProvider()

    logger.info(f"Geocoding provider initialized: {_provider_instance.name}")
    return _provider_instance


def reverse_geocode_address(latitude: float, longitude: float) -> Optional[str]:
    """Best-effort formatted address for a coordinate; None when unavailable."""
    result = get_geocoding_provider().reverse_geocode(latitude, longitude)
    return result.get("formatted_address")
