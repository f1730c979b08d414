from abc import ABC, abstractmethod
from typing import Dict, Optional


class GeocodingProvider(ABC):
    """
    Reverse-geocoding provider used to fill in a missing report address.

    reverse_geocode() returns a GeocodeResult-shaped dict:
        formatted_address, locality, city, state, country, provider
    Implementations must not raise and must time out within 3 seconds.
    """

    name = "base"

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        raise NotImplementedError


class NoOpProvider(GeocodingProvider):
    """Selected with GEOCODING_PROVIDER=none; never performs network calls."""

    name = "none"

    def reverse_geocode(self, latitude: float, longitude: float) -> Dict[str, Optional[str]]:
        return empty_result(self.name)


def empty_result(provider: str) -> Dict[str, Optional[str]]:
    return {
        "formatted_address": None,
        "locality": None,
        "city": None,
        "state": None,
        "country": None,
        "provider": provider,
    }
