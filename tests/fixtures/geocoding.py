"""Geocoding fixtures for tests."""

from typing import Any, Callable, Optional, Union

import pytest

from gymfinder.core.geocoding.constants import CityRegion
from gymfinder.core.geocoding.models import AccuracyTier, Coordinate, GeocodeCandidate
from gymfinder.core.geocoding.providers import GeocodingProvider

ScriptedResult = Union[GeocodeCandidate, None, Exception]


class ScriptedProvider(GeocodingProvider):
    """Provider double that returns scripted results in call order.

    Once the script runs out every further call returns ``default``.
    """

    name = "scripted"

    def __init__(
        self,
        results: Optional[list[ScriptedResult]] = None,
        default: ScriptedResult = None,
    ):
        self.results = list(results or [])
        self.default = default
        self.calls: list[tuple[str, Optional[CityRegion]]] = []

    @property
    def queries(self) -> list[str]:
        return [query for query, _ in self.calls]

    def lookup(
        self, query: str, region: Optional[CityRegion] = None
    ) -> Optional[GeocodeCandidate]:
        self.calls.append((query, region))
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, Exception):
            raise result
        return result


def build_candidate(
    latitude: float = 27.95,
    longitude: float = -82.46,
    state: str = "Florida",
    display_name: str = "123, Main Street, Tampa, Hillsborough County, Florida, 33602, United States",
    accuracy: AccuracyTier = AccuracyTier.HIGH,
    confidence: float = 0.95,
    provider: str = "nominatim",
    **raw: Any,
) -> GeocodeCandidate:
    return GeocodeCandidate(
        coordinate=Coordinate(latitude, longitude),
        display_name=display_name,
        result_type="house",
        confidence=confidence,
        accuracy=accuracy,
        provider=provider,
        state=state,
        raw=raw,
    )


@pytest.fixture
def make_candidate() -> Callable[..., GeocodeCandidate]:
    """Factory for provider candidates, defaulting to downtown Tampa."""
    return build_candidate


@pytest.fixture
def scripted_provider() -> Callable[..., ScriptedProvider]:
    """Factory for a provider double with scripted results."""
    return ScriptedProvider


@pytest.fixture
def sleeps() -> list[float]:
    """Records delays requested by the code under test."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], None]:
    """Sleep replacement that records instead of waiting."""
    return sleeps.append


@pytest.fixture
def nominatim_raw() -> dict[str, Any]:
    """Raw Nominatim search result for a Tampa street address."""
    return {
        "place_id": 123456,
        "lat": "27.95",
        "lon": "-82.46",
        "display_name": "123, Main Street, Tampa, Hillsborough County, Florida, 33602, United States",
        "class": "place",
        "type": "house",
        "importance": 0.5,
        "address": {
            "house_number": "123",
            "road": "Main Street",
            "city": "Tampa",
            "county": "Hillsborough County",
            "state": "Florida",
            "postcode": "33602",
            "country": "United States",
            "country_code": "us",
        },
    }


@pytest.fixture
def google_raw() -> dict[str, Any]:
    """Raw Google Geocoding result for a rooftop-level business address."""
    return {
        "formatted_address": "123 Main St, Tampa, FL 33602, USA",
        "types": ["establishment", "point_of_interest"],
        "geometry": {
            "location": {"lat": 27.9501, "lng": -82.4601},
            "location_type": "ROOFTOP",
        },
        "address_components": [
            {"long_name": "123", "short_name": "123", "types": ["street_number"]},
            {"long_name": "Main Street", "short_name": "Main St", "types": ["route"]},
            {"long_name": "Tampa", "short_name": "Tampa", "types": ["locality", "political"]},
            {
                "long_name": "Florida",
                "short_name": "FL",
                "types": ["administrative_area_level_1", "political"],
            },
        ],
    }
