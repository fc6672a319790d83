"""Geographic constants for geocoding validation.

This module contains the per-city regions the geocoder knows about:
the bounding box a resolved coordinate should fall in, the state used
by the area acceptance check, and open-water zones that no gym should
resolve into.
"""

from dataclasses import dataclass, field
from typing import Optional

# Persisted coordinate precision (fractional digits)
DEFAULT_PRECISION = 8
MIN_PRECISION = 6

# Provider request timeout in seconds
DEFAULT_TIMEOUT = 10

# Pacing between addresses and before a whole-address retry, in seconds
INTER_ADDRESS_DELAY = 1.5
RETRY_DELAY = 2.0
MAX_WHOLE_ADDRESS_RETRIES = 1

NO_MATCH_REASON = "no valid coordinates for any address variation"
EMPTY_ADDRESS_REASON = "address is empty after normalization"


@dataclass(frozen=True)
class WaterZone:
    """An open-water polygon, vertices as (latitude, longitude)."""

    name: str
    vertices: tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class CityRegion:
    """A known city the geocoder validates results against."""

    key: str
    state_code: str
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    water_zones: tuple[WaterZone, ...] = field(default_factory=tuple)

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is inside the city's bounding box."""
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )


TAMPA_BAY_ZONES = (
    WaterZone(
        name="Hillsborough Bay",
        vertices=(
            (27.92, -82.48),
            (27.92, -82.42),
            (27.78, -82.40),
            (27.70, -82.50),
            (27.78, -82.55),
        ),
    ),
    WaterZone(
        name="Old Tampa Bay",
        vertices=(
            (28.02, -82.70),
            (28.00, -82.62),
            (27.90, -82.56),
            (27.86, -82.62),
            (27.92, -82.70),
        ),
    ),
)

BISCAYNE_BAY_ZONES = (
    WaterZone(
        name="Biscayne Bay",
        vertices=(
            (25.87, -80.175),
            (25.87, -80.150),
            (25.76, -80.165),
            (25.55, -80.220),
            (25.55, -80.300),
            (25.76, -80.190),
        ),
    ),
)

CITY_REGIONS: dict[str, CityRegion] = {
    "tampa": CityRegion(
        key="tampa",
        state_code="FL",
        min_lat=27.5,
        max_lat=28.5,
        min_lon=-82.8,
        max_lon=-82.0,
        water_zones=TAMPA_BAY_ZONES,
    ),
    "austin": CityRegion(
        key="austin",
        state_code="TX",
        min_lat=30.0,
        max_lat=30.8,
        min_lon=-98.0,
        max_lon=-97.4,
    ),
    "miami": CityRegion(
        key="miami",
        state_code="FL",
        min_lat=25.5,
        max_lat=26.5,
        min_lon=-81.0,
        max_lon=-80.0,
        water_zones=BISCAYNE_BAY_ZONES,
    ),
}


def get_city_region(city: Optional[str]) -> Optional[CityRegion]:
    """Look up a city region by key, case-insensitively."""
    if not city:
        return None
    return CITY_REGIONS.get(city.strip().lower())
