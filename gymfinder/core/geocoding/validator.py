"""Region validation for resolved coordinates.

Checks a serialized coordinate against the target city's bounding box,
its open-water exclusion zones and the minimum persisted precision.
Validation is advisory: issues are reported and logged, results are never
discarded here. The one gating check, whether a candidate is in the target
area, is ``is_in_area`` and is applied by the orchestrator.
"""

from dataclasses import dataclass, field
from typing import Optional

from shapely.geometry import Point, Polygon
from shapely.prepared import prep

from gymfinder.core.geocoding.constants import (
    CITY_REGIONS,
    MIN_PRECISION,
    CityRegion,
)
from gymfinder.core.geocoding.models import GeocodeCandidate, parse_coordinates
from gymfinder.core.state_mapping import (
    normalize_state_to_code,
    state_name,
    text_mentions_state,
)


@dataclass
class RegionValidation:
    """Result of validating one coordinate."""

    is_valid: bool = True
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def add_issue(self, issue: str, suggestion: Optional[str] = None) -> None:
        self.is_valid = False
        self.issues.append(issue)
        if suggestion:
            self.suggestions.append(suggestion)


def fractional_digits(component: str) -> int:
    """Count digits after the decimal point of a serialized number."""
    _, dot, fraction = component.strip().partition(".")
    if not dot:
        return 0
    return len(fraction.rstrip())


class RegionValidator:
    """Validates coordinates against the known city regions."""

    def __init__(self, regions: Optional[dict[str, CityRegion]] = None):
        self.regions = regions if regions is not None else CITY_REGIONS
        self._water = {
            key: [
                (zone.name, prep(Polygon([(lon, lat) for lat, lon in zone.vertices])))
                for zone in region.water_zones
            ]
            for key, region in self.regions.items()
        }

    def get_region(self, city: Optional[str]) -> Optional[CityRegion]:
        if not city:
            return None
        return self.regions.get(city.strip().lower())

    def is_valid_coordinates(self, latitude: float, longitude: float) -> bool:
        """Check if coordinates are valid lat/long values."""
        return -90 <= latitude <= 90 and -180 <= longitude <= 180

    def water_zone_at(self, latitude: float, longitude: float, city: str) -> Optional[str]:
        """Name of the city's water zone containing the point, if any."""
        point = Point(longitude, latitude)  # Shapely uses (lon, lat) order
        for name, polygon in self._water.get(city.strip().lower(), []):
            if polygon.contains(point):
                return name
        return None

    def suggest_correction(
        self, latitude: float, longitude: float, city: str
    ) -> Optional[str]:
        """Suggest a correction for a coordinate outside the city's box."""
        region = self.get_region(city)
        if region is None or region.contains(latitude, longitude):
            return None

        # Find which known city the coordinates actually fall in
        for key, other in self.regions.items():
            if key != region.key and other.contains(latitude, longitude):
                return f"Coordinates are in {key}, not {region.key}"

        return (
            f"Coordinates are outside {region.key} bounds; check the address "
            f"is in {state_name(region.state_code) or region.state_code}"
        )

    def validate(self, coordinates: str, city: str) -> RegionValidation:
        """Validate a serialized "<lat>,<lon>" coordinate for a city.

        Args:
            coordinates: Coordinate string as it will be persisted
            city: Target city key

        Returns:
            Validation result with issues and remediation suggestions
        """
        result = RegionValidation()

        parsed = parse_coordinates(coordinates)
        if parsed is None:
            result.add_issue(
                f"Unparseable coordinates: {coordinates!r}",
                "Expected '<latitude>,<longitude>' in decimal degrees",
            )
            return result

        latitude, longitude = parsed
        if not self.is_valid_coordinates(latitude, longitude):
            result.add_issue(
                f"Coordinates out of range: {latitude}, {longitude}",
                "Latitude and longitude may be swapped",
            )
            return result

        region = self.get_region(city)
        if region is None:
            result.suggestions.append(
                f"No region configured for {city}; bounds and water checks skipped"
            )
        else:
            if not region.contains(latitude, longitude):
                result.add_issue(
                    f"Coordinates {latitude}, {longitude} are outside the "
                    f"{region.key} bounding box",
                    self.suggest_correction(latitude, longitude, city),
                )

            zone = self.water_zone_at(latitude, longitude, city)
            if zone:
                result.add_issue(
                    f"Coordinates fall in {zone}",
                    "Geocoder likely matched a waterfront street; "
                    "try the full street address",
                )

        precision = min(fractional_digits(part) for part in coordinates.split(","))
        if precision < MIN_PRECISION:
            result.add_issue(
                f"Only {precision} decimal digits of precision",
                f"Serialize with at least {MIN_PRECISION} decimal digits",
            )

        return result

    def is_in_area(self, candidate: GeocodeCandidate, city: str) -> bool:
        """Check whether a candidate is in the target city's state.

        Uses the structured state field first, then the display string.
        Cities without a configured region accept any candidate.
        """
        region = self.get_region(city)
        if region is None:
            return True

        if normalize_state_to_code(candidate.state) == region.state_code:
            return True
        return text_mentions_state(candidate.display_name, region.state_code)
