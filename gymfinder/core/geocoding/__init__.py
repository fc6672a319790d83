"""Geocoding resolution pipeline.

This package turns free-text gym addresses into coordinates:
- Address normalization and variation generation
- Provider clients (Nominatim, Google) with fallback and caching
- Confidence scoring and accuracy tiers
- Region validation against per-city bounds and water zones
- The per-address resolution state machine
"""

# Import main components for easy access
from gymfinder.core.geocoding.constants import CITY_REGIONS, CityRegion, get_city_region
from gymfinder.core.geocoding.models import (
    AccuracyTier,
    AddressRecord,
    Coordinate,
    Failed,
    GeocodeCandidate,
    Resolved,
    ResolutionOutcome,
    RunReport,
    format_coordinates,
    parse_coordinates,
)
from gymfinder.core.geocoding.normalizer import normalize_address
from gymfinder.core.geocoding.orchestrator import ResolutionOrchestrator
from gymfinder.core.geocoding.providers import (
    GeocodingProvider,
    TransportFailure,
    build_provider,
)
from gymfinder.core.geocoding.scoring import ConfidenceScorer, score_result
from gymfinder.core.geocoding.validator import RegionValidator
from gymfinder.core.geocoding.variations import generate_variations

__all__ = [
    "CITY_REGIONS",
    "CityRegion",
    "get_city_region",
    "AccuracyTier",
    "AddressRecord",
    "Coordinate",
    "Failed",
    "GeocodeCandidate",
    "Resolved",
    "ResolutionOutcome",
    "RunReport",
    "format_coordinates",
    "parse_coordinates",
    "normalize_address",
    "ResolutionOrchestrator",
    "GeocodingProvider",
    "TransportFailure",
    "build_provider",
    "ConfidenceScorer",
    "score_result",
    "RegionValidator",
    "generate_variations",
]
