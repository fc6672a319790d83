"""Confidence scoring for raw geocoding provider results.

Each provider returns a differently shaped payload. A ``ResultShape``
recognizes one payload shape and supplies its own boost table and tier
thresholds; ``ConfidenceScorer`` picks the shape and sums the boosts.
Adding a provider means adding a shape, not another scorer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from gymfinder.core.geocoding.models import AccuracyTier

BASE_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ConfidenceScore:
    """Scored provider result."""

    confidence: float
    accuracy: AccuracyTier
    shape: str


class ResultShape(ABC):
    """A provider payload shape with its own scoring rules."""

    name: str = ""
    high_threshold: float = 0.8
    medium_threshold: float = 0.6
    inclusive: bool = False

    @abstractmethod
    def matches(self, raw: dict[str, Any]) -> bool:
        """Whether the payload has this shape's signature."""

    @abstractmethod
    def boosts(self, raw: dict[str, Any]) -> Iterable[float]:
        """Yield the additive boosts earned by the payload."""

    def tier(self, confidence: float) -> AccuracyTier:
        return AccuracyTier.from_confidence(
            confidence, self.high_threshold, self.medium_threshold, self.inclusive
        )


class NominatimLike(ResultShape):
    """OpenStreetMap search results: lat/lon strings, type, address, importance."""

    name = "nominatim"
    high_threshold = 0.8
    medium_threshold = 0.6

    TYPE_BOOSTS = {
        "house": 0.2,
        "commercial": 0.2,
        "fitness_centre": 0.2,
        "sports_centre": 0.2,
        "building": 0.15,
        "street": 0.1,
        "residential": 0.1,
    }

    def matches(self, raw: dict[str, Any]) -> bool:
        return "lat" in raw and "lon" in raw

    def boosts(self, raw: dict[str, Any]) -> Iterable[float]:
        yield self.TYPE_BOOSTS.get(str(raw.get("type", "")).lower(), 0.0)

        address = raw.get("address") or {}
        if address.get("house_number"):
            yield 0.15
        if address.get("road"):
            yield 0.1
        if address.get("city") or address.get("town"):
            yield 0.05

        try:
            importance = float(raw.get("importance") or 0)
        except (TypeError, ValueError):
            importance = 0.0
        if importance > 0.8:
            yield 0.1
        elif importance > 0.6:
            yield 0.05


class GoogleLike(ResultShape):
    """Google Geocoding results: types, geometry.location_type, address_components."""

    name = "google"
    high_threshold = 0.9
    medium_threshold = 0.7
    inclusive = True

    TYPE_BOOSTS = (
        ("establishment", 0.2),
        ("premise", 0.15),
        ("street_address", 0.1),
    )
    LOCATION_TYPE_BOOSTS = {
        "ROOFTOP": 0.2,
        "RANGE_INTERPOLATED": 0.1,
        "GEOMETRIC_CENTER": 0.05,
    }

    def matches(self, raw: dict[str, Any]) -> bool:
        return "geometry" in raw and "address_components" in raw

    def boosts(self, raw: dict[str, Any]) -> Iterable[float]:
        types = raw.get("types") or []
        for type_name, boost in self.TYPE_BOOSTS:
            if type_name in types:
                yield boost

        location_type = (raw.get("geometry") or {}).get("location_type", "")
        yield self.LOCATION_TYPE_BOOSTS.get(location_type, 0.0)

        component_types = {
            component_type
            for component in raw.get("address_components") or []
            for component_type in component.get("types", [])
        }
        if {"street_number", "route"} <= component_types:
            yield 0.1


DEFAULT_SHAPES: tuple[ResultShape, ...] = (GoogleLike(), NominatimLike())


class ConfidenceScorer:
    """Score raw provider results with the matching shape's rules."""

    def __init__(self, shapes: Optional[Sequence[ResultShape]] = None):
        self.shapes = tuple(shapes) if shapes is not None else DEFAULT_SHAPES

    def score(self, raw: dict[str, Any]) -> ConfidenceScore:
        """Compute confidence and accuracy tier for one raw result.

        The first matching shape supplies the boosts. When more than one
        shape matches, the tier is taken with the strictest thresholds.

        Args:
            raw: Provider payload for the top result

        Returns:
            Confidence in [0, 1], tier, and the shape used
        """
        matching = [shape for shape in self.shapes if shape.matches(raw)]
        if not matching:
            return ConfidenceScore(BASE_CONFIDENCE, AccuracyTier.LOW, "unknown")

        scoring_shape = matching[0]
        total = BASE_CONFIDENCE + sum(scoring_shape.boosts(raw))
        # Rounded so 0.5 + 0.2 + 0.2 lands on 0.9 exactly
        confidence = round(min(total, 1.0), 6)

        tier_shape = max(
            matching, key=lambda shape: (shape.high_threshold, shape.medium_threshold)
        )
        return ConfidenceScore(confidence, tier_shape.tier(confidence), scoring_shape.name)


default_scorer = ConfidenceScorer()


def score_result(raw: dict[str, Any]) -> ConfidenceScore:
    return default_scorer.score(raw)
