"""Geocoding provider clients.

Each provider performs exactly one network lookup per call and returns
at most one candidate. Timeouts, service errors and malformed payloads
are raised as ``TransportFailure``; retrying is left to the orchestrator.
"""

import hashlib
import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Optional

from geopy.exc import GeopyError
from geopy.geocoders import GoogleV3, Nominatim
from geopy.location import Location
from redis import Redis, RedisError

from gymfinder.core.config import Settings, settings
from gymfinder.core.geocoding.constants import DEFAULT_TIMEOUT, CityRegion
from gymfinder.core.geocoding.metrics import CACHE_LOOKUPS, PROVIDER_LOOKUPS
from gymfinder.core.geocoding.models import AccuracyTier, Coordinate, GeocodeCandidate
from gymfinder.core.geocoding.scoring import ConfidenceScorer, default_scorer

logger = logging.getLogger(__name__)


class TransportFailure(Exception):
    """A provider call failed: network error, timeout, or unusable response."""

    def __init__(self, provider: str, query: str, message: str):
        self.provider = provider
        self.query = query
        self.message = message
        super().__init__(f"{provider} lookup failed for {query!r}: {message}")


class GeocodingProvider(ABC):
    """A single external geocoding service."""

    name: str = ""

    @abstractmethod
    def lookup(
        self, query: str, region: Optional[CityRegion] = None
    ) -> Optional[GeocodeCandidate]:
        """Geocode one address string.

        Args:
            query: Address variation to look up
            region: Target city context, if known

        Returns:
            The top candidate, or None if the provider found nothing

        Raises:
            TransportFailure: On timeout, service error, or malformed response
        """


class GeopyProvider(GeocodingProvider):
    """Shared call/parse handling for geopy-backed providers."""

    def __init__(self, geocoder: Any, scorer: Optional[ConfidenceScorer] = None):
        self.geocoder = geocoder
        self.scorer = scorer or default_scorer

    @abstractmethod
    def _geocode(self, query: str, region: Optional[CityRegion]) -> Optional[Location]:
        """Issue the request through geopy."""

    @abstractmethod
    def _candidate(self, location: Location) -> GeocodeCandidate:
        """Convert geopy's location into a scored candidate."""

    def lookup(
        self, query: str, region: Optional[CityRegion] = None
    ) -> Optional[GeocodeCandidate]:
        try:
            location = self._geocode(query, region)
        except GeopyError as e:
            PROVIDER_LOOKUPS.labels(provider=self.name, result="error").inc()
            raise TransportFailure(self.name, query, str(e) or type(e).__name__) from e
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            # geopy parses the payload inside geocode()
            PROVIDER_LOOKUPS.labels(provider=self.name, result="error").inc()
            raise TransportFailure(self.name, query, f"malformed response: {e}") from e

        if location is None:
            PROVIDER_LOOKUPS.labels(provider=self.name, result="miss").inc()
            return None

        try:
            candidate = self._candidate(location)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            PROVIDER_LOOKUPS.labels(provider=self.name, result="error").inc()
            raise TransportFailure(self.name, query, f"malformed response: {e}") from e

        PROVIDER_LOOKUPS.labels(provider=self.name, result="hit").inc()
        return candidate

    @staticmethod
    def _coordinate(latitude: Any, longitude: Any) -> Coordinate:
        lat = float(latitude)
        lon = float(longitude)
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ValueError(f"non-finite coordinates {lat}, {lon}")
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise ValueError(f"coordinates out of range {lat}, {lon}")
        return Coordinate(lat, lon)


class NominatimProvider(GeopyProvider):
    """OpenStreetMap Nominatim search."""

    name = "nominatim"

    def __init__(
        self,
        user_agent: Optional[str] = None,
        domain: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        scorer: Optional[ConfidenceScorer] = None,
        geocoder: Any = None,
    ):
        if geocoder is None:
            geocoder = Nominatim(
                user_agent=user_agent or settings.NOMINATIM_USER_AGENT,
                domain=domain or settings.NOMINATIM_DOMAIN,
                timeout=timeout,
                scheme="https",
            )
            geocoder.headers["Accept"] = "application/json"
        super().__init__(geocoder, scorer)

    def _geocode(self, query: str, region: Optional[CityRegion]) -> Optional[Location]:
        return self.geocoder.geocode(query, exactly_one=True, addressdetails=True)

    def _candidate(self, location: Location) -> GeocodeCandidate:
        raw = dict(location.raw or {})
        coordinate = self._coordinate(raw["lat"], raw["lon"])
        score = self.scorer.score(raw)
        address = raw.get("address") or {}
        return GeocodeCandidate(
            coordinate=coordinate,
            display_name=raw.get("display_name") or location.address or "",
            result_type=str(raw.get("type", "")),
            confidence=score.confidence,
            accuracy=score.accuracy,
            provider=self.name,
            state=address.get("state", ""),
            raw=raw,
        )


class GoogleProvider(GeopyProvider):
    """Google Maps Geocoding API, biased to the target city's bounding box."""

    name = "google"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        scorer: Optional[ConfidenceScorer] = None,
        geocoder: Any = None,
    ):
        if geocoder is None:
            api_key = api_key or settings.GOOGLE_MAPS_API_KEY
            if not api_key:
                raise ValueError("Google geocoding requires GOOGLE_MAPS_API_KEY")
            geocoder = GoogleV3(api_key=api_key, timeout=timeout)
        super().__init__(geocoder, scorer)

    def _geocode(self, query: str, region: Optional[CityRegion]) -> Optional[Location]:
        bounds = None
        if region is not None:
            bounds = [
                (region.min_lat, region.min_lon),
                (region.max_lat, region.max_lon),
            ]
        return self.geocoder.geocode(query, exactly_one=True, bounds=bounds, region="us")

    def _candidate(self, location: Location) -> GeocodeCandidate:
        raw = dict(location.raw or {})
        point = raw["geometry"]["location"]
        coordinate = self._coordinate(point["lat"], point["lng"])
        score = self.scorer.score(raw)

        state = ""
        for component in raw.get("address_components") or []:
            if "administrative_area_level_1" in component.get("types", []):
                state = component.get("short_name") or component.get("long_name", "")
                break

        types = raw.get("types") or []
        return GeocodeCandidate(
            coordinate=coordinate,
            display_name=raw.get("formatted_address") or location.address or "",
            result_type=types[0] if types else "",
            confidence=score.confidence,
            accuracy=score.accuracy,
            provider=self.name,
            state=state,
            raw=raw,
        )


class FallbackProvider(GeocodingProvider):
    """Try a primary provider, consulting a fallback for weak or missing results.

    A primary result above ``min_primary_confidence`` is returned directly.
    Otherwise the fallback is asked and its result preferred; the weak
    primary result is kept only when the fallback finds nothing.
    """

    def __init__(
        self,
        primary: GeocodingProvider,
        fallback: GeocodingProvider,
        min_primary_confidence: float = 0.8,
    ):
        self.primary = primary
        self.fallback = fallback
        self.min_primary_confidence = min_primary_confidence
        self.name = f"{primary.name}+{fallback.name}"

    def lookup(
        self, query: str, region: Optional[CityRegion] = None
    ) -> Optional[GeocodeCandidate]:
        primary_result = None
        primary_error: Optional[TransportFailure] = None
        try:
            primary_result = self.primary.lookup(query, region)
        except TransportFailure as e:
            logger.warning(f"{self.primary.name} failed, trying {self.fallback.name}: {e}")
            primary_error = e

        if (
            primary_result is not None
            and primary_result.confidence > self.min_primary_confidence
        ):
            return primary_result

        try:
            fallback_result = self.fallback.lookup(query, region)
        except TransportFailure:
            if primary_error is not None:
                raise
            return primary_result

        if fallback_result is not None:
            return fallback_result
        return primary_result


class CachingProvider(GeocodingProvider):
    """Redis cache in front of a provider. Only successful lookups are cached."""

    def __init__(self, provider: GeocodingProvider, redis_client: Redis, ttl: int):
        self.provider = provider
        self.redis_client = redis_client
        self.ttl = ttl
        self.name = provider.name

    def _get_cache_key(self, query: str, region: Optional[CityRegion] = None) -> str:
        query_hash = hashlib.sha256(query.lower().encode()).hexdigest()
        region_key = region.key if region is not None else "none"
        return f"geocode:{self.provider.name}:{region_key}:{query_hash}"

    def _get_cached(
        self, query: str, region: Optional[CityRegion] = None
    ) -> Optional[GeocodeCandidate]:
        try:
            cached = self.redis_client.get(self._get_cache_key(query, region))
        except RedisError as e:
            logger.warning(f"Cache retrieval error: {e}")
            CACHE_LOOKUPS.labels(provider=self.name, result="error").inc()
            return None

        if not cached:
            CACHE_LOOKUPS.labels(provider=self.name, result="miss").inc()
            return None

        try:
            data = json.loads(cached)
            candidate = GeocodeCandidate(
                coordinate=Coordinate(data["lat"], data["lon"]),
                display_name=data["display_name"],
                result_type=data["result_type"],
                confidence=data["confidence"],
                accuracy=AccuracyTier(data["accuracy"]),
                provider=data["provider"],
                state=data.get("state", ""),
                raw=data.get("raw", {}),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cache entry for {query[:50]}: {e}")
            CACHE_LOOKUPS.labels(provider=self.name, result="error").inc()
            return None

        logger.debug(f"Cache hit for address: {query[:50]}...")
        CACHE_LOOKUPS.labels(provider=self.name, result="hit").inc()
        return candidate

    def _cache(
        self,
        query: str,
        candidate: GeocodeCandidate,
        region: Optional[CityRegion] = None,
    ) -> None:
        payload = {
            "lat": candidate.coordinate.latitude,
            "lon": candidate.coordinate.longitude,
            "display_name": candidate.display_name,
            "result_type": candidate.result_type,
            "confidence": candidate.confidence,
            "accuracy": candidate.accuracy.value,
            "provider": candidate.provider,
            "state": candidate.state,
            "raw": candidate.raw,
        }
        try:
            self.redis_client.setex(
                self._get_cache_key(query, region), self.ttl, json.dumps(payload)
            )
        except (RedisError, TypeError, ValueError) as e:
            logger.warning(f"Cache storage error: {e}")

    def lookup(
        self, query: str, region: Optional[CityRegion] = None
    ) -> Optional[GeocodeCandidate]:
        cached = self._get_cached(query, region)
        if cached is not None:
            return cached

        candidate = self.provider.lookup(query, region)
        if candidate is not None:
            self._cache(query, candidate, region)
        return candidate


def connect_cache(redis_url: Optional[str]) -> Optional[Redis]:
    """Connect to Redis, returning None when caching is unavailable."""
    if not redis_url:
        return None
    try:
        client = Redis.from_url(redis_url, decode_responses=True)
        client.ping()
    except RedisError as e:
        logger.warning(f"Redis connection failed, caching disabled: {e}")
        return None
    logger.info("Redis caching enabled for geocoding")
    return client


def build_provider(
    config: Optional[Settings] = None, redis_client: Optional[Redis] = None
) -> GeocodingProvider:
    """Build the configured provider chain.

    ``auto`` uses Google first with Nominatim as fallback when an API key is
    set, otherwise Nominatim alone. Each provider gets its own cache entry
    when Redis is available.

    Args:
        config: Settings to use, defaults to the module-level settings
        redis_client: Pre-connected Redis client; connects from REDIS_URL if omitted

    Returns:
        The provider the orchestrator should call
    """
    config = config or settings
    if redis_client is None:
        redis_client = connect_cache(config.REDIS_URL)

    def cached(provider: GeocodingProvider) -> GeocodingProvider:
        if redis_client is None:
            return provider
        return CachingProvider(provider, redis_client, config.GEOCODING_CACHE_TTL)

    nominatim = cached(
        NominatimProvider(
            user_agent=config.NOMINATIM_USER_AGENT,
            domain=config.NOMINATIM_DOMAIN,
            timeout=config.GEOCODING_TIMEOUT,
        )
    )

    use_google = config.GEOCODING_PROVIDER == "google" or (
        config.GEOCODING_PROVIDER == "auto" and bool(config.GOOGLE_MAPS_API_KEY)
    )
    if not use_google:
        logger.info("Using Nominatim geocoder")
        return nominatim

    google = cached(
        GoogleProvider(
            api_key=config.GOOGLE_MAPS_API_KEY, timeout=config.GEOCODING_TIMEOUT
        )
    )
    logger.info("Using Google geocoder with Nominatim fallback")
    return FallbackProvider(google, nominatim, config.GOOGLE_MIN_CONFIDENCE)
