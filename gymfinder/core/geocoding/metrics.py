"""Prometheus metrics for the geocoding pipeline."""

from pathlib import Path

from prometheus_client import REGISTRY, Counter, write_to_textfile

# Provider call metrics
PROVIDER_LOOKUPS = Counter(
    "geocoder_provider_lookups_total",
    "Total number of provider lookups",
    ["provider", "result"],  # hit, miss, error
)

CACHE_LOOKUPS = Counter(
    "geocoder_cache_lookups_total",
    "Total number of provider cache lookups",
    ["provider", "result"],  # hit, miss, error
)

# Address resolution metrics
ADDRESS_OUTCOMES = Counter(
    "geocoder_address_outcomes_total",
    "Total number of unique addresses processed",
    ["city", "status"],  # resolved, failed
)

ACCURACY_TIERS = Counter(
    "geocoder_accuracy_tiers_total",
    "Total number of resolved addresses by accuracy tier",
    ["city", "tier"],  # high, medium, low
)

WHOLE_ADDRESS_RETRIES = Counter(
    "geocoder_whole_address_retries_total",
    "Total number of whole-address retries",
    ["city"],
)


def write_textfile(path: Path) -> None:
    """Write the registry in text exposition format for node-exporter pickup."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), REGISTRY)

