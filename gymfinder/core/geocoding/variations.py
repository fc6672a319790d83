"""Candidate address rewrites, broadest match first."""

import re

from gymfinder.core.geocoding.normalizer import normalize_address

MAX_VARIATIONS = 5

_UNIT_TOKENS = re.compile(
    r"\s*\b(?:unit|bldg|building|room|rm|floor|lot|space|spc)\b\.?\s*"
    r"(?:[a-z]?\d+[a-z0-9-]*|[a-z])\b",
    re.IGNORECASE,
)
_STE_LETTER = re.compile(r"\s+ste\.?\s+[a-z]\b", re.IGNORECASE)
_LETTER_BEFORE_COMMA = re.compile(r"\s+[a-z]\s*,", re.IGNORECASE)
_HOUSE_NUMBER = re.compile(r"^\d+[a-z]?(?:-\d+)?\s+", re.IGNORECASE)


def strip_unit(address: str) -> str:
    """Remove unit, building and floor tokens left after normalization."""
    stripped = _UNIT_TOKENS.sub("", address)
    stripped = _STE_LETTER.sub("", stripped)
    stripped = _LETTER_BEFORE_COMMA.sub(",", stripped)
    return normalize_address(stripped)


def strip_house_number(address: str) -> str:
    return _HOUSE_NUMBER.sub("", address, count=1).strip()


def _split(address: str) -> list[str]:
    return [part.strip() for part in address.split(",") if part.strip()]


def generate_variations(normalized: str) -> list[str]:
    """Build the ordered list of address variations to try.

    1. the normalized address
    2. with remaining unit tokens removed
    3. without the leading house number
    4. first comma segment + last comma segment
    5. street name (no number) + last comma segment

    Later entries are only added when they differ from every earlier one,
    so the list holds no duplicates and never exceeds five entries.

    Args:
        normalized: Output of ``normalize_address``

    Returns:
        Variations in the order they should be tried; empty for an empty address
    """
    normalized = normalized.strip()
    if not normalized:
        return []

    variations: list[str] = []

    def add(candidate: str) -> None:
        candidate = candidate.strip().strip(",").strip()
        if candidate and candidate not in variations and len(variations) < MAX_VARIATIONS:
            variations.append(candidate)

    add(normalized)

    without_unit = strip_unit(normalized)
    add(without_unit)

    base = without_unit or normalized
    add(strip_house_number(base))

    parts = _split(base)
    if len(parts) >= 2:
        add(f"{parts[0]}, {parts[-1]}")
        street_name = strip_house_number(parts[0])
        if street_name:
            add(f"{street_name}, {parts[-1]}")

    return variations
