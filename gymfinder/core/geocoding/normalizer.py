"""Address normalization.

Deterministic cleanup of free-text business addresses before they are
sent to a geocoding provider.
"""

import re

_SPECIAL_CHARS = re.compile(r"[#&]")
_WHITESPACE = re.compile(r"\s+")
_COMMA_RUN = re.compile(r",(?:\s*,)+")
_TRAILING_COMMA = re.compile(r",\s*$")
# "Suite 4", "Ste. 200B", "Apt 12-C", "Ste B"; word boundary keeps "Stephens Rd"
_UNIT_DESIGNATOR = re.compile(
    r"\s*\b(?:suite|apt|ste)\b\.?\s*(?:[a-z]?\d+[a-z0-9-]*|[a-z])\b",
    re.IGNORECASE,
)


def _cleanup_pass(address: str) -> str:
    """Apply the ordered cleanup steps once."""
    cleaned = _SPECIAL_CHARS.sub("", address)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = _COMMA_RUN.sub(",", cleaned)
    cleaned = _TRAILING_COMMA.sub("", cleaned)
    cleaned = _UNIT_DESIGNATOR.sub("", cleaned)
    return cleaned.strip()


def normalize_address(address: str | None) -> str:
    """Normalize a raw address string.

    Removes '#' and '&', collapses whitespace and repeated commas, drops a
    trailing comma and suite/apartment designators, then trims. The pass is
    repeated until the text stops changing, so a designator removal that
    leaves ", ," behind is cleaned up by the same call and
    ``normalize_address(normalize_address(a)) == normalize_address(a)``.

    Args:
        address: Raw address as found in the dataset

    Returns:
        Normalized address, possibly empty
    """
    if not address:
        return ""

    current = address
    while True:
        cleaned = _cleanup_pass(current)
        if cleaned == current:
            return cleaned
        current = cleaned
