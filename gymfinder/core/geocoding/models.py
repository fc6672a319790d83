"""Data model for the geocoding resolution pipeline."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, computed_field

from gymfinder.core.geocoding.constants import DEFAULT_PRECISION


class AccuracyTier(str, Enum):
    """Discrete confidence bucket for a geocoding result."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_confidence(
        cls, confidence: float, high: float, medium: float, inclusive: bool = False
    ) -> "AccuracyTier":
        """Bucket a confidence score.

        Args:
            confidence: Score in [0, 1]
            high: Threshold for HIGH
            medium: Threshold for MEDIUM
            inclusive: Whether thresholds are met at equality (>=) or only above (>)

        Returns:
            The accuracy tier
        """
        if inclusive:
            if confidence >= high:
                return cls.HIGH
            if confidence >= medium:
                return cls.MEDIUM
            return cls.LOW
        if confidence > high:
            return cls.HIGH
        if confidence > medium:
            return cls.MEDIUM
        return cls.LOW


def format_coordinates(
    latitude: float, longitude: float, precision: int = DEFAULT_PRECISION
) -> str:
    """Serialize a coordinate pair as "<lat>,<lon>" with fixed precision."""
    if precision < 1:
        raise ValueError(f"precision must be at least 1, got {precision}")
    return f"{latitude:.{precision}f},{longitude:.{precision}f}"


def parse_coordinates(value: Optional[str]) -> Optional[tuple[float, float]]:
    """Parse a "<lat>,<lon>" string.

    Returns:
        (latitude, longitude), or None unless the text holds exactly two
        finite decimal numbers
    """
    if not value:
        return None

    parts = value.split(",")
    if len(parts) != 2:
        return None

    try:
        latitude = float(parts[0].strip())
        longitude = float(parts[1].strip())
    except ValueError:
        return None

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return None
    return latitude, longitude


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in signed decimal degrees."""

    latitude: float
    longitude: float

    def format(self, precision: int = DEFAULT_PRECISION) -> str:
        return format_coordinates(self.latitude, self.longitude, precision)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Coordinate"]:
        parsed = parse_coordinates(value)
        if parsed is None:
            return None
        return cls(*parsed)

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class AddressRecord:
    """A unique unresolved address and every dataset row that carries it."""

    address: str
    city: str
    row_indices: tuple[int, ...]
    label: str = ""


@dataclass(frozen=True)
class GeocodeCandidate:
    """The top provider match for one variation attempt."""

    coordinate: Coordinate
    display_name: str
    result_type: str
    confidence: float
    accuracy: AccuracyTier
    provider: str
    state: str = ""
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Resolved:
    """Terminal success for an address."""

    coordinates: str
    accuracy: AccuracyTier
    variation: str = ""
    attempts: int = 1
    issues: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """Terminal failure for an address."""

    reason: str
    attempts: int

    @property
    def ok(self) -> bool:
        return False


ResolutionOutcome = Union[Resolved, Failed]


class FailureEntry(BaseModel):
    """One failed address in a run report."""

    address: str
    reason: str


class RunReport(BaseModel):
    """Aggregate statistics for one geocoding run.

    Built incrementally while the run progresses and finalized once.
    """

    city: str
    total: int = 0
    resolved: int = 0
    failed: int = 0
    skipped: int = 0
    reused: int = 0
    missing_address: int = 0
    dropped_rows: int = 0
    accuracy: dict[str, int] = Field(
        default_factory=lambda: {tier.value: 0 for tier in AccuracyTier}
    )
    failures: list[FailureEntry] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_rate(self) -> float:
        """Percentage of unique addresses resolved, one decimal place."""
        if self.total == 0:
            return 0.0
        return round(self.resolved / self.total * 100, 1)

    @property
    def finalized(self) -> bool:
        return self.finished_at is not None

    def record(self, address: str, outcome: ResolutionOutcome) -> None:
        """Count one address outcome."""
        if self.finalized:
            raise RuntimeError("Run report is already finalized")
        if isinstance(outcome, Resolved):
            self.resolved += 1
            self.accuracy[outcome.accuracy.value] += 1
        else:
            self.failed += 1
            self.failures.append(FailureEntry(address=address, reason=outcome.reason))

    def finalize(self) -> "RunReport":
        if not self.finalized:
            self.finished_at = datetime.now(timezone.utc)
        return self

    def summary_lines(self) -> list[str]:
        """Human-readable summary, one line per entry."""
        lines = [
            "=" * 50,
            "GEOCODING SUMMARY",
            "=" * 50,
            f"City: {self.city}",
            f"Total addresses: {self.total}",
            f"Successfully geocoded: {self.resolved}",
            f"Failed: {self.failed}",
            f"Skipped (already had coordinates): {self.skipped}",
            f"Reused from matching rows: {self.reused}",
            f"Success rate: {self.success_rate}%",
            "Accuracy: "
            + ", ".join(f"{tier} {count}" for tier, count in self.accuracy.items()),
        ]
        if self.missing_address:
            lines.append(f"Rows without an address: {self.missing_address}")
        if self.dropped_rows:
            lines.append(f"Malformed rows dropped: {self.dropped_rows}")
        if self.failures:
            lines.append("")
            lines.append("FAILED ADDRESSES:")
            lines.extend(f"  - {f.address}: {f.reason}" for f in self.failures)
        lines.append("=" * 50)
        return lines
