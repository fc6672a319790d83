"""Per-address resolution.

Drives one address through its variations with an explicit state machine:

    PENDING -> TRYING_VARIATION(i) -> accepted (returns Resolved)
                                   -> NEXT_VARIATION -> TRYING_VARIATION(i+1)
                                                     -> RETRY_WHOLE_ADDRESS -> TRYING_VARIATION(0)
                                                     -> EXHAUSTED_FAILED

The variation index, whole-address retry count and attempt count are
plain loop state, so the retry cap holds without recursion.
"""

import time
from enum import Enum
from typing import Callable, Iterator, Optional, Sequence

from structlog.stdlib import BoundLogger

from gymfinder.core.geocoding.constants import (
    DEFAULT_PRECISION,
    EMPTY_ADDRESS_REASON,
    INTER_ADDRESS_DELAY,
    MAX_WHOLE_ADDRESS_RETRIES,
    NO_MATCH_REASON,
    RETRY_DELAY,
    get_city_region,
)
from gymfinder.core.geocoding.metrics import (
    ACCURACY_TIERS,
    ADDRESS_OUTCOMES,
    WHOLE_ADDRESS_RETRIES,
)
from gymfinder.core.geocoding.models import (
    AddressRecord,
    Failed,
    GeocodeCandidate,
    Resolved,
    ResolutionOutcome,
)
from gymfinder.core.geocoding.normalizer import normalize_address
from gymfinder.core.geocoding.providers import GeocodingProvider, TransportFailure
from gymfinder.core.geocoding.validator import RegionValidator
from gymfinder.core.geocoding.variations import generate_variations
from gymfinder.core.logging import get_logger


class ResolutionState(Enum):
    PENDING = "pending"
    TRYING_VARIATION = "trying_variation"
    NEXT_VARIATION = "next_variation"
    RETRY_WHOLE_ADDRESS = "retry_whole_address"
    EXHAUSTED_FAILED = "exhausted_failed"


class ResolutionOrchestrator:
    """Resolves addresses one at a time against a single provider.

    Args:
        provider: Provider client, called once per variation attempt
        validator: Region validator for area acceptance and advisory checks
        sleep: Delay function, injected so tests do not wait
        logger: Structured log sink for the attempt transcript
        precision: Fractional digits of the serialized coordinate
        inter_address_delay: Seconds between consecutive addresses
        retry_delay: Seconds before a whole-address retry
        max_retries: Whole-address retries per address, at most 1
    """

    def __init__(
        self,
        provider: GeocodingProvider,
        validator: Optional[RegionValidator] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[BoundLogger] = None,
        precision: int = DEFAULT_PRECISION,
        inter_address_delay: float = INTER_ADDRESS_DELAY,
        retry_delay: float = RETRY_DELAY,
        max_retries: int = MAX_WHOLE_ADDRESS_RETRIES,
    ):
        if not 0 <= max_retries <= MAX_WHOLE_ADDRESS_RETRIES:
            raise ValueError(
                f"max_retries must be between 0 and {MAX_WHOLE_ADDRESS_RETRIES}"
            )
        if retry_delay <= inter_address_delay:
            raise ValueError("retry_delay must be longer than inter_address_delay")

        self.provider = provider
        self.validator = validator or RegionValidator()
        self.sleep = sleep
        self.logger = logger or get_logger()
        self.precision = precision
        self.inter_address_delay = inter_address_delay
        self.retry_delay = retry_delay
        self.max_retries = max_retries

    def resolve(self, record: AddressRecord) -> ResolutionOutcome:
        """Resolve one address to a coordinate string or a failure.

        Args:
            record: The unique address and the rows that share it

        Returns:
            Resolved with the serialized coordinate, or Failed with a reason
        """
        log = self.logger.bind(address=record.address, rows=len(record.row_indices))
        if record.label:
            log = log.bind(label=record.label)

        variations = generate_variations(normalize_address(record.address))
        if not variations:
            log.warning("Address is empty after normalization")
            ADDRESS_OUTCOMES.labels(city=record.city, status="failed").inc()
            return Failed(reason=EMPTY_ADDRESS_REASON, attempts=0)

        region = get_city_region(record.city)
        state = ResolutionState.PENDING
        index = 0
        retries = 0
        attempts = 0

        while True:
            if state is ResolutionState.PENDING:
                log.info("Resolving address", variations=len(variations))
                index = 0
                state = ResolutionState.TRYING_VARIATION

            elif state is ResolutionState.TRYING_VARIATION:
                variation = variations[index]
                attempts += 1
                log.info(
                    "Trying variation",
                    variation=variation,
                    index=index + 1,
                    total=len(variations),
                    retry=retries,
                )
                try:
                    candidate = self.provider.lookup(variation, region)
                except TransportFailure as e:
                    log.warning("Provider lookup failed", variation=variation, error=str(e))
                    state = ResolutionState.NEXT_VARIATION
                    continue

                if candidate is None:
                    log.info("No result for variation", variation=variation)
                    state = ResolutionState.NEXT_VARIATION
                    continue

                if self.validator.is_in_area(candidate, record.city):
                    return self._accept(record, candidate, variation, attempts, log)
                if index == 0:
                    log.warning(
                        "Accepting first variation outside target area",
                        variation=variation,
                        display_name=candidate.display_name,
                        state=candidate.state,
                    )
                    return self._accept(record, candidate, variation, attempts, log)

                log.info(
                    "Rejected result outside target area",
                    variation=variation,
                    display_name=candidate.display_name,
                )
                state = ResolutionState.NEXT_VARIATION

            elif state is ResolutionState.NEXT_VARIATION:
                if index + 1 < len(variations):
                    index += 1
                    state = ResolutionState.TRYING_VARIATION
                elif retries < self.max_retries:
                    state = ResolutionState.RETRY_WHOLE_ADDRESS
                else:
                    state = ResolutionState.EXHAUSTED_FAILED

            elif state is ResolutionState.RETRY_WHOLE_ADDRESS:
                retries += 1
                log.info("Retrying whole address", delay=self.retry_delay)
                WHOLE_ADDRESS_RETRIES.labels(city=record.city).inc()
                self.sleep(self.retry_delay)
                index = 0
                state = ResolutionState.TRYING_VARIATION

            else:
                log.error("No valid coordinates found", attempts=attempts)
                ADDRESS_OUTCOMES.labels(city=record.city, status="failed").inc()
                return Failed(reason=NO_MATCH_REASON, attempts=attempts)

    def _accept(
        self,
        record: AddressRecord,
        candidate: GeocodeCandidate,
        variation: str,
        attempts: int,
        log: BoundLogger,
    ) -> Resolved:
        coordinates = candidate.coordinate.format(self.precision)
        validation = self.validator.validate(coordinates, record.city)
        for issue in validation.issues:
            log.warning("Validation issue", issue=issue, coordinates=coordinates)
        for suggestion in validation.suggestions:
            log.info("Validation suggestion", suggestion=suggestion)

        log.info(
            "Resolved address",
            coordinates=coordinates,
            accuracy=candidate.accuracy.value,
            confidence=candidate.confidence,
            provider=candidate.provider,
            variation=variation,
        )
        ADDRESS_OUTCOMES.labels(city=record.city, status="resolved").inc()
        ACCURACY_TIERS.labels(city=record.city, tier=candidate.accuracy.value).inc()
        return Resolved(
            coordinates=coordinates,
            accuracy=candidate.accuracy,
            variation=variation,
            attempts=attempts,
            issues=tuple(validation.issues),
        )

    def resolve_all(
        self, records: Sequence[AddressRecord]
    ) -> Iterator[tuple[AddressRecord, ResolutionOutcome]]:
        """Resolve addresses in order, pacing between them.

        The inter-address delay follows every address except the last.
        """
        for position, record in enumerate(records, start=1):
            self.logger.info(
                "Processing address", position=position, total=len(records)
            )
            yield record, self.resolve(record)
            if position < len(records):
                self.sleep(self.inter_address_delay)
