"""Maps resolution outcomes back onto dataset rows and drives a run."""

import uuid
from pathlib import Path
from typing import Optional

from structlog.stdlib import BoundLogger

from gymfinder.core.config import Settings, settings
from gymfinder.core.geocoding.metrics import write_textfile
from gymfinder.core.geocoding.models import (
    AddressRecord,
    Resolved,
    ResolutionOutcome,
    RunReport,
)
from gymfinder.core.geocoding.orchestrator import ResolutionOrchestrator
from gymfinder.core.logging import get_run_logger
from gymfinder.reconciler.dataset import (
    Dataset,
    load_dataset,
    save_dataset,
    write_backup,
)


def load_unresolved(
    dataset: Dataset, city: str, report: Optional[RunReport] = None
) -> list[AddressRecord]:
    """Group rows lacking coordinates by exact address text.

    Rows that already have coordinates are counted as skipped; rows with
    no address are counted separately. Records keep first-seen order.

    Args:
        dataset: Loaded dataset
        city: Target city key
        report: Optional report to update with skip counts

    Returns:
        One AddressRecord per unique unresolved address
    """
    groups: dict[str, list[int]] = {}
    labels: dict[str, str] = {}

    for row_index in range(len(dataset)):
        address = dataset.address(row_index)
        if dataset.coordinates(row_index):
            if report is not None:
                report.skipped += 1
            continue
        if not address:
            if report is not None:
                report.missing_address += 1
            continue
        groups.setdefault(address, []).append(row_index)
        labels.setdefault(address, dataset.name(row_index))

    return [
        AddressRecord(
            address=address,
            city=city,
            row_indices=tuple(row_indices),
            label=labels[address],
        )
        for address, row_indices in groups.items()
    ]


def resolved_coordinates_by_address(dataset: Dataset) -> dict[str, str]:
    """First existing coordinate for each address that already has one."""
    known: dict[str, str] = {}
    for row_index in range(len(dataset)):
        address = dataset.address(row_index)
        coordinates = dataset.coordinates(row_index)
        if address and coordinates:
            known.setdefault(address, coordinates)
    return known


def apply_outcome(
    dataset: Dataset, record: AddressRecord, outcome: ResolutionOutcome
) -> int:
    """Write a resolved coordinate into every row sharing the address.

    Failed outcomes leave the rows untouched. Applying the same outcome
    twice changes nothing the second time.

    Returns:
        Number of rows changed
    """
    if not isinstance(outcome, Resolved):
        return 0
    return sum(
        1
        for row_index in record.row_indices
        if dataset.set_coordinates(row_index, outcome.coordinates)
    )


def persist(dataset: Dataset, path: Optional[Path] = None) -> Path:
    return save_dataset(dataset, path)


class GeocodingRun:
    """One geocoding run over a city's dataset.

    Loads the dataset, writes the backup before touching any row, fills
    rows from matching resolved rows, resolves the rest one address at a
    time, then persists the dataset and finalizes the report.
    """

    def __init__(
        self,
        city: str,
        orchestrator: Optional[ResolutionOrchestrator] = None,
        config: Optional[Settings] = None,
        data_dir: Optional[Path] = None,
        dry_run: bool = False,
        logger: Optional[BoundLogger] = None,
    ):
        self.city = city.strip().lower()
        self.config = config or settings
        self.dataset_path = self.config.dataset_path(self.city, data_dir)
        self.backup_path = self.config.backup_path(self.city, data_dir)
        self.orchestrator = orchestrator
        self.dry_run = dry_run
        self.run_id = uuid.uuid4().hex[:12]
        self.logger = logger or get_run_logger(self.city, self.run_id)

        if orchestrator is None and not dry_run:
            raise ValueError("An orchestrator is required unless dry_run is set")

    def execute(self) -> RunReport:
        """Run the pipeline and return the finalized report.

        Raises:
            DatasetIntegrityError: Before any write, if the dataset is unusable
        """
        report = RunReport(city=self.city)
        dataset = load_dataset(
            self.dataset_path,
            address_column=self.config.ADDRESS_COLUMN,
            coordinates_column=self.config.COORDINATES_COLUMN,
            name_column=self.config.NAME_COLUMN,
            logger=self.logger,
        )
        report.dropped_rows = len(dataset.dropped)

        records = load_unresolved(dataset, self.city, report)
        known = resolved_coordinates_by_address(dataset)
        reusable = [record for record in records if record.address in known]
        pending = [record for record in records if record.address not in known]
        report.total = len(pending)

        self.logger.info(
            "Found unresolved addresses",
            pending=len(pending),
            reusable=len(reusable),
            skipped=report.skipped,
        )

        if self.dry_run:
            for record in pending:
                self.logger.info(
                    "Would geocode address",
                    address=record.address,
                    rows=len(record.row_indices),
                )
            return report.finalize()

        if not records:
            self.logger.info("Nothing to geocode")
            return report.finalize()

        orchestrator = self.orchestrator
        if orchestrator is None:
            raise RuntimeError("An orchestrator is required to geocode addresses")

        write_backup(self.dataset_path, self.backup_path)
        self.logger.info("Backup created", path=str(self.backup_path))

        for record in reusable:
            changed = sum(
                1
                for row_index in record.row_indices
                if dataset.set_coordinates(row_index, known[record.address])
            )
            report.reused += 1
            self.logger.info(
                "Reused coordinates from matching row",
                address=record.address,
                coordinates=known[record.address],
                rows=changed,
            )

        for record, outcome in orchestrator.resolve_all(pending):
            apply_outcome(dataset, record, outcome)
            report.record(record.address, outcome)

        persist(dataset)
        report.finalize()
        self.logger.info(
            "Dataset updated",
            path=str(self.dataset_path),
            resolved=report.resolved,
            failed=report.failed,
            success_rate=report.success_rate,
        )

        if self.config.METRICS_TEXTFILE:
            write_textfile(self.config.METRICS_TEXTFILE)
        return report
