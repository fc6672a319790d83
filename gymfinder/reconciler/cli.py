"""CLI for geocoding a city's gym dataset."""

import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from gymfinder.core.config import settings
from gymfinder.core.geocoding.orchestrator import ResolutionOrchestrator
from gymfinder.core.geocoding.providers import build_provider
from gymfinder.core.geocoding.validator import RegionValidator
from gymfinder.core.logging import configure_logging, get_run_logger
from gymfinder.reconciler.dataset import DatasetIntegrityError
from gymfinder.reconciler.reconciler import GeocodingRun


def default_log_file(city: str) -> Optional[Path]:
    """Per-run transcript path under LOG_DIR, or None when disabled."""
    if settings.LOG_DIR is None:
        return None
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    return settings.LOG_DIR / f"geocoding-{city}-{timestamp}.log"


@click.command()
@click.argument("city")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding <city>-gyms.csv (default: DATA_DIR)",
)
@click.option("--dry-run", is_flag=True, help="List unresolved addresses only")
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the run report as JSON",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Run transcript path (default: LOG_DIR/geocoding-<city>-<time>.log)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    city: str,
    data_dir: Optional[Path],
    dry_run: bool,
    report_path: Optional[Path],
    log_file: Optional[Path],
    verbose: bool,
) -> None:
    """Geocode gyms without coordinates in CITY's dataset."""
    city = city.strip().lower()
    if not city:
        raise click.UsageError("CITY must not be empty")

    if log_file is None and not dry_run:
        log_file = default_log_file(city)
    configure_logging(
        json_logs=settings.JSON_LOGS,
        level="DEBUG" if verbose else settings.LOG_LEVEL,
        log_file=log_file,
    )

    logger = get_run_logger(city, uuid.uuid4().hex[:12])
    orchestrator = None
    if not dry_run:
        orchestrator = ResolutionOrchestrator(
            provider=build_provider(settings),
            validator=RegionValidator(),
            sleep=time.sleep,
            logger=logger,
            precision=settings.GEOCODING_PRECISION,
            inter_address_delay=settings.GEOCODING_INTER_ADDRESS_DELAY,
            retry_delay=settings.GEOCODING_RETRY_DELAY,
            max_retries=settings.GEOCODING_MAX_ADDRESS_RETRIES,
        )

    run = GeocodingRun(
        city,
        orchestrator=orchestrator,
        config=settings,
        data_dir=data_dir,
        dry_run=dry_run,
        logger=logger,
    )

    try:
        report = run.execute()
    except DatasetIntegrityError as e:
        raise click.ClickException(str(e)) from e

    for line in report.summary_lines():
        click.echo(line)

    if report_path is not None:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
        click.echo(f"Report written to {report_path}")

    if log_file is not None:
        click.echo(f"Transcript: {log_file}")


if __name__ == "__main__":
    main()
