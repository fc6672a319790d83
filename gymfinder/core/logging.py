"""Logging configuration module."""

from logging import (
    CRITICAL,
    DEBUG,
    ERROR,
    INFO,
    WARNING,
    FileHandler,
    Handler,
    Logger,
    StreamHandler,
    getLogger,
)
from pathlib import Path
from typing import Any, cast

import structlog
from structlog import dev, processors, stdlib
from structlog.processors import JSONRenderer, TimeStamper, dict_tracebacks
from structlog.stdlib import BoundLogger

# Define log levels
LOG_LEVELS: dict[str, int] = {
    "debug": DEBUG,
    "info": INFO,
    "warning": WARNING,
    "error": ERROR,
    "critical": CRITICAL,
}

# Shared processors for structlog events and foreign stdlib records
SHARED_PROCESSORS: list[Any] = [
    stdlib.add_logger_name,
    stdlib.add_log_level,
    stdlib.PositionalArgumentsFormatter(),
    TimeStamper(fmt="%Y-%m-%d %H:%M:%S.%f"),
    dict_tracebacks,
]


def configure_logging(
    testing: bool = False,
    json_logs: bool = False,
    level: str = "INFO",
    log_file: Path | None = None,
) -> None:
    """Configure structured logging for the geocoder.

    Args:
        testing: Whether the application is running in test mode
        json_logs: Render console output as JSON instead of key/value text
        level: Log level name
        log_file: Optional run transcript; receives the same events as the console
    """
    log_level = LOG_LEVELS.get(level.lower(), INFO)

    root_logger: Logger = getLogger()
    root_logger.setLevel(log_level)

    app_logger: Logger = getLogger("gymfinder")
    app_logger.setLevel(log_level)

    structlog.configure(
        processors=[
            stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=stdlib.LoggerFactory(),
        wrapper_class=stdlib.BoundLogger,
        cache_logger_on_first_use=not testing,
    )

    console: Handler = StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(
        stdlib.ProcessorFormatter(
            processors=[
                stdlib.ProcessorFormatter.remove_processors_meta,
                JSONRenderer() if json_logs else dev.ConsoleRenderer(colors=False),
            ],
            foreign_pre_chain=SHARED_PROCESSORS,
        )
    )

    # Clear existing handlers to prevent duplicates
    root_logger.handlers = [console]
    app_logger.handlers = []

    if log_file is not None:
        root_logger.addHandler(_transcript_handler(log_file, log_level))


def _transcript_handler(log_file: Path, log_level: int) -> Handler:
    """Create the file handler for a run transcript."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = FileHandler(log_file, encoding="utf-8")
    handler.setLevel(log_level)
    handler.setFormatter(
        stdlib.ProcessorFormatter(
            processors=[
                stdlib.ProcessorFormatter.remove_processors_meta,
                processors.KeyValueRenderer(
                    key_order=["timestamp", "level", "event"], drop_missing=True
                ),
            ],
            foreign_pre_chain=SHARED_PROCESSORS,
        )
    )
    return handler


def get_logger(**context: Any) -> BoundLogger:
    """Get a configured logger instance.

    Args:
        **context: Key/value pairs to bind to the logger

    Returns:
        A structured logger instance.
    """
    logger = cast(BoundLogger, structlog.get_logger("gymfinder"))
    if context:
        logger = logger.bind(**context)
    return logger


def get_run_logger(city: str, run_id: str | None = None) -> BoundLogger:
    """Get a logger bound to a geocoding run.

    Args:
        city: Target city key
        run_id: Optional run identifier to bind to logger

    Returns:
        Configured logger with run context
    """
    logger: BoundLogger = get_logger(city=city)
    if run_id:
        logger = logger.bind(run_id=run_id)
    return logger
