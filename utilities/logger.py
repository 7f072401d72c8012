"""
Structured logging using structlog.
Routes structlog through the standard library so one handler set serves console and file output.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import structlog
from structlog.stdlib import LoggerFactory


def _build_processors(log_format: str, debug: bool) -> List[Any]:
    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site details to every event
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=_build_processors(log_format, debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    structlog.get_logger(__name__).info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class RunLogger:
    """
    Logger for one daily run, carrying run context into every event.
    """

    def __init__(self, name: str = "daily_run"):
        self.logger = structlog.get_logger(name)
        self.context: Dict[str, Any] = {}

    def bind_context(self, **kwargs) -> 'RunLogger':
        """
        Bind context variables to the logger.

        Args:
            **kwargs: Context variables to bind

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def clear_context(self) -> 'RunLogger':
        """Clear all context variables."""
        self.context.clear()
        return self

    def log_run_start(self, schedule_source: str) -> None:
        self.logger.info("Daily run started", schedule_source=schedule_source, **self.context)

    def log_acquisition_failed(self, source: str, error: str) -> None:
        self.logger.error("Acquisition failed", source=source, error=error, **self.context)

    def log_snapshot_saved(self, name: str, path: str, records: int) -> None:
        self.logger.info("Snapshot saved", name=name, path=path, records=records, **self.context)

    def log_changes(self, kind: str, count: int) -> None:
        """Log a non-empty set of detected changes."""
        self.logger.info("Changes detected", kind=kind, count=count, **self.context)

    def log_run_complete(self, sections: int, notified: bool, duration_seconds: float, errors: int = 0) -> None:
        self.logger.info(
            "Daily run completed",
            sections=sections,
            notified=notified,
            duration_seconds=duration_seconds,
            errors=errors,
            **self.context
        )
