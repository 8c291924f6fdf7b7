"""
Logging configuration for the field telemetry pipeline.

Handlers installed here are tagged, so calling ``setup_logging`` again (once
at CLI start, then with the YAML ``logging`` section) replaces them without
touching handlers that a host service or test runner attached to the root
logger.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional, TextIO, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_WITHOUT_TIME = "%(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_PIPELINE_HANDLER = "_field_telemetry_handler"


def _level_number(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(str(level).upper())
    if not isinstance(number, int):
        raise ValueError(f"Unknown log level: {level}")
    return number


def _install(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    setattr(handler, _PIPELINE_HANDLER, True)
    root.addHandler(handler)


def pipeline_handlers(logger: Optional[logging.Logger] = None) -> list:
    """Handlers on ``logger`` (root by default) that ``setup_logging`` installed."""
    logger = logger or logging.getLogger()
    return [h for h in logger.handlers if getattr(h, _PIPELINE_HANDLER, False)]


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    include_timestamp: bool = True,
    stream: Optional[TextIO] = None
) -> None:
    """
    Route pipeline log records to a console stream and, optionally, a file.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL) or number
        log_file: Optional file that also receives every record
        include_timestamp: Whether to prefix records with their time
        stream: Console stream, stdout by default

    Raises:
        ValueError: If the level name is unknown
    """
    formatter = logging.Formatter(
        LOG_FORMAT if include_timestamp else LOG_FORMAT_WITHOUT_TIME,
        datefmt=DATE_FORMAT
    )

    root = logging.getLogger()
    root.setLevel(_level_number(level))

    for handler in pipeline_handlers(root):
        root.removeHandler(handler)
        handler.close()

    _install(root, logging.StreamHandler(stream or sys.stdout), formatter)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _install(root, logging.FileHandler(log_file), formatter)


def get_logger(name: str) -> logging.Logger:
    """Logger for a pipeline module; pass ``__name__``."""
    return logging.getLogger(name)


def log_stats_summary(logger: logging.Logger, title: str, stats: Dict[str, int]) -> None:
    """Log a component's counters as a titled summary block."""
    logger.info(f"=== {title} Summary ===")
    for key, value in stats.items():
        logger.info(f"{key.replace('_', ' ').title()}: {value}")
