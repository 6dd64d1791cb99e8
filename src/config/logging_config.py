# src/config/logging_config.py

"""Per-run timestamped logging configuration for price_watch.

Each launch creates a dedicated log file inside ``logs/`` named after the
launch timestamp (e.g. ``logs/run_20260214_153045.log``).  All
``price_watch.*`` loggers (parser, extractor, tracker, scheduler, store,
notify) share that file, so a whole polling session can be replayed from a
single log.

The console only shows warnings unless ``verbose`` is requested, which
keeps ``run`` mode quiet between sweeps.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that flood DEBUG output during fetches
_NOISY_LOGGERS: tuple[str, ...] = (
    "urllib3",
    "charset_normalizer",
    "cloudscraper",
)


def _handler(
    handler: logging.Handler, level: int, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def _existing_log_file(project_logger: logging.Logger) -> Path | None:
    for handler in project_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


def setup_logging(verbose: bool = False) -> Path:
    """Initialise the root ``price_watch`` logger for the current run.

    Calling it again is a no-op that returns the file already in use.

    Args:
        verbose: Lower the console handler to INFO so every price
            check is echoed to stderr.

    Returns:
        The :class:`~pathlib.Path` to the log file for this run.
    """
    project_logger = logging.getLogger("price_watch")
    project_logger.setLevel(logging.DEBUG)

    existing = _existing_log_file(project_logger)
    if existing is not None:
        return existing

    Settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    started = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = Settings.LOGS_DIR / f"run_{started}.log"

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    project_logger.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _FILE_FORMAT,
        )
    )
    project_logger.addHandler(
        _handler(
            logging.StreamHandler(sys.stderr),
            logging.INFO if verbose else logging.WARNING,
            _CONSOLE_FORMAT,
        )
    )

    project_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
