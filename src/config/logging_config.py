# src/config/logging_config.py

"""Logging for scheduled plan_sync runs.

Every launch writes ``logs/run_<YYYYmmdd_HHMMSS>.log`` and routes all
``plan_sync.*`` loggers (collectors, orchestrator, differ, applier,
catalog) into it at DEBUG. Only warnings reach stderr unless the CLI
asks for verbose output, so a cron mail stays short while the run file
keeps the full trail, tracebacks included.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config.settings import Settings

ROOT_LOGGER = "plan_sync"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at DEBUG
_QUIET_LOGGERS = ("urllib3", "charset_normalizer", "asyncio")


def _handler(
    handler: logging.Handler, level: int, fmt: str,
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def _current_log_file(logger: logging.Logger) -> Path | None:
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return Path(handler.baseFilename)
    return None


def setup_logging(verbose: bool = False) -> Path:
    """Attach the run-file and stderr handlers to ``plan_sync``.

    Calling it again in the same process keeps the existing handlers
    and returns the file already in use.

    Returns:
        The path of this run's log file.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG)

    existing = _current_log_file(root_logger)
    if existing is not None:
        return existing

    Settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = Settings.LOGS_DIR / f"run_{stamp}.log"

    root_logger.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _FILE_FORMAT,
        )
    )
    root_logger.addHandler(
        _handler(
            logging.StreamHandler(sys.stderr),
            logging.INFO if verbose else logging.WARNING,
            _CONSOLE_FORMAT,
        )
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
