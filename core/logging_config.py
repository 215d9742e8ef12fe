"""Logging configuration for the Agent Desk client.

The client's own packages (``core`` and ``ui``) log at the handler level,
so session fencing and upload decisions are visible in the log file.
Everything else, Qt, asyncio, keyring and the HTTP stack included, is
held at WARNING unless raised through ``AGENT_DESK_LOG_LEVELS``.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

APP_LOGGERS = ("core", "ui")
THIRD_PARTY_LEVEL = logging.WARNING

FILE_LEVEL_ENV = "AGENT_DESK_LOG_FILE_LEVEL"
CONSOLE_LEVEL_ENV = "AGENT_DESK_LOG_CONSOLE_LEVEL"
# e.g. "ui.viewmodels.chat=DEBUG,httpx=INFO"
LOGGER_LEVELS_ENV = "AGENT_DESK_LOG_LEVELS"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _parse_level(value: Optional[str], default: int) -> int:
    if not value:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def parse_logger_levels(value: Optional[str]) -> dict[str, int]:
    """Parse ``name=LEVEL`` pairs separated by commas; bad pairs are skipped."""
    levels: dict[str, int] = {}
    for pair in (value or "").split(","):
        name, sep, level_name = pair.partition("=")
        level = _parse_level(level_name, -1)
        if sep and name.strip() and level >= 0:
            levels[name.strip()] = level
    return levels


def _install_excepthook() -> None:
    if getattr(_install_excepthook, "_installed", False):
        return

    def handle_exception(exc_type, exc, tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        logging.getLogger("uncaught").critical("Unhandled exception", exc_info=(exc_type, exc, tb))
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = handle_exception
    _install_excepthook._installed = True


def _file_handler(log_file: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=2 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    log_dir: Optional[Path] = None,
    file_level: Optional[str] = None,
    console_level: Optional[str] = None,
) -> Path:
    """Configure application logging.

    Args:
        log_dir: Directory of the rotating log file (``~/.agent_desk/logs`` if None)
        file_level: File handler level; ``AGENT_DESK_LOG_FILE_LEVEL``, then DEBUG
        console_level: stdout handler level; ``AGENT_DESK_LOG_CONSOLE_LEVEL``, then INFO

    Returns:
        Path of the log file
    """
    log_file = (log_dir or (Path.home() / ".agent_desk" / "logs")) / "agent_desk.log"
    file_level_value = _parse_level(file_level or os.getenv(FILE_LEVEL_ENV), logging.DEBUG)
    console_level_value = _parse_level(console_level or os.getenv(CONSOLE_LEVEL_ENV), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []
    file_error: Optional[OSError] = None
    try:
        handlers.append(_file_handler(log_file, file_level_value, formatter))
    except OSError as e:
        file_error = e
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level_value)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(level=THIRD_PARTY_LEVEL, handlers=handlers, force=True)
    app_level = min(file_level_value, console_level_value)
    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(app_level)
    # httpx logs every request at INFO
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(THIRD_PARTY_LEVEL)
    for name, level in parse_logger_levels(os.getenv(LOGGER_LEVELS_ENV)).items():
        logging.getLogger(name).setLevel(level)

    logging.captureWarnings(True)
    _install_excepthook()

    logger = logging.getLogger(__name__)
    if file_error is not None:
        logger.warning("File logging disabled, cannot write %s: %s", log_file, file_error)
    else:
        logger.debug("Logging initialized at %s", log_file)
    return log_file
