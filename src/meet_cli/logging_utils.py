from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from meet_cli.config import get_config_dir, get_log_level

LOG_DIR_NAME = "logs"
LOG_FILE_NAME = "meet.log"
_HANDLER_MARKER = "_meet_cli_handler"


def configure_logging(stream_level: str | None = None) -> None:
    logger = logging.getLogger("meet")
    # Test runners and embedding apps may attach their own handlers here.
    if any(is_own_handler(handler) for handler in logger.handlers):
        return

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )

    # StreamHandler writes to stderr; stdout is reserved for the report.
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(stream_level or get_log_level())
    stream_handler.setFormatter(formatter)
    _add_own_handler(logger, stream_handler)

    log_dir = get_config_dir() / LOG_DIR_NAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError as exc:
        logger.warning("File logging disabled, cannot open %s: %s", log_dir, exc)
        return
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    _add_own_handler(logger, file_handler)


def is_own_handler(handler: logging.Handler) -> bool:
    return bool(getattr(handler, _HANDLER_MARKER, False))


def _add_own_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
