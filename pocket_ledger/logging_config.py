import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import List, Optional


APP_LOGGER_NAME = "pocket_ledger"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries whose chatter is held at THIRD_PARTY_LOG_LEVEL
NOISY_LIBRARIES = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "multipart",
    "faker",
)


def _level(value: Optional[str], env_var: str, fallback: int) -> int:
    name = value or os.getenv(env_var) or logging.getLevelName(fallback)
    return getattr(logging, str(name).upper(), fallback)


def _build_handlers(level: int, log_file: Optional[str], max_file_size: int,
                    backup_count: int) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        ))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    app_log_level: Optional[str] = None,
    third_party_log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the ``pocket_ledger`` logger tree for the API and the scripts.

    Args:
        app_log_level: Level for ledger logs; falls back to $APP_LOG_LEVEL, then INFO
        third_party_log_level: Level for SQLAlchemy, uvicorn and friends;
            falls back to $THIRD_PARTY_LOG_LEVEL, then WARNING
        log_file: Also write to this rotating file; falls back to $LOG_FILE
        max_file_size: Rotation threshold in bytes
        backup_count: Rotated files to keep

    Calling it again replaces the handlers instead of stacking new ones.
    """
    app_level = _level(app_log_level, "APP_LOG_LEVEL", logging.INFO)
    library_level = _level(third_party_log_level, "THIRD_PARTY_LOG_LEVEL", logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)
    app_logger.handlers.clear()
    for handler in _build_handlers(app_level, log_file or os.getenv("LOG_FILE"), max_file_size, backup_count):
        app_logger.addHandler(handler)
    app_logger.propagate = False

    for library in NOISY_LIBRARIES:
        logging.getLogger(library).setLevel(library_level)

    return app_logger


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """Logger nested under ``pocket_ledger``; package module names pass through unchanged."""
    if name == APP_LOGGER_NAME or name.startswith(f"{APP_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")
