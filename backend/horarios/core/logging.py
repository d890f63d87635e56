from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from horarios.core.config import BACKEND_DIR, Settings

HANDLER_PREFIX = "horarios"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Third-party loggers that drown the EVENT lines at DEBUG.
QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "python_multipart")


def resolve_level(settings: Settings) -> int:
    if settings.log_level:
        level = logging.getLevelName(settings.log_level.strip().upper())
        if isinstance(level, int):
            return level
    return logging.INFO if settings.environment.strip().lower() == "production" else logging.DEBUG


def log_directory(settings: Settings) -> Path | None:
    """Where the rotating log lives; None means console only."""
    if settings.log_dir:
        return Path(settings.log_dir)
    if settings.environment.strip().lower() == "production":
        return BACKEND_DIR / "logs"
    return None


def setup_logging(settings: Settings) -> None:
    """Attach the service handlers to the root logger once per process."""
    root = logging.getLogger()
    if any((handler.get_name() or "").startswith(HANDLER_PREFIX) for handler in root.handlers):
        return

    level = resolve_level(settings)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    console = logging.StreamHandler()
    console.set_name(f"{HANDLER_PREFIX}.console")
    console.setFormatter(formatter)
    root.addHandler(console)

    directory = log_directory(settings)
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            directory / "horarios.log",
            maxBytes=settings.log_file_max_bytes,
            backupCount=settings.log_file_backups,
            encoding="utf-8",
        )
        rotating.set_name(f"{HANDLER_PREFIX}.file")
        rotating.setFormatter(formatter)
        root.addHandler(rotating)

    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    logging.getLogger("horarios").info(
        "LOGGING READY | level=%s | file=%s", logging.getLevelName(level), directory or "-"
    )
