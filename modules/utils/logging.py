"""Logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Application loggers: the `modules.*` tree plus the entry-point logger.
APP_LOGGERS = ("prompt_crafter", "modules")


def resolve_level(name: str) -> int:
    """Map a level name such as ``"debug"`` to its number; unknown names mean INFO."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(config: AppConfig) -> logging.Logger:
    """Send application logs to ``<log_dir>/application.log`` and stderr."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = resolve_level(config.log_level)

    logging.basicConfig(
        level=logging.WARNING,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_dir / "application.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(level)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLogger("prompt_crafter")
