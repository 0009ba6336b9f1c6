from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from config import LOG_DIR, LOG_LEVEL, LOG_MENU_FILE, LOG_RUNTIME_FILE


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _rotating_handler(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    _ensure_parent(path)
    handler = RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )
    level = getattr(logging, str(LOG_LEVEL).upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(_rotating_handler(LOG_RUNTIME_FILE, formatter))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    menu_logger = logging.getLogger("menu")
    menu_logger.handlers.clear()
    menu_logger.setLevel(level)
    menu_logger.addHandler(_rotating_handler(LOG_MENU_FILE, formatter))
    menu_logger.propagate = True
