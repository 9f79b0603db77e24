# === FILE: site_mapper/logger.py ===
"""Logging for SiteMapper.

Every module logs through a child of the ``SiteMapper`` logger::

    from site_mapper.logger import get_logger
    log = get_logger("crawler")          # -> "SiteMapper.crawler"

Records go to stderr (stdout carries the CLI's JSON) and, when a log file
is given, to a size-rotated file as well. The CLI and the HTTP entry point
call :func:`init_logging` once; :func:`configure` can be called again later.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Union

_LOGGER_NAME: Final[str] = "SiteMapper"
_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

#: rotation of the optional log file
_MAX_BYTES: Final[int] = 5 * 1024 * 1024
_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


def _build_handlers(log_file: str | Path | None, fmt: str) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(str(log_file), maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8")
        )
    formatter = logging.Formatter(fmt)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set level and handlers of the ``SiteMapper`` logger and return it.

    With *replace_handlers* the previous handlers are closed and removed,
    otherwise the new ones are added next to them.
    """
    root = logging.getLogger(_LOGGER_NAME)
    root.setLevel(level)
    if replace_handlers:
        while root.handlers:
            old = root.handlers.pop()
            old.close()
    for handler in _build_handlers(log_file, log_format):
        root.addHandler(handler)
    # records stop here, the host's root logger never sees them
    root.propagate = False
    return root


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    return configure(level=level, log_file=log_file, log_format=log_format)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


logger: logging.Logger = init_logging()

__all__ = ["logger", "configure", "init_logging", "get_logger"]
