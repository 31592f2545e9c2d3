"""Logging for **UIScout**.

One project logger (``UIScout``) owns the handlers; every component logs
through a child of it, so records read ``UIScout.crawler``,
``UIScout.scheduler`` and so on while sharing one configuration::

    from ui_scout.logger import get_logger
    log = get_logger("scheduler")
    log.info("[%d/%d] Scanned %s", n, total, url)

Handlers are attached only by :func:`configure` (the CLI calls
:func:`init_logging`); importing the package never touches the filesystem.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterable, Union

# --------------------------------------------------------------------------- #
# Constants & basic types                                                     #
# --------------------------------------------------------------------------- #

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "UIScout"

# chatty libraries that flood DEBUG output during a browser scan
NOISY_LOGGERS: Final[tuple[str, ...]] = ("asyncio", "aiohttp.access", "aiohttp.client")

_LevelT = Union[int, str]


# --------------------------------------------------------------------------- #
# Helper builders                                                             #
# --------------------------------------------------------------------------- #


def _console_handler(fmt: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _rotating_handler(file: Path | str, fmt: str) -> RotatingFileHandler:
    path = Path(file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _quiet(names: Iterable[str], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def get_logger(component: str | None = None) -> logging.Logger:
    """Project logger, or its ``UIScout.<component>`` child."""
    if not component:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{component}")


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """(Re)configure the project logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (e.g. ``"DEBUG"``).
    log_file
        Rotating log file (5 MB x 3). *None* means console only.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        *True* drops handlers from a previous call; *False* appends.
    """
    lg = get_logger()
    lg.setLevel(level)

    if replace_handlers:
        for handler in list(lg.handlers):
            lg.removeHandler(handler)
            handler.close()

    lg.addHandler(_console_handler(log_format))
    if log_file is not None:
        lg.addHandler(_rotating_handler(log_file, log_format))

    # component loggers stop here; the root logger never sees scan output
    lg.propagate = False
    _quiet(NOISY_LOGGERS, logging.WARNING)
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Entry point used by the CLI."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


logger: logging.Logger = get_logger()

__all__ = ["logger", "get_logger", "configure", "init_logging", "LOGGER_NAME", "DEFAULT_FORMAT"]
