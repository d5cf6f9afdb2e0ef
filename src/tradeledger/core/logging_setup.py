"""Handler configuration for the ``tradeledger`` logger tree.

Modules only ever call ``logging.getLogger(__name__)``; nothing is written
anywhere until the host application, or :meth:`TradeTracker.from_config`,
attaches handlers with :func:`setup_logger`.  Ingest passes may run on
several threads, so records carry the thread name.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "tradeledger"

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

_configured: set[str] = set()


def resolve_level(level: int | str) -> int:
    """``"debug"`` → ``logging.DEBUG``; unknown names read as INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: str = PACKAGE_LOGGER,
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Attach a stderr handler and a rotating ``<name>.log`` file once per name.

    Parameters
    ----------
    name:
        Logger to configure.  The default covers every module of the
        package, since module loggers are its children.
    log_dir:
        Directory for the log file, created if needed.  Defaults to
        ``./logs``.  When it cannot be created the logger is console-only.
    level:
        Minimum level for the logger and both handlers, as an int or a
        level name.
    console:
        Whether to log to ``stderr`` as well.

    Returns
    -------
    logging.Logger
        The configured logger.  Repeat calls return it unchanged.
    """
    logger = logging.getLogger(name)
    if name in _configured:
        return logger

    level = resolve_level(level)
    log_dir = Path("logs") if log_dir is None else log_dir
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)
    logger.setLevel(level)

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_dir / f"{name}.log",
                maxBytes=_MAX_BYTES,
                backupCount=_BACKUP_COUNT,
                encoding="utf-8",
            )
        )
        file_error: OSError | None = None
    except OSError as exc:
        file_error = exc

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        logger.addHandler(handler)

    if file_error is not None:
        logger.warning("No log file under %s (%s); logging to console only", log_dir, file_error)

    _configured.add(name)
    return logger


def reset_logger(name: str = PACKAGE_LOGGER) -> None:
    """Close and detach every handler :func:`setup_logger` added to *name*."""
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    _configured.discard(name)
