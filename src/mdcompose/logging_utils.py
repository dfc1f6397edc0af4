"""Logging helpers for the ``mdcompose`` command line.

The library itself only creates module loggers; handlers are installed by
:func:`configure_logging` when the CLI starts.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

PLAIN_FORMAT = "%(levelname)s: %(message)s"
TRACE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
TRACE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LOG_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r"})


def sanitize_for_log(value: Any) -> str:
    """Render a manifest or user supplied value on a single log line.

    Line breaks are escaped so a crafted plugin id or label cannot forge
    extra log records.
    """
    return str(value).translate(_LOG_ESCAPES)


def resolve_level(level: int | str) -> int:
    """Map ``"debug"``/``"WARNING"``/``10`` style levels to a logging constant."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
) -> logging.Logger:
    """Install stderr (and optionally file) handlers on the root logger.

    Parameters
    ----------
    log_level : int | str
        Level for the root logger and every handler installed here.
    log_file : str, optional
        Also append log records to this file.
    trace_mode : bool, default False
        Prefix records with a timestamp and the logger name.

    Returns
    -------
    logging.Logger
        The root logger.

    """
    level = resolve_level(log_level)
    if trace_mode:
        formatter = logging.Formatter(TRACE_FORMAT, datefmt=TRACE_DATE_FORMAT)
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError as exc:
            file_error = exc

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if file_error is not None:
        root.warning("Could not open log file %s: %s", log_file, file_error)
    elif log_file:
        root.info("Logging to file: %s", log_file)
    return root
