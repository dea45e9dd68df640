"""Log level and format setup for the berth entry points."""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}


def configure_logging(level: str, fmt: str) -> None:
    """Configure the root logger.

    Args:
        level: One of debug, info, warn, error or fatal. Anything else logs a
            warning and uses info.
        fmt: "text" or "json". Anything else logs a warning and uses text.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    invalid_format = fmt not in ("text", "json")
    if fmt == "json":
        handler.setFormatter(JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    resolved = _LEVELS.get(level.lower())
    root.setLevel(resolved if resolved is not None else logging.INFO)

    logger = logging.getLogger(__name__)
    if resolved is None:
        logger.warning("Invalid log level %r, defaulting to info", level)
    if invalid_format:
        logger.warning("Invalid log format %r, defaulting to text", fmt)
