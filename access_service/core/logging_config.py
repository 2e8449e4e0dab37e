"""Root logger setup.

``json`` output is one JSON object per line with ``timestamp``, ``level``,
``name``, ``message`` and any ``extra`` fields. ``text`` output is meant for a
developer terminal. Both go to stdout through a handler that carries
:class:`SensitiveDataFilter`.
"""

import logging
import sys

from pythonjsonlogger.jsonlogger import JsonFormatter

from access_service.core.logging_filters import SensitiveDataFilter

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s"

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx")


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(
            fmt=JSON_FIELDS,
            datefmt="%Y-%m-%dT%H:%M:%S%z",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    return logging.Formatter(TEXT_FORMAT)


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Replace the root handlers with a single redacting stdout handler.

    Args:
        log_level: Level name; unknown names fall back to INFO
        log_format: ``json`` or ``text``
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(log_format))
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
