"""Logging setup for estate-ledger.

Ledger modules log through ``logging.getLogger(__name__)`` and attach record
identifiers with ``extra={"extra": {"lease_id": ..., "payment_id": ...}}``.
Both formatters below render those identifiers: the standard one as a
``key=value`` suffix, the JSON one as top-level fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from estate_ledger.config import LedgerConfig
from estate_ledger.exceptions import ConfigurationError

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries whose INFO/DEBUG chatter drowns ledger output
QUIET_LOGGERS = ("confluent_kafka", "psycopg", "faker")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    extra = getattr(record, "extra", None)
    if not isinstance(extra, dict):
        return {}
    return {key: value for key, value in extra.items() if value is not None}


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends ledger identifiers to the message."""

    def __init__(self) -> None:
        super().__init__(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        head, sep, tail = line.partition("\n")
        return f"{head} [{suffix}]{sep}{tail}"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with ledger identifiers as fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in _context(record).items():
            log_data.setdefault(key, value)

        # Identifiers may be Decimals or dates
        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
    log_file: str | Path | None = None,
) -> None:
    """Configure the root logger for estate-ledger.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL), case-insensitive.
    format_type : str
        "standard" for ``ContextFormatter`` lines, "json" for ``JsonFormatter``.
    log_file : str | Path | None
        Also append records to this file, with the same format.

    Raises
    ------
    ConfigurationError
        If ``format_type`` is not recognised.
    """
    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    elif format_type == "standard":
        formatter = ContextFormatter()
    else:
        raise ConfigurationError(f"Unknown log format {format_type!r}; expected 'standard' or 'json'")

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger("estate_ledger").setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_config(config: LedgerConfig) -> None:
    """Apply the logging settings of a ``LedgerConfig``."""
    setup_logging(config.log_level, config.log_format, config.log_file)
