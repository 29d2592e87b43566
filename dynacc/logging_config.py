"""
Structured Logging Configuration

Opt-in logging setup for applications embedding the accumulator. Records
carry the id of the accumulator instance that emitted them.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

from .config import Settings, get_settings


class AccumulatorContextFilter(logging.Filter):
    """Ensure every record has an accumulator_id attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "accumulator_id"):
            record.accumulator_id = "-"
        return True


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter with service and timestamp fields."""

    def __init__(self, *args: Any, service: str = "dynacc", version: str = "0.1.0", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service = service
        self.version = version

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["service"] = self.service
        log_record["version"] = self.version

        if not log_record.get("level"):
            log_record["level"] = record.levelname


def setup_logging(settings: Optional[Settings] = None) -> logging.Handler:
    """
    Configure root logging for an application using the accumulator.

    Args:
        settings: Settings to use (default: process-wide settings)

    Returns:
        logging.Handler: The installed stdout handler
    """
    settings = settings or get_settings()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.addFilter(AccumulatorContextFilter())

    if settings.log_format == "json":
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(accumulator_id)s %(message)s",
            service=settings.app_name,
            version=settings.app_version,
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(accumulator_id)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    return console_handler
