"""
Structured logging setup for the Budget Alert Processor.
JSON format in production (Cloud Logging), human-readable in development.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from budget_alerts.app.config import get_settings


class CloudLoggingFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for Google Cloud Logging.
    Adds timestamp, severity and service metadata to every record.
    """

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        # Cloud Logging reads severity from this key
        log_record["severity"] = record.levelname
        log_record["logger"] = record.name

        settings = get_settings()
        log_record["service"] = settings.app_name
        log_record["version"] = settings.app_version
        log_record["environment"] = settings.environment


def setup_logging(log_level: Optional[str] = None) -> None:
    """Configure logging based on environment."""
    settings = get_settings()
    level = (log_level or settings.log_level).upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    # Clear existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if settings.environment == "production":
        handler.setFormatter(
            CloudLoggingFormatter(
                fmt="%(message)s",
                json_ensure_ascii=False,
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s - %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    root.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
