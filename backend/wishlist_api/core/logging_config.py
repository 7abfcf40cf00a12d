"""Logging setup for the API process."""

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from wishlist_api.core.config import settings


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter that always carries level, logger and source location."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["source"] = f"{record.filename}:{record.lineno}"


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure the root logger once at startup.

    Console output is human-readable by default; set LOG_JSON=true to emit
    one JSON object per line for log shippers.
    """
    level = (level or settings.LOG_LEVEL).upper()
    if json_output is None:
        json_output = settings.LOG_JSON

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(CustomJsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)

    # httpx logs every request at INFO; keep it quiet unless debugging
    logging.getLogger("httpx").setLevel(logging.WARNING)
