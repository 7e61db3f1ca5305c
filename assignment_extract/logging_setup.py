from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime

EXTRA_FIELDS = (
    "role",
    "service",
    "run_id",
    "task_id",
    "task_title",
    "document_id",
    "page_id",
    "error_code",
    "count",
    "detail",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
