from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging


@dataclass
class LoggingEventSink:
    """EventSink that forwards extraction events to a stdlib logger."""

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("extraction"))

    def log(self, event: str, **context: object) -> None:
        self.logger.info(event, extra=dict(context))

    def capture_error(self, error: BaseException, context: Mapping[str, object]) -> None:
        self.logger.error(
            str(context.get("message") or "extraction step failed"),
            extra={**{key: value for key, value in context.items() if key != "message"}, "detail": str(error)},
        )
