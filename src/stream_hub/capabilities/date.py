"""Date endpoint.

Emits the current UTC time once per interval:

    {"UTC": "2025-02-27T12:31:34Z"}
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import BaseModel

from ..capability import RequestContext, Sink

logger = logging.getLogger(__name__)


class DateResponse(BaseModel):
    """Payload of one date event."""

    UTC: str


def format_utc(now: datetime) -> str:
    """Format a datetime as RFC 3339 UTC with second precision."""
    return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class DateCapability:
    """Clock endpoint. Writes the first event immediately."""

    def __init__(
        self,
        interval: float = 1.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.interval = interval
        self._clock = clock or (lambda: datetime.now(UTC))

    def handle(self, context: RequestContext, sink: Sink) -> None:
        count = 0
        while count < context.max_count:
            if context.cancelled:
                break

            response = DateResponse(UTC=format_utc(self._clock()))
            sink.write(response.model_dump_json())
            count += 1

            if count >= context.max_count:
                break
            if context.wait(self.interval):
                break

        if context.cancelled:
            logger.info(f"Context canceled for date endpoint sent={count}")
