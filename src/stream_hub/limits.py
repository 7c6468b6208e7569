"""Event-count resolution for the max_count query parameter."""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

MAX_COUNT_PARAM = "max_count"
DEFAULT_MAX_COUNT = 3600

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def resolve_max_count(raw: str | None) -> int:
    """Resolve a raw max_count value to an effective event limit.

    Missing, empty, non-numeric, zero and negative values all resolve to
    DEFAULT_MAX_COUNT. Bad input is never an error for the client.

    Args:
        raw: The raw query parameter value, if any

    Returns:
        A positive event limit
    """
    if raw is None:
        return DEFAULT_MAX_COUNT

    value = raw.strip()
    if not value:
        return DEFAULT_MAX_COUNT

    if not _INTEGER_RE.fullmatch(value):
        logger.debug(f"Invalid max_count parameter value={raw!r}")
        return DEFAULT_MAX_COUNT

    try:
        count = int(value)
    except ValueError:
        # Beyond the interpreter's integer string length limit
        logger.debug(f"Oversized max_count parameter length={len(value)}")
        return DEFAULT_MAX_COUNT

    if count <= 0:
        logger.debug(f"Non-positive max_count parameter value={raw!r}")
        return DEFAULT_MAX_COUNT

    return count
