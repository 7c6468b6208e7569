"""Response envelopes.

Every response body, single-shot or streamed, is wrapped in one of two
shapes:

    {"data": <value>}
    {"errors": [{"status": "500", "title": "...", "detail": "..."}]}

Chunks written by capabilities are opaque bytes. If a chunk parses as JSON
it is embedded as JSON, otherwise it is embedded as a string.
"""

from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel, Field

from .errors import EncodingError


class DataEnvelope(BaseModel):
    """Success envelope."""

    data: Any = None


class ErrorObject(BaseModel):
    """A single error entry. Status is the HTTP code as a decimal string."""

    status: str
    title: str
    detail: str


class ErrorEnvelope(BaseModel):
    """Error envelope. The hub only ever emits one error at a time."""

    errors: list[ErrorObject] = Field(default_factory=list)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"JSON number out of range: {text}")
    return value


def decode_chunk(chunk: bytes) -> Any:
    """Interpret a chunk as JSON, falling back to its text."""
    try:
        return json.loads(
            chunk, parse_constant=_reject_constant, parse_float=_parse_finite_float
        )
    except ValueError:
        # Undecodable bytes, invalid JSON and out-of-range numbers land here
        return chunk.decode("utf-8", errors="replace")


def encode_success(chunk: bytes) -> bytes:
    """Wrap a chunk in the success envelope.

    Args:
        chunk: Raw bytes written by a capability

    Returns:
        Compact JSON bytes

    Raises:
        EncodingError: If the envelope cannot be serialized
    """
    envelope = DataEnvelope(data=decode_chunk(chunk))
    try:
        return envelope.model_dump_json().encode("utf-8")
    except ValueError as e:
        raise EncodingError(f"Failed to encode data envelope: {e}") from e


def encode_error(status_code: int, title: str, detail: str) -> bytes:
    """Build an error envelope carrying a single error.

    Raises:
        EncodingError: If the envelope cannot be serialized
    """
    envelope = ErrorEnvelope(
        errors=[ErrorObject(status=str(status_code), title=title, detail=detail)]
    )
    try:
        return envelope.model_dump_json().encode("utf-8")
    except ValueError as e:
        raise EncodingError(f"Failed to encode error envelope: {e}") from e
