"""In-memory sink used by the single-shot route."""

from __future__ import annotations

from ..capability import Sink, to_bytes


class RecordingSink(Sink):
    """Captures everything a capability writes, in place of the connection.

    The status code starts at 200 and headers start empty, matching a fresh
    response.
    """

    def __init__(self) -> None:
        super().__init__()
        self._body = bytearray()

    def write(self, chunk: bytes | str) -> None:
        self._body.extend(to_bytes(chunk))

    @property
    def body(self) -> bytes:
        """All bytes written so far."""
        return bytes(self._body)
