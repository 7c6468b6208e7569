"""Capability interface.

A capability is the business-logic unit bound to a name on the hub. The same
capability serves both the single-shot route (``GET /<name>``) and the
streaming route (``GET /<name>/stream``); it never needs to know which one is
in use.

Implementing a capability:

    class Ticker:
        def handle(self, context: RequestContext, sink: Sink) -> None:
            for n in range(context.max_count):
                sink.write(json.dumps({"tick": n}))
                if context.wait(1.0):
                    return

Cancellation is cooperative. The hub cannot stop a running capability; it
sets ``context.cancelled`` when the client goes away and the capability must
check it at least once per chunk. ``context.wait()`` does both the pacing and
the check in one call.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .envelope import encode_error


@dataclass
class RequestContext:
    """Per-connection request data handed to a capability.

    Attributes:
        path_params: Path parameters of the matched route
        query_params: Query parameters of the request
        max_count: Effective event limit (always 1 on the single-shot route)
        cancel_event: Set when the underlying connection closes
    """

    path_params: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    max_count: int = 1
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        """Whether the connection has gone away."""
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Signal cancellation to the capability."""
        self.cancel_event.set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, waking early on cancellation.

        Returns:
            True if the context was cancelled
        """
        return self.cancel_event.wait(timeout)


class Sink(ABC):
    """Output sink a capability writes its chunks to."""

    def __init__(self) -> None:
        self.status_code = 200
        self.headers: dict[str, str] = {}

    @abstractmethod
    def write(self, chunk: bytes | str) -> None:
        """Write one chunk.

        Raises:
            StreamClosedError: If the connection is gone
        """
        ...

    def set_status(self, status_code: int) -> None:
        """Set the outer response status."""
        self.status_code = status_code

    @property
    def failed(self) -> bool:
        """Whether a non-success status has been set."""
        return not 200 <= self.status_code < 300

    def write_error(self, status_code: int, title: str, detail: str) -> None:
        """Write an error envelope and mark the response as failed."""
        self.headers["Content-Type"] = "application/json"
        self.set_status(status_code)
        self.write(encode_error(status_code, title, detail))


def to_bytes(chunk: bytes | str) -> bytes:
    """Normalize a chunk to a private bytes copy."""
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


@runtime_checkable
class Capability(Protocol):
    """Protocol every endpoint registered on the hub implements."""

    def handle(self, context: RequestContext, sink: Sink) -> None:
        """Produce chunks into ``sink`` until done or cancelled."""
        ...
