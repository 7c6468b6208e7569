"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
from typing import Any

from stream_hub.capability import RequestContext, Sink


# =============================================================================
# Test capabilities
# =============================================================================


class StaticCapability:
    """Writes the same data once per call, whatever max_count says."""

    def __init__(self, data: bytes | str) -> None:
        self.data = data
        self.contexts: list[RequestContext] = []

    def handle(self, context: RequestContext, sink: Sink) -> None:
        self.contexts.append(context)
        sink.write(self.data)


class RepeatingCapability:
    """Writes a payload up to max_count times, one per interval."""

    def __init__(self, payload: Any, interval: float = 0.01) -> None:
        self.payload = payload
        self.interval = interval
        self.max_counts: list[int] = []
        self.produced = 0
        self.saw_cancel = False

    def handle(self, context: RequestContext, sink: Sink) -> None:
        self.max_counts.append(context.max_count)
        for _ in range(context.max_count):
            sink.write(json.dumps(self.payload))
            self.produced += 1
            if context.wait(self.interval):
                self.saw_cancel = True
                return


class ChunksCapability:
    """Writes a fixed sequence of chunks."""

    def __init__(self, chunks: list[bytes | str]) -> None:
        self.chunks = chunks

    def handle(self, context: RequestContext, sink: Sink) -> None:
        for chunk in self.chunks:
            sink.write(chunk)


class SilentCapability:
    """Returns without writing anything."""

    def handle(self, context: RequestContext, sink: Sink) -> None:
        return None


class NotFoundCapability:
    """Signals an error through the sink."""

    def handle(self, context: RequestContext, sink: Sink) -> None:
        sink.write_error(404, "Not Found", "No such thing")


class ExplodingCapability:
    """Writes ``before`` chunks, then raises."""

    def __init__(self, before: int = 0) -> None:
        self.before = before

    def handle(self, context: RequestContext, sink: Sink) -> None:
        for n in range(self.before):
            sink.write(json.dumps({"n": n}))
        raise RuntimeError("boom")


# =============================================================================
# Direct ASGI driving
# =============================================================================


def make_scope(path: str, query: str = "", http_version: str = "1.1") -> dict[str, Any]:
    """Build a minimal ASGI HTTP scope for a GET request."""
    return {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.3"},
        "http_version": http_version,
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "root_path": "",
        "headers": [(b"host", b"testserver")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


def body_frames(messages: list[dict[str, Any]]) -> list[bytes]:
    """Non-empty body chunks sent by the app."""
    return [
        m["body"] for m in messages if m["type"] == "http.response.body" and m.get("body")
    ]
