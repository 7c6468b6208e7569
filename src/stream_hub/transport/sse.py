"""Server-Sent Events bridge.

Runs a synchronous capability on a worker thread and relays each chunk it
writes to the client as one SSE frame:

    data: {"data": {...}}

The relay channel between the worker thread and the response task is a
zero-buffer anyio memory object stream. A write blocks the capability until
the response task has taken the chunk, so a fast producer is throttled to
the client's pace and at most one chunk is in flight per connection.

When the client disconnects the request context is cancelled, the channel is
closed and any further write raises StreamClosedError.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import anyio
import anyio.from_thread
import anyio.to_thread
from anyio.streams.memory import MemoryObjectSendStream
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from ..capability import Capability, RequestContext, Sink, to_bytes
from ..envelope import encode_success
from ..errors import EncodingError, StreamClosedError

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


class Frame(NamedTuple):
    """A chunk on its way to the client."""

    payload: bytes
    verbatim: bool = False  # Skip the data envelope (capability-signaled errors)


def format_event(payload: bytes) -> bytes:
    """Format a payload as one SSE event, one data line per payload line."""
    lines = payload.splitlines() or [b""]
    return b"".join(b"data: " + line + b"\n" for line in lines) + b"\n"


def supports_streaming(scope: Scope) -> bool:
    """Whether the connection can carry incrementally flushed output.

    HTTP/1.0 has no chunked transfer coding, so a stream would be buffered
    by intermediaries until the connection closes.
    """
    return scope.get("type") == "http" and scope.get("http_version", "1.1") != "1.0"


class RelaySink(Sink):
    """Sink that hands each chunk to the response task.

    Called from the capability's worker thread only.
    """

    def __init__(
        self,
        send_stream: MemoryObjectSendStream[Frame],
        context: RequestContext,
    ) -> None:
        super().__init__()
        self._send_stream = send_stream
        self._context = context

    def write(self, chunk: bytes | str) -> None:
        if self._context.cancelled:
            raise StreamClosedError("Client disconnected")

        # Headers are already on the wire; a failing status only changes how
        # the following chunks are framed.
        frame = Frame(payload=to_bytes(chunk), verbatim=self.failed)
        try:
            anyio.from_thread.run(self._send_stream.send, frame)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError) as e:
            raise StreamClosedError("Stream closed") from e


class EventStreamResponse(Response):
    """Streaming response driving one capability invocation.

    If ``limiter`` is given, ``borrower`` must already hold one of its
    tokens. The token is released when the response finishes.
    """

    media_type = "text/event-stream"

    def __init__(
        self,
        capability: Capability,
        context: RequestContext,
        *,
        name: str = "",
        limiter: anyio.CapacityLimiter | None = None,
        borrower: object | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.capability = capability
        self.context = context
        self.name = name
        self.status_code = 200
        self.background = None
        self._limiter = limiter
        self._borrower = borrower
        self.init_headers({**SSE_HEADERS, **(headers or {})})

    def release(self) -> None:
        """Give back the stream slot, if one is held. Safe to call twice."""
        if self._limiter is not None and self._borrower is not None:
            self._limiter.release_on_behalf_of(self._borrower)
            self._borrower = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await send(
                {
                    "type": "http.response.start",
                    "status": self.status_code,
                    "headers": self.raw_headers,
                }
            )
            async with anyio.create_task_group() as task_group:
                task_group.start_soon(
                    self._listen_for_disconnect, receive, task_group.cancel_scope
                )
                await self._relay(send)
                task_group.cancel_scope.cancel()

            if not self.context.cancelled:
                await send({"type": "http.response.body", "body": b"", "more_body": False})
        except OSError:
            logger.info(f"Client disconnected before stream end endpoint={self.name}")
        finally:
            self.context.cancel()
            self.release()
        logger.debug(f"Stream closed endpoint={self.name}")

    async def _listen_for_disconnect(
        self, receive: Receive, cancel_scope: anyio.CancelScope
    ) -> None:
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
        logger.info(f"Client disconnected endpoint={self.name}")
        self.context.cancel()
        cancel_scope.cancel()

    async def _relay(self, send: Send) -> None:
        send_stream, receive_stream = anyio.create_memory_object_stream[Frame](0)

        async with anyio.create_task_group() as task_group:
            task_group.start_soon(self._produce, send_stream)

            async with receive_stream:
                async for frame in receive_stream:
                    payload = frame.payload if frame.verbatim else self._encode(frame.payload)
                    if payload is None:
                        continue
                    try:
                        await send(
                            {
                                "type": "http.response.body",
                                "body": format_event(payload),
                                "more_body": True,
                            }
                        )
                    except OSError:
                        logger.info(f"Client disconnected endpoint={self.name}")
                        self.context.cancel()
                        break

    def _encode(self, chunk: bytes) -> bytes | None:
        try:
            return encode_success(chunk)
        except EncodingError as e:
            logger.error(f"Error encoding SSE response endpoint={self.name} error={e}")
            return None

    async def _produce(self, send_stream: MemoryObjectSendStream[Frame]) -> None:
        # Concurrency is bounded by the stream slot; the thread gets its own token
        async with send_stream:
            await anyio.to_thread.run_sync(
                self._run_capability, send_stream, limiter=anyio.CapacityLimiter(1)
            )

    def _run_capability(self, send_stream: MemoryObjectSendStream[Frame]) -> None:
        sink = RelaySink(send_stream, self.context)
        try:
            self.capability.handle(self.context, sink)
        except StreamClosedError:
            logger.debug(f"Stream closed while producing endpoint={self.name}")
        except Exception:
            # The response is already streaming; all we can do is end it
            logger.exception(f"Capability failed endpoint={self.name}")
