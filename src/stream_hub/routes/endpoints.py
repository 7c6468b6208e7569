"""Route handlers for registered capabilities.

Each registered name gets two routes backed by the same capability:

- ``GET /<name>``: single-shot. The capability runs once with max_count
  forced to 1, its output is captured and returned as one JSON envelope.
- ``GET /<name>/stream``: Server-Sent Events. The capability runs on a
  worker thread and every chunk it writes becomes one event.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import anyio
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from ..capability import Capability, RequestContext
from ..envelope import encode_error, encode_success
from ..errors import EncodingError
from ..limits import MAX_COUNT_PARAM, resolve_max_count
from ..transport.recorder import RecordingSink
from ..transport.sse import EventStreamResponse, supports_streaming

logger = logging.getLogger(__name__)

Endpoint = Callable[[Request], Awaitable[Response]]

# Headers a capability may not override on the single-shot route
_RESERVED_HEADERS = {"content-type", "content-length"}


def error_response(status_code: int, title: str, detail: str) -> Response:
    """Build a JSON error envelope response."""
    return Response(
        content=encode_error(status_code, title, detail),
        status_code=status_code,
        media_type="application/json",
    )


def recorded_response(sink: RecordingSink, name: str = "") -> Response:
    """Turn a recorded single-shot invocation into the HTTP response.

    A failing status is relayed verbatim: the capability is expected to have
    written an error envelope already. Anything else is wrapped in the data
    envelope.
    """
    headers = {k: v for k, v in sink.headers.items() if k.lower() not in _RESERVED_HEADERS}

    if sink.failed:
        return Response(
            content=sink.body,
            status_code=sink.status_code,
            headers=headers,
            media_type="application/json",
        )

    if not sink.body:
        logger.debug(f"Endpoint produced no output endpoint={name}")

    try:
        body = encode_success(sink.body)
    except EncodingError as e:
        logger.error(f"Error encoding response endpoint={name} error={e}")
        return error_response(500, "Internal Server Error", "Error encoding response")

    return Response(
        content=body,
        status_code=sink.status_code,
        headers=headers,
        media_type="application/json",
    )


def single_shot_endpoint(name: str, capability: Capability) -> Endpoint:
    """Create the ``GET /<name>`` handler."""

    async def endpoint(request: Request) -> Response:
        logger.info(
            f"Received REST request endpoint={name} method={request.method} "
            f"path={request.url.path}"
        )

        query = dict(request.query_params)
        query[MAX_COUNT_PARAM] = "1"
        context = RequestContext(
            path_params=dict(request.path_params),
            query_params=query,
            max_count=1,
        )
        sink = RecordingSink()

        try:
            await run_in_threadpool(capability.handle, context, sink)
        except Exception:
            logger.exception(f"Endpoint failed endpoint={name}")
            return error_response(500, "Internal Server Error", f"Endpoint '{name}' failed")

        return recorded_response(sink, name)

    return endpoint


def stream_endpoint(
    name: str,
    capability: Capability,
    get_limiter: Callable[[], anyio.CapacityLimiter],
) -> Endpoint:
    """Create the ``GET /<name>/stream`` handler.

    Args:
        name: Registered endpoint name
        capability: The capability to run
        get_limiter: Returns the limiter bounding concurrent streams
    """

    async def endpoint(request: Request) -> Response:
        logger.info(
            f"Received SSE request endpoint={name} method={request.method} "
            f"path={request.url.path}"
        )

        if not supports_streaming(request.scope):
            logger.error(
                f"Streaming not supported endpoint={name} "
                f"http_version={request.scope.get('http_version')}"
            )
            return error_response(500, "Internal Server Error", "Streaming not supported")

        # The slot is held until the response finishes
        limiter = get_limiter()
        borrower = object()
        try:
            limiter.acquire_on_behalf_of_nowait(borrower)
        except anyio.WouldBlock:
            logger.warning(
                f"Rejecting stream endpoint={name} active_streams={limiter.borrowed_tokens}"
            )
            return error_response(503, "Service Unavailable", "Too many streams")

        context = RequestContext(
            path_params=dict(request.path_params),
            query_params=dict(request.query_params),
            max_count=resolve_max_count(request.query_params.get(MAX_COUNT_PARAM)),
        )
        return EventStreamResponse(
            capability, context, name=name, limiter=limiter, borrower=borrower
        )

    return endpoint
