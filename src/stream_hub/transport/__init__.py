"""Transport adapters.

Two sinks implement the capability output contract:
- RecordingSink - captures output in memory for the single-shot route
- RelaySink - relays output live as Server-Sent Events
"""

from .recorder import RecordingSink
from .sse import EventStreamResponse, RelaySink, format_event, supports_streaming

__all__ = [
    "EventStreamResponse",
    "RecordingSink",
    "RelaySink",
    "format_event",
    "supports_streaming",
]
