"""Stream Hub - one capability, served over REST and Server-Sent Events."""

from .capability import Capability, RequestContext, Sink
from .config import HubConfig
from .envelope import encode_error, encode_success
from .errors import EncodingError, HubError, HubFrozenError, StreamClosedError
from .hub import Hub
from .limits import DEFAULT_MAX_COUNT, resolve_max_count

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_MAX_COUNT",
    "Capability",
    "EncodingError",
    "Hub",
    "HubConfig",
    "HubError",
    "HubFrozenError",
    "RequestContext",
    "Sink",
    "StreamClosedError",
    "encode_error",
    "encode_success",
    "resolve_max_count",
]
