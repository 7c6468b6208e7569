"""HTTP routes."""

from .endpoints import error_response, single_shot_endpoint, stream_endpoint
from .health import health_routes

__all__ = [
    "error_response",
    "health_routes",
    "single_shot_endpoint",
    "stream_endpoint",
]
