"""Health check endpoint."""

from collections.abc import Iterable

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route


def health_routes(endpoint_names: Iterable[str]) -> list[Route]:
    """Build the health route, listing the names being served."""
    names = sorted(endpoint_names)

    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse({"status": "ok", "endpoints": names})

    return [Route("/health", health_check, methods=["GET"])]
