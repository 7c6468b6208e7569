"""Capability registry and route wiring.

Usage:
    hub = Hub(HubConfig())
    hub.register("date", DateCapability())
    app = hub.create_app()

Registration happens before serving. Building the routes freezes the hub:
the served mapping is a read-only snapshot, and later calls to register()
raise HubFrozenError instead of racing with requests.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from types import MappingProxyType

import anyio
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from .capability import Capability
from .config import HubConfig
from .errors import HubFrozenError
from .routes import health_routes, single_shot_endpoint, stream_endpoint

logger = logging.getLogger(__name__)

RESERVED_NAMES = frozenset({"health"})

# Names become a literal path segment: URL unreserved characters only
_NAME_RE = re.compile(r"[A-Za-z0-9._~-]+")


class Hub:
    """Binds names to capabilities and serves each over REST and SSE."""

    def __init__(self, config: HubConfig | None = None) -> None:
        self.config = config or HubConfig()
        self._capabilities: dict[str, Capability] = {}
        self._frozen: Mapping[str, Capability] | None = None
        self._limiter: anyio.CapacityLimiter | None = None

    def register(self, name: str, capability: Capability) -> Hub:
        """Register a capability under ``name``.

        The last registration for a name wins.

        Raises:
            HubFrozenError: If the hub is already serving
            ValueError: If the name is not a plain path segment or is reserved
            TypeError: If capability does not implement handle()
        """
        if self._frozen is not None:
            raise HubFrozenError(f"Cannot register '{name}': hub is already serving")
        if not _NAME_RE.fullmatch(name):
            raise ValueError(f"Invalid endpoint name: {name!r}")
        if name in RESERVED_NAMES:
            raise ValueError(f"Endpoint name is reserved: {name!r}")
        if not isinstance(capability, Capability):
            raise TypeError(f"Capability for '{name}' must implement handle(context, sink)")

        if name in self._capabilities:
            logger.debug(f"Replacing endpoint name={name}")
        self._capabilities[name] = capability
        logger.debug(f"Registered endpoint name={name}")
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen is not None

    @property
    def endpoints(self) -> Mapping[str, Capability]:
        """Read-only view of the registered capabilities."""
        if self._frozen is not None:
            return self._frozen
        return MappingProxyType(self._capabilities)

    def freeze(self) -> Mapping[str, Capability]:
        """Stop accepting registrations and return the served snapshot."""
        if self._frozen is None:
            self._frozen = MappingProxyType(dict(self._capabilities))
            logger.info(f"Hub frozen endpoints={sorted(self._frozen)}")
        return self._frozen

    def stream_limiter(self) -> anyio.CapacityLimiter:
        """Limiter shared by all streams; created on first use in the event loop."""
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.config.max_streams)
        return self._limiter

    def routes(self) -> list[Route]:
        """Build the two routes for every registered name. Freezes the hub."""
        routes: list[Route] = []
        for name, capability in self.freeze().items():
            routes.append(
                Route(
                    f"/{name}",
                    single_shot_endpoint(name, capability),
                    methods=["GET"],
                    name=name,
                )
            )
            routes.append(
                Route(
                    f"/{name}/stream",
                    stream_endpoint(name, capability, self.stream_limiter),
                    methods=["GET"],
                    name=f"{name}_stream",
                )
            )
        return routes

    def create_app(self) -> Starlette:
        """Create the Starlette application serving this hub. Freezes the hub."""
        routes: list[Route] = []
        routes.extend(self.routes())
        routes.extend(health_routes(self.endpoints))

        middleware = [
            Middleware(
                CORSMiddleware,
                allow_origins=self.config.cors_origins,
                allow_methods=["GET"],
                allow_headers=["*"],
            ),
        ]

        return Starlette(routes=routes, middleware=middleware)
