"""Stream Hub Application.

Creates the Starlette ASGI application with the shipped endpoints.

Routes:
- /health - Health check
- /date - Current UTC time, single-shot
- /date/stream - Current UTC time, one event per interval
"""

from starlette.applications import Starlette

from .capabilities import DateCapability
from .config import HubConfig
from .hub import Hub


def create_app(config: HubConfig | None = None) -> Starlette:
    """Create the hub application.

    Args:
        config: Hub configuration; read from the environment when omitted

    Returns:
        Configured Starlette application
    """
    config = config or HubConfig.from_env()

    hub = Hub(config)
    hub.register("date", DateCapability(interval=config.date_interval))

    return hub.create_app()
