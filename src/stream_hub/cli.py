"""Stream Hub CLI.

Usage:
    stream-hub                          # Serve on 127.0.0.1:8080
    stream-hub --port 9000 --log-level debug
    stream-hub --health                 # Check a running server
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import click
import httpx

from .config import ENV_PREFIX

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_log_level(level: str) -> int:
    """Convert a level name to a logging level. Unknown names map to INFO."""
    return LOG_LEVELS.get(level.lower(), logging.INFO)


def configure_logging(level: str) -> None:
    """Send all logging to stderr at the given level."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(get_log_level(level))


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, help="Port to listen on")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(sorted(LOG_LEVELS), case_sensitive=False),
    help="Log level",
)
@click.option("--max-streams", default=100, help="Maximum number of concurrent streams")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default="http://localhost:8080", help="Server URL for health check")
def main(
    host: str,
    port: int,
    log_level: str,
    max_streams: int,
    reload: bool,
    health_check: bool,
    health_url: str,
) -> None:
    """Stream Hub - serve endpoints over REST and Server-Sent Events."""
    if health_check:
        _do_health_check(health_url)
        return

    if port <= 0 or max_streams <= 0:
        raise click.UsageError("--port and --max-streams must be positive")

    configure_logging(log_level)
    _run_http_server(host, port, log_level, max_streams, reload)


def _do_health_check(url: str) -> None:
    """Check server health."""

    async def check() -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(f"{url}/health")
                if response.status_code == 200:
                    data = response.json()
                    click.echo(f"Server is healthy: {data}")
                else:
                    click.echo(f"Server returned {response.status_code}", err=True)
                    sys.exit(1)
        except httpx.ConnectError:
            click.echo(f"Cannot connect to server at {url}", err=True)
            sys.exit(1)

    asyncio.run(check())


def _run_http_server(
    host: str, port: int, log_level: str, max_streams: int, reload: bool
) -> None:
    """Run the HTTP server."""
    import uvicorn

    # The app factory reads its configuration from the environment
    os.environ[ENV_PREFIX + "HOST"] = host
    os.environ[ENV_PREFIX + "PORT"] = str(port)
    os.environ[ENV_PREFIX + "LOG_LEVEL"] = log_level
    os.environ[ENV_PREFIX + "MAX_STREAMS"] = str(max_streams)

    logging.getLogger(__name__).info(
        f"Starting hub service host={host} port={port} log_level={log_level}"
    )
    click.echo(f"Starting stream hub on http://{host}:{port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "stream_hub.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=get_log_level(log_level),
        timeout_keep_alive=120,
    )


if __name__ == "__main__":
    main()
