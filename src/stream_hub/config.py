"""Hub configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ENV_PREFIX = "STREAM_HUB_"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
    return value


@dataclass
class HubConfig:
    """Hub configuration.

    Attributes:
        host: Interface the server binds to
        port: Port the server listens on
        log_level: One of debug, info, warn, error
        max_streams: Upper bound on concurrently open streams
        date_interval: Seconds between events of the date endpoint
        cors_origins: Origins allowed by the CORS middleware
    """

    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"
    max_streams: int = 100
    date_interval: float = 1.0
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> HubConfig:
        """Build a configuration from STREAM_HUB_* environment variables.

        Unset or invalid variables keep their defaults.
        """
        defaults = cls()
        origins = os.environ.get(ENV_PREFIX + "CORS_ORIGINS")
        return cls(
            host=os.environ.get(ENV_PREFIX + "HOST") or defaults.host,
            port=_env_int("PORT", defaults.port),
            log_level=os.environ.get(ENV_PREFIX + "LOG_LEVEL") or defaults.log_level,
            max_streams=_env_int("MAX_STREAMS", defaults.max_streams),
            date_interval=_env_float("DATE_INTERVAL", defaults.date_interval),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins
                else defaults.cors_origins
            ),
        )
