"""Capabilities shipped with the hub."""

from .date import DateCapability

__all__ = ["DateCapability"]
