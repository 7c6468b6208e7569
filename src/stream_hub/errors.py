"""Exceptions raised by the hub."""


class HubError(Exception):
    """Base class for hub errors."""

    pass


class EncodingError(HubError):
    """Raised when an envelope cannot be serialized."""

    pass


class StreamClosedError(HubError):
    """Raised when a capability writes to a stream that has been closed.

    Capabilities may let this propagate; the bridge treats it as a normal
    end of production.
    """

    pass


class HubFrozenError(HubError):
    """Raised when registering a capability after the hub started serving."""

    pass
