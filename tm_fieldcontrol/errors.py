"""Error types for Tournament Manager field-control interactions."""

from __future__ import annotations


class FieldControlError(Exception):
    """Base error for field-control client failures."""


class AuthError(FieldControlError):
    """Login to the server failed or returned an unusable session cookie."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConnectError(FieldControlError):
    """The event stream to the server could not be established."""


class ConnectTimeout(ConnectError):
    """Timeout while opening the event stream."""


class HandshakeError(ConnectError):
    """WebSocket handshake was rejected by the server."""


class ProtocolError(FieldControlError):
    """An inbound frame could not be decoded or has an unknown type."""


class ConfigError(FieldControlError):
    """Configuration is missing or malformed."""
