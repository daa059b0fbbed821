"""Websocket and HTTP plumbing for field-set streams."""

from .http import SessionAuthenticator, SessionCookie, parse_session_cookie
from .ws import connect_websocket
from .ws_client import FieldSetWsClient, WsMessage, WsMessageType

__all__ = [
    "FieldSetWsClient",
    "SessionAuthenticator",
    "SessionCookie",
    "WsMessage",
    "WsMessageType",
    "connect_websocket",
    "parse_session_cookie",
]
