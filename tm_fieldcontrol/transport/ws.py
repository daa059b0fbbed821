"""WebSocket helpers for the field-set event stream."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    ConnectError,
    ConnectTimeout,
    HandshakeError,
)


async def connect_websocket(
    address: str,
    *,
    path: str,
    headers: Mapping[str, str] | None = None,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a server WebSocket endpoint.

    Args:
        address: Server host, optionally with ``:port``
        path: WebSocket path
        headers: Extra request headers (session cookie or bearer token)
        ping_interval: Interval for ping frames
        timeout: Connection timeout
    """
    ws_url = f"ws://{address}{path}"
    try:
        return await asyncio.wait_for(
            websockets.connect(
                ws_url,
                additional_headers=dict(headers or {}),
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise ConnectTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise HandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise ConnectError("WebSocket connection failed") from err
