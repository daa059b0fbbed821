"""WebSocket client wrapper for the field-set event stream."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import ConnectError, ProtocolError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class WsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    BINARY = "binary"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class WsMessage:
    """Normalized WebSocket message payload."""

    type: WsMessageType
    data: str | bytes | None = None


class FieldSetWsClient:
    """Wrapper around the websockets library for one field-set stream."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        address: str,
        *,
        path: str,
        headers: Mapping[str, str] | None = None,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the field-set websocket."""
        self._ws = await connect_websocket(
            address,
            path=path,
            headers=headers,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload as a text frame."""
        await self._send(json.dumps(payload))

    async def send_bytes(self, data: bytes) -> None:
        """Send a binary frame.

        Raises:
            ConnectError: If not connected or the stream is gone
        """
        await self._send(data)

    async def _send(self, data: str | bytes) -> None:
        if self._ws is None:
            raise ConnectError("WebSocket is not connected")
        try:
            await self._ws.send(data)
        except (ConnectionClosed, WebSocketException) as err:
            raise ConnectError("WebSocket send failed") from err

    def __aiter__(self) -> AsyncIterator[WsMessage]:
        if self._ws is None:
            raise ConnectError("WebSocket is not connected")
        return self._iter_messages(self._ws)

    async def _iter_messages(self, ws: ClientConnection) -> AsyncIterator[WsMessage]:
        try:
            async for msg in ws:
                if isinstance(msg, bytes):
                    yield WsMessage(WsMessageType.BINARY, msg)
                else:
                    yield WsMessage(WsMessageType.TEXT, msg)
        except ConnectionClosed:
            yield WsMessage(type=WsMessageType.CLOSED)
        except (OSError, WebSocketException):
            yield WsMessage(type=WsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield WsMessage(type=WsMessageType.CLOSED)

    @staticmethod
    def decode_json(message: WsMessage) -> dict[str, Any]:
        """Decode a TEXT message payload into a JSON object."""
        if message.type is not WsMessageType.TEXT:
            raise ProtocolError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise ProtocolError("Message data is not a string")
        try:
            result = json.loads(message.data)
        except json.JSONDecodeError as err:
            raise ProtocolError(f"Invalid JSON frame: {err}") from err
        if not isinstance(result, dict):
            raise ProtocolError("Frame is not a JSON object")
        return result
