"""Pytest configuration and fixtures for tm_fieldcontrol tests."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from multidict import CIMultiDict

from tm_fieldcontrol.config import ConnectionCredentials
from tm_fieldcontrol.transport.ws_client import WsMessage

SET_COOKIE = (
    'user="c2Vzc2lvbg=="; Path=/; HttpOnly; '
    "expires=Wed, 21 Oct 2026 07:28:00 GMT"
)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    session = MagicMock(spec=aiohttp.ClientSession)
    session.closed = False
    return session


@pytest.fixture
def credentials() -> ConnectionCredentials:
    return ConnectionCredentials(address="192.168.1.50", secret="hunter2", fieldset_id=1)


def create_mock_response(
    status: int = 302,
    set_cookies: list[str] | None = None,
) -> AsyncMock:
    """Create a configured mock login response.

    Args:
        status: HTTP status code
        set_cookies: Set-Cookie header values, in order

    Returns:
        Configured AsyncMock response usable as an async context manager
    """
    response = AsyncMock()
    response.status = status
    response.headers = CIMultiDict(
        ("Set-Cookie", value) for value in (set_cookies or [])
    )

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class AsyncIteratorMock:
    """Async iterator standing in for a websockets connection."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()
        self.send = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._index >= len(self._items):
            if self._raise_on_iter is not None:
                raise self._raise_on_iter
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


class FakeWsClient:
    """In-memory replacement for ``FieldSetWsClient``.

    Records sent frames and replays pushed inbound messages. The stream stays
    open until a CLOSED or ERROR message is pushed, like a live connection.
    """

    instances: list[FakeWsClient] = []
    connect_error: Exception | None = None

    def __init__(self) -> None:
        self.connect_kwargs: dict[str, Any] | None = None
        self.sent: list[Any] = []
        self.closed = False
        self._inbox: asyncio.Queue[WsMessage] = asyncio.Queue()
        FakeWsClient.instances.append(self)

    async def connect(self, address: str, **kwargs: Any) -> None:
        if FakeWsClient.connect_error is not None:
            raise FakeWsClient.connect_error
        self.connect_kwargs = {"address": address, **kwargs}

    async def close(self) -> None:
        self.closed = True

    async def send_json(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)

    async def send_bytes(self, data: bytes) -> None:
        self.sent.append(data)

    def push(self, message: WsMessage) -> None:
        self._inbox.put_nowait(message)

    def __aiter__(self):
        return self

    async def __anext__(self) -> WsMessage:
        return await self._inbox.get()


@pytest.fixture
def fake_ws():
    """Patch the client's websocket wrapper with ``FakeWsClient``."""
    FakeWsClient.instances = []
    FakeWsClient.connect_error = None
    with patch("tm_fieldcontrol.client.FieldSetWsClient", FakeWsClient):
        yield FakeWsClient
    FakeWsClient.instances = []
    FakeWsClient.connect_error = None


async def settle() -> None:
    """Let the listener task drain queued messages."""
    for _ in range(5):
        await asyncio.sleep(0)
