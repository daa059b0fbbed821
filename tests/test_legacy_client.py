"""Tests for LegacyFieldControlClient."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta

import pytest

from tm_fieldcontrol.client import ConnectionState
from tm_fieldcontrol.config import ConnectionCredentials
from tm_fieldcontrol.errors import AuthError
from tm_fieldcontrol.legacy import LegacyFieldControlClient
from tm_fieldcontrol.models import CommandResult, TimingPhase
from tm_fieldcontrol.transport.ws_client import WsMessage, WsMessageType

from .conftest import SET_COOKIE, create_mock_response, settle

EXPIRES = datetime(2026, 10, 21, 7, 28, tzinfo=UTC)
COOKIE = 'user="c2Vzc2lvbg=="'


def text_frame(payload: dict) -> WsMessage:
    return WsMessage(WsMessageType.TEXT, json.dumps(payload))


class StalledResponse:
    """Login response that never arrives."""

    async def __aenter__(self):
        await asyncio.Event().wait()

    async def __aexit__(self, *exc_info):
        return None


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(EXPIRES - timedelta(hours=1))


@pytest.fixture
def client(credentials, mock_session, clock) -> LegacyFieldControlClient:
    mock_session.post.return_value = create_mock_response(
        status=302, set_cookies=[SET_COOKIE]
    )
    return LegacyFieldControlClient(credentials, http_session=mock_session, clock=clock)


class TestConnect:
    """Tests for login and stream setup."""

    @pytest.mark.asyncio
    async def test_login_then_connect_with_cookie(self, client, mock_session, fake_ws):
        states = []
        client.on_connection_state_changed(states.append)

        await client.connect()

        assert mock_session.post.call_count == 1
        ws = fake_ws.instances[0]
        assert ws.connect_kwargs["path"] == "/fieldsets/1"
        assert ws.connect_kwargs["headers"] == {"Cookie": COOKIE}
        assert states == [
            ConnectionState.AUTHENTICATING,
            ConnectionState.CONNECTING,
            ConnectionState.OPEN,
        ]
        await client.close()

    @pytest.mark.asyncio
    async def test_login_failure(self, client, mock_session, fake_ws):
        mock_session.post.return_value = create_mock_response(status=200)
        states = []
        client.on_connection_state_changed(states.append)

        with pytest.raises(AuthError):
            await client.connect()

        assert fake_ws.instances == []
        assert states == [ConnectionState.AUTHENTICATING, ConnectionState.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_cancel_during_login(self, client, mock_session, fake_ws):
        """Test a connect cancelled during login returns to DISCONNECTED."""
        mock_session.post.return_value = StalledResponse()
        task = asyncio.create_task(client.connect())
        await settle()
        assert client.connection_state is ConnectionState.AUTHENTICATING

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert client.connection_state is ConnectionState.DISCONNECTED
        assert fake_ws.instances == []

    @pytest.mark.asyncio
    async def test_stale_cookie_logs_in_once_before_send(
        self, client, mock_session, clock, fake_ws
    ):
        await client.connect()
        assert await client.start() is CommandResult.SENT
        assert mock_session.post.call_count == 1

        clock.now = EXPIRES + timedelta(seconds=1)
        mock_session.post.return_value = create_mock_response(
            set_cookies=[SET_COOKIE.replace("2026", "2027")]
        )
        assert await client.reset_timer() is CommandResult.SENT

        assert mock_session.post.call_count == 2
        first, second = fake_ws.instances
        assert first.closed
        assert first.sent == [{"action": "start", "fieldId": 0}]
        assert second.sent == [{"action": "reset", "fieldId": 0}]

        # Fresh again: no further login
        await client.queue_next_match()
        assert mock_session.post.call_count == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_reconfigure_drops_session(
        self, client, mock_session, fake_ws
    ):
        await client.connect()
        await client.reconfigure(
            ConnectionCredentials(address="192.168.1.50", secret="new", fieldset_id=2)
        )

        assert fake_ws.instances[0].closed
        await client.connect()

        assert mock_session.post.call_count == 2
        assert mock_session.post.call_args.kwargs["data"]["password"] == "new"
        assert fake_ws.instances[1].connect_kwargs["path"] == "/fieldsets/2"
        await client.close()

    @pytest.mark.asyncio
    async def test_close_keeps_borrowed_http_session(self, client, mock_session, fake_ws):
        await client.connect()
        await client.close()

        mock_session.close.assert_not_called()


class TestNotices:
    """Tests for legacy notice handling."""

    @pytest.mark.asyncio
    async def test_match_and_display_events(self, client, fake_ws):
        snapshots = []
        displays = []
        client.on_match_info_changed(snapshots.append)
        client.on_display_selected(displays.append)
        await client.connect()
        ws = fake_ws.instances[0]

        ws.push(text_frame({"type": "fieldMatchAssigned", "name": "Q7", "fieldId": 2}))
        ws.push(text_frame({"type": "matchStarted", "fieldId": 2}))
        ws.push(text_frame({"type": "timeUpdated", "state": "AUTO", "remaining": 14}))
        ws.push(text_frame({"type": "displayUpdated", "display": 4}))
        ws.push(text_frame({"type": "nope"}))
        ws.push(WsMessage(WsMessageType.TEXT, "not json"))
        await settle()

        assert len(snapshots) == 3
        assert snapshots[-1].match_name == "Q7"
        assert snapshots[-1].phase is TimingPhase.AUTO
        assert snapshots[-1].field_id == 2
        assert displays == [4]
        assert client.current_display == 4
        assert client.is_open
        await client.close()


class TestCommands:
    """Tests for legacy command payloads."""

    @pytest.mark.asyncio
    async def test_queue_and_display_commands(self, client, fake_ws):
        await client.queue_next_match()
        await client.queue_prev_match()
        await client.select_display(2)

        assert fake_ws.instances[0].sent == [
            {"action": "queueNextMatch"},
            {"action": "queuePrevMatch"},
            {"action": "setScreen", "screen": 2},
        ]
        await client.close()

    @pytest.mark.asyncio
    async def test_skills_queue_assumes_field(self, client, fake_ws):
        assert await client.queue_programming_skills(3) is CommandResult.SENT

        assert fake_ws.instances[0].sent == [{"action": "queueProgramming"}]
        assert client.current_field_id == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_unsupported_commands(self, client, mock_session, fake_ws):
        assert await client.abort_match() is CommandResult.UNSUPPORTED
        assert await client.move_match_to_field(2) is CommandResult.UNSUPPORTED
        mock_session.post.assert_not_called()
