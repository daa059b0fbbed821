"""Field-set client for the legacy JSON-over-websocket protocol generation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from . import protocol as json_protocol
from .client import ConnectionState, FieldControlClient
from .config import ConnectionCredentials, ProtocolGeneration
from .errors import AuthError
from .models import QueueKind
from .transport.http import SessionAuthenticator, utcnow
from .transport.ws_client import FieldSetWsClient, WsMessage

_LOGGER = logging.getLogger(__name__)


class LegacyFieldControlClient(FieldControlClient):
    """Client for servers speaking the legacy JSON field-set protocol.

    Logs in through the admin form to get a session cookie and presents it
    when opening the stream. Every send checks the cookie first; a stale
    cookie causes one login and a fresh stream before the frame goes out.
    """

    protocol = ProtocolGeneration.LEGACY

    def __init__(
        self,
        credentials: ConnectionCredentials,
        *,
        http_session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = utcnow,
        **kwargs: Any,
    ) -> None:
        super().__init__(credentials, **kwargs)
        self._http_session = http_session
        self._owns_http_session = http_session is None
        self._clock = clock
        self._authenticator: SessionAuthenticator | None = None

    def _get_authenticator(self) -> SessionAuthenticator:
        if self._authenticator is None:
            if self._http_session is None or self._http_session.closed:
                self._http_session = aiohttp.ClientSession()
                self._owns_http_session = True
            self._authenticator = SessionAuthenticator(
                self._http_session,
                self._credentials.address,
                clock=self._clock,
            )
        return self._authenticator

    def _path(self) -> str:
        return f"/fieldsets/{self._credentials.fieldset_id}"

    async def _prepare_connect(self) -> dict[str, str]:
        authenticator = self._get_authenticator()
        if not authenticator.is_fresh():
            # A stream opened with the old cookie is replaced
            await self._teardown()
            self._set_state(ConnectionState.AUTHENTICATING)
            _LOGGER.info("[%s] Logging in to %s", self._tag, self._credentials.address)
            try:
                await authenticator.authenticate(self._credentials.secret)
            except BaseException:
                self._set_state(ConnectionState.DISCONNECTED)
                raise
        cookie = authenticator.cached
        if cookie is None:
            raise AuthError("No session cookie after login")
        return {"Cookie": cookie.value}

    def _invalidate_session(self) -> None:
        self._authenticator = None

    async def _release(self) -> None:
        self._authenticator = None
        if self._owns_http_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _decode(self, message: WsMessage) -> object:
        return json_protocol.parse_notice(FieldSetWsClient.decode_json(message))

    async def _transmit(self, ws: FieldSetWsClient, payload: dict[str, Any]) -> None:
        await ws.send_json(payload)
        _LOGGER.debug("[%s] Sent %s", self._tag, payload)

    def _build_start(self, field_id: int) -> dict[str, Any]:
        return json_protocol.build_start(field_id)

    def _build_end_early(self, field_id: int) -> dict[str, Any]:
        return json_protocol.build_end_early(field_id)

    def _build_abort(self, field_id: int) -> None:
        return None

    def _build_reset_timer(self, field_id: int) -> dict[str, Any]:
        return json_protocol.build_reset_timer(field_id)

    def _build_queue_next(self) -> dict[str, Any]:
        return json_protocol.build_queue_next_match()

    def _build_queue_prev(self) -> dict[str, Any]:
        return json_protocol.build_queue_prev_match()

    def _build_queue_skills(self, kind: QueueKind) -> dict[str, Any]:
        if kind is QueueKind.DRIVING_SKILLS:
            return json_protocol.build_queue_driving()
        if kind is QueueKind.PROGRAMMING_SKILLS:
            return json_protocol.build_queue_programming()
        raise ValueError(f"Not a skills queue kind: {kind}")

    def _build_set_active_field(self, field_id: int) -> None:
        return None

    def _build_select_display(self, display: Any) -> dict[str, Any]:
        return json_protocol.build_set_screen(display)
