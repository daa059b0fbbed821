"""Field-set client for the mangled binary protocol generation."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from .client import FieldControlClient
from .codec import build_handshake, decode_notice, encode_command
from .config import ConnectionCredentials, ProtocolGeneration
from .errors import ProtocolError
from .models import (
    BinaryCommand,
    FieldControlAction,
    FieldControlCommand,
    QueueKind,
    QueueMatchCommand,
    SetActiveFieldCommand,
)
from .transport.ws_client import FieldSetWsClient, WsMessage, WsMessageType

_LOGGER = logging.getLogger(__name__)


class BinaryFieldControlClient(FieldControlClient):
    """Client for servers speaking the binary field-set protocol.

    Authenticates with an API key sent as a bearer token and opens every
    stream with the timestamped handshake frame. The server publishes no
    audience display state and accepts no previous-match or display
    commands, so ``queue_prev_match`` and ``select_display`` report
    ``CommandResult.UNSUPPORTED``.
    """

    protocol = ProtocolGeneration.BINARY

    def __init__(
        self,
        credentials: ConnectionCredentials,
        *,
        clock: Callable[[], float] = time.time,
        **kwargs: Any,
    ) -> None:
        super().__init__(credentials, **kwargs)
        self._clock = clock

    def _path(self) -> str:
        return f"/api/fieldsets/{self._credentials.fieldset_id}"

    async def _prepare_connect(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._credentials.secret}"}

    async def _on_open(self, ws: FieldSetWsClient) -> None:
        await ws.send_bytes(build_handshake(self._clock()))
        _LOGGER.debug("[%s] Handshake sent", self._tag)

    def _decode(self, message: WsMessage) -> object:
        if message.type is not WsMessageType.BINARY or not isinstance(
            message.data, bytes
        ):
            raise ProtocolError("Expected a binary frame")
        return decode_notice(message.data)

    async def _transmit(self, ws: FieldSetWsClient, payload: BinaryCommand) -> None:
        await ws.send_bytes(encode_command(payload))
        _LOGGER.debug("[%s] Sent %s", self._tag, payload)

    def _build_start(self, field_id: int) -> BinaryCommand:
        return FieldControlCommand(FieldControlAction.START, field_id)

    def _build_end_early(self, field_id: int) -> BinaryCommand:
        return FieldControlCommand(FieldControlAction.END_EARLY, field_id)

    def _build_abort(self, field_id: int) -> BinaryCommand:
        return FieldControlCommand(FieldControlAction.ABORT, field_id)

    def _build_reset_timer(self, field_id: int) -> BinaryCommand:
        return FieldControlCommand(FieldControlAction.RESET_TIMER, field_id)

    def _build_queue_next(self) -> BinaryCommand:
        return QueueMatchCommand(QueueKind.NEXT)

    def _build_queue_prev(self) -> None:
        # TODO: send a queue request once the server accepts a previous-match value
        return None

    def _build_queue_skills(self, kind: QueueKind) -> BinaryCommand:
        return QueueMatchCommand(kind)

    def _build_set_active_field(self, field_id: int) -> BinaryCommand:
        return SetActiveFieldCommand(field_id)

    def _build_select_display(self, display: Any) -> None:
        return None
