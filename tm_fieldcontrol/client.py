"""Field-set control client: stream lifecycle and command API.

``FieldControlClient`` owns the event stream to one field set. It connects
lazily, feeds inbound frames to the notice interpreter in arrival order, and
turns command calls into protocol frames. The two protocol generations
subclass it and provide authentication, framing and command payloads.

Usage:
    client = BinaryFieldControlClient(credentials)
    client.on_match_info_changed(render)
    await client.connect()
    await client.start_or_end()
    await client.close()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

from .config import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_PING_INTERVAL,
    ConnectionCredentials,
    ProtocolGeneration,
)
from .errors import ConnectError, ProtocolError
from .interpreter import NoticeInterpreter
from .models import (
    CommandResult,
    LegacyDisplayUpdated,
    LegacyTimeUpdated,
    MatchSnapshot,
    QueueKind,
    TimeUpdated,
)
from .observers import CallbackRegistry
from .transport.ws_client import FieldSetWsClient, WsMessage, WsMessageType

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle of the event stream."""

    DISCONNECTED = "disconnected"
    AUTHENTICATING = "authenticating"
    CONNECTING = "connecting"
    OPEN = "open"


class FieldControlClient(ABC):
    """Protocol-independent field-set client."""

    protocol: ProtocolGeneration

    def __init__(
        self,
        credentials: ConnectionCredentials,
        *,
        ping_interval: int | None = DEFAULT_PING_INTERVAL,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self._credentials = credentials
        self._ping_interval = ping_interval
        self._connect_timeout = connect_timeout

        self._interpreter = NoticeInterpreter()

        # Connection state
        self._ws: FieldSetWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._state = ConnectionState.DISCONNECTED
        # Serializes connect, teardown and the send path
        self._lock = asyncio.Lock()

        # Callbacks
        self._match_info_callbacks: CallbackRegistry[MatchSnapshot] = (
            CallbackRegistry("Match info")
        )
        self._display_callbacks: CallbackRegistry[Any] = CallbackRegistry("Display")
        self._state_callbacks: CallbackRegistry[ConnectionState] = CallbackRegistry(
            "Connection state"
        )
        self._lost_callbacks: CallbackRegistry[None] = CallbackRegistry(
            "Connection lost"
        )

    @property
    def _tag(self) -> str:
        return f"fieldset {self._credentials.fieldset_id}"

    # -------------------------------------------------------------------------
    # Public API: State
    # -------------------------------------------------------------------------

    @property
    def credentials(self) -> ConnectionCredentials:
        return self._credentials

    @property
    def connection_state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def is_running(self) -> bool:
        return self._interpreter.running

    @property
    def current_field_id(self) -> int:
        return self._interpreter.field_id

    @property
    def current_display(self) -> Any:
        return self._interpreter.display

    def snapshot(self) -> MatchSnapshot:
        return self._interpreter.snapshot()

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_match_info_changed(
        self, callback: Callable[[MatchSnapshot], None]
    ) -> Callable[[], None]:
        """Register callback for match info changes (name, phase, time, field)."""
        return self._match_info_callbacks.add(callback)

    def on_display_selected(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register callback for audience display changes."""
        return self._display_callbacks.add(callback)

    def on_connection_state_changed(
        self, callback: Callable[[ConnectionState], None]
    ) -> Callable[[], None]:
        """Register callback for stream state transitions."""
        return self._state_callbacks.add(callback)

    def on_connection_lost(self, callback: Callable[[None], None]) -> Callable[[], None]:
        """Register callback for streams closed by the server or by an error.

        Not called for ``close()`` or a forced reconnect.
        """
        return self._lost_callbacks.add(callback)

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self, force: bool = False) -> None:
        """Open the event stream if it is not open yet.

        Args:
            force: Tear down any existing stream and open a new one.

        Raises:
            AuthError: Login failed (legacy generation).
            ConnectError: The stream could not be opened.
        """
        async with self._lock:
            await self._connect_locked(force=force)

    async def close(self) -> None:
        """Close the stream; the client may be connected again later."""
        _LOGGER.info("[%s] Closing connection", self._tag)
        async with self._lock:
            await self._teardown()
        await self._release()

    async def reconfigure(self, credentials: ConnectionCredentials) -> None:
        """Replace credentials, dropping the session and the open stream.

        The next ``connect()`` or command opens a new stream.
        """
        async with self._lock:
            if credentials.fieldset_id != self._credentials.fieldset_id:
                self._interpreter.reset()
            self._credentials = credentials
            self._invalidate_session()
            await self._teardown()

    # -------------------------------------------------------------------------
    # Public API: Commands
    # -------------------------------------------------------------------------

    async def start(self) -> CommandResult:
        """Start the queued match; skipped while a match is running."""
        async with self._lock:
            if self._interpreter.running:
                _LOGGER.debug("[%s] Start skipped: match running", self._tag)
                return CommandResult.SKIPPED
            await self._send_locked(self._build_start(self._interpreter.field_id))
        return CommandResult.SENT

    async def end_early(self) -> CommandResult:
        """End the running match early; skipped when nothing is running."""
        async with self._lock:
            if not self._interpreter.running:
                _LOGGER.debug("[%s] End early skipped: no match running", self._tag)
                return CommandResult.SKIPPED
            await self._send_locked(self._build_end_early(self._interpreter.field_id))
        return CommandResult.SENT

    async def start_or_end(self) -> CommandResult:
        """End the match early if one is running, otherwise start it."""
        if self._interpreter.running:
            return await self.end_early()
        return await self.start()

    async def abort_match(self) -> CommandResult:
        return await self._issue(self._build_abort(self._interpreter.field_id))

    async def reset_timer(self) -> CommandResult:
        return await self._issue(self._build_reset_timer(self._interpreter.field_id))

    async def queue_next_match(self) -> CommandResult:
        return await self._issue(self._build_queue_next())

    async def queue_prev_match(self) -> CommandResult:
        return await self._issue(self._build_queue_prev())

    async def select_display(self, display: Any) -> CommandResult:
        return await self._issue(self._build_select_display(display))

    async def move_match_to_field(self, field_id: int) -> CommandResult:
        return await self._issue(self._build_set_active_field(int(field_id)))

    async def queue_driving_skills(self, field_id: int) -> CommandResult:
        return await self._queue_skills(QueueKind.DRIVING_SKILLS, int(field_id))

    async def queue_programming_skills(self, field_id: int) -> CommandResult:
        return await self._queue_skills(QueueKind.PROGRAMMING_SKILLS, int(field_id))

    async def _queue_skills(self, kind: QueueKind, field_id: int) -> CommandResult:
        async with self._lock:
            await self._send_locked(self._build_queue_skills(kind))
            activate = self._build_set_active_field(field_id)
            if activate is not None:
                await self._send_locked(activate)
            # Superseded by the next field-activated or match-queued notice
            self._interpreter.assume_field(field_id)
        return CommandResult.SENT

    async def _issue(self, payload: Any | None) -> CommandResult:
        if payload is None:
            return CommandResult.UNSUPPORTED
        async with self._lock:
            await self._send_locked(payload)
        return CommandResult.SENT

    # -------------------------------------------------------------------------
    # Protocol generation hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def _path(self) -> str:
        """WebSocket path of the field-set endpoint."""

    @abstractmethod
    async def _prepare_connect(self) -> dict[str, str]:
        """Make sure credentials are usable; return the stream request headers."""

    async def _on_open(self, ws: FieldSetWsClient) -> None:
        """Called with the lock held right after the stream opens."""

    def _invalidate_session(self) -> None:
        """Forget any cached session credential."""

    async def _release(self) -> None:
        """Release resources beyond the stream (HTTP sessions)."""

    @abstractmethod
    def _decode(self, message: WsMessage) -> object:
        """Decode one inbound frame into a notice."""

    @abstractmethod
    async def _transmit(self, ws: FieldSetWsClient, payload: Any) -> None:
        """Write one command payload to the stream."""

    # Payload builders return None for commands the generation cannot express.

    @abstractmethod
    def _build_start(self, field_id: int) -> Any: ...

    @abstractmethod
    def _build_end_early(self, field_id: int) -> Any: ...

    @abstractmethod
    def _build_abort(self, field_id: int) -> Any | None: ...

    @abstractmethod
    def _build_reset_timer(self, field_id: int) -> Any: ...

    @abstractmethod
    def _build_queue_next(self) -> Any: ...

    @abstractmethod
    def _build_queue_prev(self) -> Any | None: ...

    @abstractmethod
    def _build_queue_skills(self, kind: QueueKind) -> Any: ...

    @abstractmethod
    def _build_set_active_field(self, field_id: int) -> Any | None: ...

    @abstractmethod
    def _build_select_display(self, display: Any) -> Any | None: ...

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        """Update connection state and notify callbacks."""
        if self._state is not state:
            _LOGGER.debug("[%s] State: %s → %s", self._tag, self._state.value, state.value)
            self._state = state
            self._state_callbacks.notify(state)

    async def _connect_locked(self, *, force: bool) -> None:
        if force:
            await self._teardown()

        headers = await self._prepare_connect()
        if self._ws is not None:
            return

        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.info(
            "[%s] Connecting to ws://%s%s",
            self._tag,
            self._credentials.address,
            self._path(),
        )
        ws = FieldSetWsClient()
        try:
            await ws.connect(
                self._credentials.address,
                path=self._path(),
                headers=headers,
                ping_interval=self._ping_interval,
                timeout=self._connect_timeout,
            )
            await self._on_open(ws)
        except BaseException:
            # Also on cancellation, which can land between open and handshake
            await ws.close()
            self._set_state(ConnectionState.DISCONNECTED)
            raise

        self._ws = ws
        self._set_state(ConnectionState.OPEN)
        _LOGGER.info("[%s] Connected, starting listener", self._tag)
        self._listen_task = asyncio.create_task(self._listen(ws))

    async def _teardown(self) -> None:
        """Drop the stream without reporting it as lost."""
        ws, self._ws = self._ws, None
        task, self._listen_task = self._listen_task, None

        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if ws is not None:
            try:
                await asyncio.wait_for(ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("[%s] WebSocket close timed out", self._tag)

        self._set_state(ConnectionState.DISCONNECTED)

    async def _stream_lost(self, ws: FieldSetWsClient) -> None:
        """Forget a stream that failed underneath us and report it."""
        if self._ws is not ws:
            return
        self._ws = None
        if self._listen_task is not asyncio.current_task():
            task, self._listen_task = self._listen_task, None
            if task is not None:
                task.cancel()
        else:
            self._listen_task = None
        await ws.close()
        self._set_state(ConnectionState.DISCONNECTED)
        self._lost_callbacks.notify(None)

    async def _send_locked(self, payload: Any) -> None:
        await self._connect_locked(force=False)
        ws = self._ws
        if ws is None:
            raise ConnectError("WebSocket is not connected")
        try:
            await self._transmit(ws, payload)
        except ConnectError as err:
            _LOGGER.warning("[%s] Send failed: %s", self._tag, err)
            await self._stream_lost(ws)
            raise

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self, ws: FieldSetWsClient) -> None:
        """Feed inbound frames to the interpreter until the stream ends."""
        message_count = 0
        lost = False

        try:
            async for msg in ws:
                if msg.type in (WsMessageType.TEXT, WsMessageType.BINARY):
                    message_count += 1
                    self._dispatch(msg)
                elif msg.type is WsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self._tag)
                    lost = True
                    break
                elif msg.type is WsMessageType.ERROR:
                    _LOGGER.error("[%s] WebSocket error", self._tag)
                    lost = True
                    break
        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self._tag, message_count
            )
            raise
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected listener error: %s", self._tag, err)
            lost = True

        if lost:
            await self._stream_lost(ws)

    def _dispatch(self, msg: WsMessage) -> None:
        try:
            notice = self._decode(msg)
            if not isinstance(notice, (TimeUpdated, LegacyTimeUpdated)):
                _LOGGER.debug("[%s] Notice: %s", self._tag, notice)
            snapshot = self._interpreter.handle(notice)
        except ProtocolError as err:
            _LOGGER.warning("[%s] Dropped frame: %s", self._tag, err)
            return

        if snapshot is not None:
            self._match_info_callbacks.notify(snapshot)
        if isinstance(notice, LegacyDisplayUpdated):
            self._display_callbacks.notify(notice.display)
