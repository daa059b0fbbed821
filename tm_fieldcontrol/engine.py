"""Host-facing field control engine.

The engine is the one object a host keeps for the life of an event. It
builds the client for the configured protocol generation, keeps it connected
through a ``ReconnectSupervisor`` and forwards client events to host
subscriptions, which survive reconfiguration and client rebuilds.

Usage:
    engine = FieldControlEngine()
    engine.on_match_info_changed(render)
    engine.on_alert(show_alert)
    await engine.configure(load_config(path))
    await engine.start_or_end()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .binary import BinaryFieldControlClient
from .client import ConnectionState, FieldControlClient
from .config import FieldControlConfig, ProtocolGeneration
from .errors import AuthError, ConfigError, ConnectError
from .legacy import LegacyFieldControlClient
from .models import CommandResult, MatchSnapshot
from .observers import CallbackRegistry
from .supervisor import ReconnectSupervisor

_LOGGER = logging.getLogger(__name__)


def create_client(config: FieldControlConfig) -> FieldControlClient:
    """Build the client for ``config.protocol``."""
    kwargs: dict[str, Any] = {
        "ping_interval": config.ping_interval,
        "connect_timeout": config.connect_timeout,
    }
    if config.protocol is ProtocolGeneration.LEGACY:
        return LegacyFieldControlClient(config.credentials, **kwargs)
    return BinaryFieldControlClient(config.credentials, **kwargs)


class FieldControlEngine:
    """Configured, self-reconnecting field control for one field set."""

    def __init__(
        self,
        config: FieldControlConfig | None = None,
        *,
        client_factory: Callable[[FieldControlConfig], FieldControlClient] = create_client,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._sleep = sleep
        self._client: FieldControlClient | None = None
        self._supervisor: ReconnectSupervisor | None = None
        self._unsubscribers: list[Callable[[], None]] = []

        self._match_info_callbacks: CallbackRegistry[MatchSnapshot] = (
            CallbackRegistry("Match info")
        )
        self._display_callbacks: CallbackRegistry[Any] = CallbackRegistry("Display")
        self._alert_callbacks: CallbackRegistry[Exception] = CallbackRegistry("Alert")
        self._state_callbacks: CallbackRegistry[ConnectionState] = CallbackRegistry(
            "Connection state"
        )

    # -------------------------------------------------------------------------
    # Public API: State
    # -------------------------------------------------------------------------

    @property
    def config(self) -> FieldControlConfig | None:
        return self._config

    @property
    def client(self) -> FieldControlClient | None:
        return self._client

    @property
    def connection_state(self) -> ConnectionState:
        if self._client is None:
            return ConnectionState.DISCONNECTED
        return self._client.connection_state

    def snapshot(self) -> MatchSnapshot | None:
        if self._client is None:
            return None
        return self._client.snapshot()

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_match_info_changed(
        self, callback: Callable[[MatchSnapshot], None]
    ) -> Callable[[], None]:
        return self._match_info_callbacks.add(callback)

    def on_display_selected(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        return self._display_callbacks.add(callback)

    def on_alert(self, callback: Callable[[Exception], None]) -> Callable[[], None]:
        """Register callback for every failed connect or reconnect attempt."""
        return self._alert_callbacks.add(callback)

    def on_connection_state_changed(
        self, callback: Callable[[ConnectionState], None]
    ) -> Callable[[], None]:
        return self._state_callbacks.add(callback)

    # -------------------------------------------------------------------------
    # Public API: Configuration
    # -------------------------------------------------------------------------

    async def configure(
        self, config: FieldControlConfig | None = None
    ) -> asyncio.Task[None]:
        """Apply ``config`` and reconnect in the background.

        The session is dropped and the stream reopened on every call. A change
        of protocol generation replaces the client.

        Returns:
            The supervisor task; it finishes once the stream is open.

        Raises:
            ConfigError: If no configuration was given now or at construction.
        """
        if config is None:
            config = self._config
        if config is None:
            raise ConfigError("No configuration to apply")

        previous = self._config
        self._config = config

        if (
            self._client is None
            or self._supervisor is None
            or previous is None
            or previous.protocol is not config.protocol
        ):
            await self._discard_client()
            self._attach_client(self._client_factory(config), config)
            _LOGGER.info(
                "Configured %s client for fieldset %d",
                config.protocol.value,
                config.credentials.fieldset_id,
            )
        else:
            await self._supervisor.cancel()
            await self._client.reconfigure(config.credentials)
            self._supervisor.retry_interval = config.retry_interval
            _LOGGER.info(
                "Reconfigured client for fieldset %d", config.credentials.fieldset_id
            )

        return self._supervisor.start(force=True)

    async def close(self) -> None:
        """Stop reconnecting and close the stream."""
        await self._discard_client()

    # -------------------------------------------------------------------------
    # Public API: Commands
    # -------------------------------------------------------------------------

    async def start_or_end(self) -> CommandResult:
        return await self._run_command(lambda c: c.start_or_end())

    async def start(self) -> CommandResult:
        return await self._run_command(lambda c: c.start())

    async def end_early(self) -> CommandResult:
        return await self._run_command(lambda c: c.end_early())

    async def abort_match(self) -> CommandResult:
        return await self._run_command(lambda c: c.abort_match())

    async def reset_timer(self) -> CommandResult:
        return await self._run_command(lambda c: c.reset_timer())

    async def queue_next_match(self) -> CommandResult:
        return await self._run_command(lambda c: c.queue_next_match())

    async def queue_prev_match(self) -> CommandResult:
        return await self._run_command(lambda c: c.queue_prev_match())

    async def queue_driving_skills(self, field_id: int) -> CommandResult:
        return await self._run_command(lambda c: c.queue_driving_skills(field_id))

    async def queue_programming_skills(self, field_id: int) -> CommandResult:
        return await self._run_command(lambda c: c.queue_programming_skills(field_id))

    async def select_display(self, display: Any) -> CommandResult:
        return await self._run_command(lambda c: c.select_display(display))

    async def move_match_to_field(self, field_id: int) -> CommandResult:
        return await self._run_command(lambda c: c.move_match_to_field(field_id))

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _run_command(
        self, command: Callable[[FieldControlClient], Awaitable[CommandResult]]
    ) -> CommandResult:
        client, supervisor = self._client, self._supervisor
        if client is None or supervisor is None:
            raise ConfigError("Engine is not configured")
        try:
            return await command(client)
        except (AuthError, ConnectError) as err:
            _LOGGER.warning("Command failed: %s", err)
            supervisor.start(force=True)
            raise

    def _attach_client(
        self, client: FieldControlClient, config: FieldControlConfig
    ) -> None:
        supervisor = ReconnectSupervisor(
            client, retry_interval=config.retry_interval, sleep=self._sleep
        )
        self._unsubscribers = [
            client.on_match_info_changed(self._match_info_callbacks.notify),
            client.on_display_selected(self._display_callbacks.notify),
            client.on_connection_state_changed(self._state_callbacks.notify),
            supervisor.on_alert(self._alert_callbacks.notify),
        ]
        self._client = client
        self._supervisor = supervisor

    async def _discard_client(self) -> None:
        client, self._client = self._client, None
        supervisor, self._supervisor = self._supervisor, None
        if supervisor is not None:
            await supervisor.close()
        if client is not None:
            await client.close()
        # Unsubscribe last so hosts still see the final state change
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
