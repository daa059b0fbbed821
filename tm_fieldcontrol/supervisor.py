"""Reconnect supervision for a field-set client.

The supervisor keeps a client connected for the whole event: every failed
attempt raises one alert and is retried after a fixed interval, with no
retry limit. A stream the server drops is reconnected the same way.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from .client import FieldControlClient
from .config import DEFAULT_RETRY_INTERVAL
from .errors import FieldControlError
from .observers import CallbackRegistry

_LOGGER = logging.getLogger(__name__)


class ReconnectSupervisor:
    """Retry loop around ``FieldControlClient.connect``."""

    def __init__(
        self,
        client: FieldControlClient,
        *,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self.retry_interval = retry_interval
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._attempts = 0
        self._alert_callbacks: CallbackRegistry[Exception] = CallbackRegistry("Alert")
        self._unsubscribe = client.on_connection_lost(self._on_connection_lost)

    @property
    def _tag(self) -> str:
        return f"fieldset {self._client.credentials.fieldset_id}"

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def attempts(self) -> int:
        """Connect attempts made by the current (or last) retry loop."""
        return self._attempts

    def on_alert(self, callback: Callable[[Exception], None]) -> Callable[[], None]:
        """Register callback for failed connect attempts."""
        return self._alert_callbacks.add(callback)

    def start(self, *, force: bool = True) -> asyncio.Task[None]:
        """Start the retry loop unless it is already running.

        Returns:
            The loop task; it finishes once the client is connected.
        """
        if self._closed:
            raise RuntimeError("Supervisor is closed")
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self._run(force=force))
        return self._task

    async def cancel(self) -> None:
        """Stop an in-flight retry loop."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def close(self) -> None:
        """Stop retrying for good and stop listening for lost streams."""
        self._closed = True
        self._unsubscribe()
        await self.cancel()

    def _on_connection_lost(self, _: None) -> None:
        if self._closed:
            return
        _LOGGER.info("[%s] Connection lost, reconnecting", self._tag)
        self.start(force=True)

    async def _run(self, *, force: bool) -> None:
        self._attempts = 0
        try:
            while not self._closed:
                self._attempts += 1
                try:
                    await self._client.connect(force=force)
                except FieldControlError as err:
                    _LOGGER.warning(
                        "[%s] Error connecting (attempt %d): %s. Retrying in %ss",
                        self._tag,
                        self._attempts,
                        err,
                        self.retry_interval,
                    )
                    self._alert_callbacks.notify(err)
                except Exception as err:
                    _LOGGER.exception(
                        "[%s] Unexpected error connecting: %s", self._tag, err
                    )
                    self._alert_callbacks.notify(err)
                else:
                    _LOGGER.info(
                        "[%s] Connected after %d attempt(s)", self._tag, self._attempts
                    )
                    return
                await self._sleep(self.retry_interval)
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Reconnect cancelled", self._tag)
            raise
