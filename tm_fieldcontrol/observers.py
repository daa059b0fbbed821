"""Observer registration shared by clients, the supervisor and the engine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CallbackRegistry(Generic[T]):
    """Ordered set of callbacks that all receive the same event value."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._callbacks: list[Callable[[T], None]] = []

    def add(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def notify(self, value: T) -> None:
        """Deliver ``value`` to every callback; a failing callback is logged."""
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception as err:
                _LOGGER.exception("%s callback error: %s", self._name, err)

    def __len__(self) -> int:
        return len(self._callbacks)
