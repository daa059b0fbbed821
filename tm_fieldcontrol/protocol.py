"""Legacy JSON protocol helpers for Tournament Manager field sets.

Each websocket frame carries one JSON object. Commands are keyed by an
``action`` field, notices by a ``type`` field; there is no envelope.
"""

from __future__ import annotations

from typing import Any

from .errors import ProtocolError
from .models import (
    LegacyDisplayUpdated,
    LegacyMatchAssigned,
    LegacyMatchPaused,
    LegacyMatchStarted,
    LegacyMatchStopped,
    LegacyNotice,
    LegacyTimeUpdated,
)

def build_start(field_id: int) -> dict[str, Any]:
    return {"action": "start", "fieldId": field_id}


def build_end_early(field_id: int) -> dict[str, Any]:
    return {"action": "endEarly", "fieldId": field_id}


def build_reset_timer(field_id: int) -> dict[str, Any]:
    return {"action": "reset", "fieldId": field_id}


def build_queue_next_match() -> dict[str, Any]:
    return {"action": "queueNextMatch"}


def build_queue_prev_match() -> dict[str, Any]:
    return {"action": "queuePrevMatch"}


def build_queue_driving() -> dict[str, Any]:
    return {"action": "queueDriving"}


def build_queue_programming() -> dict[str, Any]:
    return {"action": "queueProgramming"}


def build_set_screen(screen: int | str) -> dict[str, Any]:
    """Build an audience display selection command.

    Raises:
        ValueError: If ``screen`` is not an integer display number.
    """
    return {"action": "setScreen", "screen": int(screen)}


def _optional_int(message: dict[str, Any], key: str) -> int | None:
    value = message.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ProtocolError(f"{key} must be an integer, got bool")
    try:
        return int(value)
    except (TypeError, ValueError) as err:
        raise ProtocolError(f"{key} must be an integer, got {value!r}") from err


def parse_notice(message: dict[str, Any]) -> LegacyNotice:
    """Map a decoded JSON notice onto the legacy notice types.

    Raises:
        ProtocolError: If the ``type`` is missing or unknown, or a field has
            the wrong shape.
    """
    msg_type = message.get("type")
    if msg_type is None:
        raise ProtocolError("Notice missing 'type'")

    if msg_type == "fieldMatchAssigned":
        name = message.get("name")
        return LegacyMatchAssigned(
            name=None if name is None else str(name),
            field_id=_optional_int(message, "fieldId"),
        )
    if msg_type == "matchStarted":
        return LegacyMatchStarted(field_id=_optional_int(message, "fieldId"))
    if msg_type in ("matchStopped", "matchAborted"):
        return LegacyMatchStopped(
            field_id=_optional_int(message, "fieldId"),
            aborted=msg_type == "matchAborted",
        )
    if msg_type == "matchPaused":
        return LegacyMatchPaused(field_id=_optional_int(message, "fieldId"))
    if msg_type == "timeUpdated":
        state = message.get("state")
        return LegacyTimeUpdated(
            state=None if state is None else str(state),
            remaining=_optional_int(message, "remaining") or 0,
        )
    if msg_type == "displayUpdated":
        return LegacyDisplayUpdated(display=message.get("display"))
    raise ProtocolError(f"Unknown notice type: {msg_type}")
