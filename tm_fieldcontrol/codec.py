"""Wire codec for the binary field-set protocol.

Every frame after the handshake is mangled: the first byte carries the
one-byte key XORed with a fixed constant, and each payload byte is XORed
with the key. Payloads are protobuf ``FieldSetNotice`` (inbound) and
``FieldSetRequest`` (outbound) messages, see ``schema``.
"""

from __future__ import annotations

import logging
import random
import struct
import time

from google.protobuf.message import DecodeError

from . import schema
from .errors import ProtocolError
from .models import (
    BinaryCommand,
    BinaryNotice,
    FieldActivated,
    FieldControlAction,
    FieldControlCommand,
    FieldInfo,
    FieldList,
    MatchAborted,
    MatchIdentity,
    MatchPaused,
    MatchQueued,
    MatchRound,
    MatchStarted,
    MatchStopped,
    QueueKind,
    QueueMatchCommand,
    SetActiveFieldCommand,
    TimeUpdated,
)

_LOGGER = logging.getLogger(__name__)

MANGLE_CONSTANT = 229

HANDSHAKE_SIZE = 128
HANDSHAKE_TIMESTAMP_OFFSET = 7
# Server rejects handshakes whose clock differs from its own by more than this
HANDSHAKE_CLOCK_TOLERANCE = 300


def mangle(data: bytes, key: int) -> bytes:
    """Obfuscate ``data`` with a one-byte ``key``."""
    if not 0 <= key <= 0xFF:
        raise ValueError(f"Mangle key must be a single byte, got {key}")
    return bytes([key ^ MANGLE_CONSTANT]) + bytes(b ^ key for b in data)


def unmangle(frame: bytes) -> bytes:
    """Recover the plaintext of a mangled frame."""
    if not frame:
        raise ProtocolError("Empty frame")
    key = frame[0] ^ MANGLE_CONSTANT
    return bytes(b ^ key for b in frame[1:])


def random_key() -> int:
    return random.randrange(256)


def build_handshake(now: float | None = None) -> bytes:
    """Build the 128-byte handshake sent right after the stream opens.

    All bytes are zero except the little-endian UNIX timestamp at offset 7.
    """
    timestamp = int(time.time() if now is None else now)
    frame = bytearray(HANDSHAKE_SIZE)
    struct.pack_into("<I", frame, HANDSHAKE_TIMESTAMP_OFFSET, timestamp & 0xFFFFFFFF)
    return bytes(frame)


def read_handshake_timestamp(frame: bytes) -> int:
    """Extract the timestamp from a handshake frame."""
    if len(frame) != HANDSHAKE_SIZE:
        raise ProtocolError(f"Handshake must be {HANDSHAKE_SIZE} bytes")
    (timestamp,) = struct.unpack_from("<I", frame, HANDSHAKE_TIMESTAMP_OFFSET)
    return timestamp


def _match_identity(match: object) -> MatchIdentity:
    round_code = match.round  # type: ignore[attr-defined]
    try:
        round_ = MatchRound(round_code)
    except ValueError:
        # Named "OTHER" like any round without its own naming rule
        _LOGGER.debug("Unknown match round code %d", round_code)
        round_ = MatchRound.NONE
    return MatchIdentity(
        round=round_,
        instance=match.instance,  # type: ignore[attr-defined]
        match=match.match,  # type: ignore[attr-defined]
    )


def decode_notice(frame: bytes) -> BinaryNotice:
    """Unmangle and decode one inbound notice frame.

    Raises:
        ProtocolError: If the frame is empty, not a valid message, or carries
            a notice id this client does not know.
    """
    payload = unmangle(frame)
    message = schema.FieldSetNotice()
    try:
        message.ParseFromString(payload)
    except DecodeError as err:
        raise ProtocolError(f"Undecodable notice: {err}") from err

    notice_id = message.id
    if notice_id == schema.NOTICE_MATCH_QUEUED:
        return MatchQueued(
            match=_match_identity(message.match), field_id=message.field_id
        )
    if notice_id == schema.NOTICE_MATCH_STARTED:
        return MatchStarted(field_id=message.field_id)
    if notice_id == schema.NOTICE_MATCH_STOPPED:
        return MatchStopped(field_id=message.field_id)
    if notice_id == schema.NOTICE_MATCH_ABORTED:
        return MatchAborted(field_id=message.field_id)
    if notice_id == schema.NOTICE_MATCH_PAUSED:
        return MatchPaused(field_id=message.field_id)
    if notice_id == schema.NOTICE_TIME_UPDATED:
        return TimeUpdated(remaining=message.remaining)
    if notice_id == schema.NOTICE_FIELD_LIST:
        return FieldList(
            fields=tuple(FieldInfo(id=f.id, name=f.name) for f in message.fields)
        )
    if notice_id == schema.NOTICE_FIELD_ACTIVATED:
        return FieldActivated(field_id=message.field_id)
    raise ProtocolError(f"Unknown notice id: {notice_id}")


def encode_notice(notice: BinaryNotice, key: int | None = None) -> bytes:
    """Encode a notice the way the server frames it (used by test servers)."""
    message = schema.FieldSetNotice()
    if isinstance(notice, MatchQueued):
        message.id = schema.NOTICE_MATCH_QUEUED
        message.field_id = notice.field_id
        message.match.round = int(notice.match.round)
        message.match.instance = notice.match.instance
        message.match.match = notice.match.match
    elif isinstance(notice, MatchStarted):
        message.id = schema.NOTICE_MATCH_STARTED
        message.field_id = notice.field_id
    elif isinstance(notice, MatchStopped):
        message.id = schema.NOTICE_MATCH_STOPPED
        message.field_id = notice.field_id
    elif isinstance(notice, MatchAborted):
        message.id = schema.NOTICE_MATCH_ABORTED
        message.field_id = notice.field_id
    elif isinstance(notice, MatchPaused):
        message.id = schema.NOTICE_MATCH_PAUSED
        message.field_id = notice.field_id
    elif isinstance(notice, TimeUpdated):
        message.id = schema.NOTICE_TIME_UPDATED
        message.remaining = notice.remaining
    elif isinstance(notice, FieldList):
        message.id = schema.NOTICE_FIELD_LIST
        for info in notice.fields:
            message.fields.add(id=info.id, name=info.name)
    elif isinstance(notice, FieldActivated):
        message.id = schema.NOTICE_FIELD_ACTIVATED
        message.field_id = notice.field_id
    else:
        raise TypeError(f"Not a binary notice: {notice!r}")
    return mangle(message.SerializeToString(), random_key() if key is None else key)


def encode_command(command: BinaryCommand, key: int | None = None) -> bytes:
    """Encode and mangle one outbound field-set request."""
    request = schema.FieldSetRequest()
    if isinstance(command, FieldControlCommand):
        request.field_control.value = int(command.action)
        request.field_control.field_id = command.field_id
    elif isinstance(command, QueueMatchCommand):
        request.queue_match.value = int(command.kind)
    elif isinstance(command, SetActiveFieldCommand):
        request.set_active_field.field_id = command.field_id
        # proto3 drops zero scalars; mark the variant as present regardless
        request.set_active_field.SetInParent()
    else:
        raise TypeError(f"Not a binary command: {command!r}")
    return mangle(request.SerializeToString(), random_key() if key is None else key)


def decode_command(frame: bytes) -> BinaryCommand:
    """Decode an outbound request frame (used by test servers and logging)."""
    payload = unmangle(frame)
    request = schema.FieldSetRequest()
    try:
        request.ParseFromString(payload)
    except DecodeError as err:
        raise ProtocolError(f"Undecodable request: {err}") from err

    variant = request.WhichOneof("request")
    try:
        if variant == "field_control":
            return FieldControlCommand(
                action=FieldControlAction(request.field_control.value),
                field_id=request.field_control.field_id,
            )
        if variant == "queue_match":
            return QueueMatchCommand(kind=QueueKind(request.queue_match.value))
    except ValueError as err:
        raise ProtocolError(f"Unknown {variant} value: {err}") from err
    if variant == "set_active_field":
        return SetActiveFieldCommand(field_id=request.set_active_field.field_id)
    raise ProtocolError(f"Unknown request variant: {variant}")
