"""Protocol Buffer schema for binary field-set messages.

The schema is declared in code and registered in a private descriptor pool,
so no generated ``_pb2`` module is needed. Equivalent ``.proto`` source:

    syntax = "proto3";
    package tm_fieldcontrol;

    message MatchTuple { Round round = 1; uint32 instance = 2; uint32 match = 3; }
    message Field { uint32 id = 1; string name = 2; }
    message FieldSetNotice {
      NoticeId id = 1;
      uint32 field_id = 2;
      MatchTuple match = 3;
      uint32 remaining = 4;
      repeated Field fields = 5;
    }
    message FieldControl { FieldControlValue value = 1; uint32 field_id = 2; }
    message QueueMatch { QueueMatchValue value = 1; }
    message SetActiveField { uint32 field_id = 1; }
    message FieldSetRequest {
      oneof request {
        FieldControl field_control = 1;
        QueueMatch queue_match = 2;
        SetActiveField set_active_field = 3;
      }
    }
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from .models import FieldControlAction, MatchRound, QueueKind

PACKAGE = "tm_fieldcontrol"

_FDP = descriptor_pb2.FieldDescriptorProto

NOTICE_IDS: dict[str, int] = {
    "NOTICE_UNKNOWN": 0,
    "NOTICE_MATCH_QUEUED": 1,
    "NOTICE_MATCH_STARTED": 2,
    "NOTICE_MATCH_STOPPED": 3,
    "NOTICE_MATCH_ABORTED": 4,
    "NOTICE_MATCH_PAUSED": 5,
    "NOTICE_TIME_UPDATED": 6,
    "NOTICE_FIELD_LIST": 7,
    "NOTICE_FIELD_ACTIVATED": 8,
}

NOTICE_MATCH_QUEUED = NOTICE_IDS["NOTICE_MATCH_QUEUED"]
NOTICE_MATCH_STARTED = NOTICE_IDS["NOTICE_MATCH_STARTED"]
NOTICE_MATCH_STOPPED = NOTICE_IDS["NOTICE_MATCH_STOPPED"]
NOTICE_MATCH_ABORTED = NOTICE_IDS["NOTICE_MATCH_ABORTED"]
NOTICE_MATCH_PAUSED = NOTICE_IDS["NOTICE_MATCH_PAUSED"]
NOTICE_TIME_UPDATED = NOTICE_IDS["NOTICE_TIME_UPDATED"]
NOTICE_FIELD_LIST = NOTICE_IDS["NOTICE_FIELD_LIST"]
NOTICE_FIELD_ACTIVATED = NOTICE_IDS["NOTICE_FIELD_ACTIVATED"]


def _add_enum(
    file_proto: descriptor_pb2.FileDescriptorProto,
    name: str,
    values: dict[str, int],
) -> None:
    enum = file_proto.enum_type.add(name=name)
    for value_name, number in values.items():
        enum.value.add(name=value_name, number=number)


def _add_field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    *,
    type_name: str | None = None,
    repeated: bool = False,
    oneof_index: int | None = None,
) -> None:
    field = message.field.add(
        name=name,
        number=number,
        type=field_type,
        label=_FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL,
    )
    if type_name is not None:
        field.type_name = f".{PACKAGE}.{type_name}"
    if oneof_index is not None:
        field.oneof_index = oneof_index


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    """Declare the field-set schema as a FileDescriptorProto."""
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=f"{PACKAGE}/fieldset.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    _add_enum(file_proto, "NoticeId", NOTICE_IDS)
    # Enum values share the package scope, so each set carries its own prefix
    _add_enum(file_proto, "Round", {f"ROUND_{r.name}": r.value for r in MatchRound})
    _add_enum(
        file_proto,
        "FieldControlValue",
        {"FIELD_CONTROL_NONE": 0}
        | {f"FIELD_CONTROL_{a.name}": a.value for a in FieldControlAction},
    )
    _add_enum(
        file_proto,
        "QueueMatchValue",
        {"QUEUE_NONE": 0} | {f"QUEUE_{k.name}": k.value for k in QueueKind},
    )

    match_tuple = file_proto.message_type.add(name="MatchTuple")
    _add_field(match_tuple, "round", 1, _FDP.TYPE_ENUM, type_name="Round")
    _add_field(match_tuple, "instance", 2, _FDP.TYPE_UINT32)
    _add_field(match_tuple, "match", 3, _FDP.TYPE_UINT32)

    field_msg = file_proto.message_type.add(name="Field")
    _add_field(field_msg, "id", 1, _FDP.TYPE_UINT32)
    _add_field(field_msg, "name", 2, _FDP.TYPE_STRING)

    notice = file_proto.message_type.add(name="FieldSetNotice")
    _add_field(notice, "id", 1, _FDP.TYPE_ENUM, type_name="NoticeId")
    _add_field(notice, "field_id", 2, _FDP.TYPE_UINT32)
    _add_field(notice, "match", 3, _FDP.TYPE_MESSAGE, type_name="MatchTuple")
    _add_field(notice, "remaining", 4, _FDP.TYPE_UINT32)
    _add_field(
        notice, "fields", 5, _FDP.TYPE_MESSAGE, type_name="Field", repeated=True
    )

    field_control = file_proto.message_type.add(name="FieldControl")
    _add_field(
        field_control, "value", 1, _FDP.TYPE_ENUM, type_name="FieldControlValue"
    )
    _add_field(field_control, "field_id", 2, _FDP.TYPE_UINT32)

    queue_match = file_proto.message_type.add(name="QueueMatch")
    _add_field(queue_match, "value", 1, _FDP.TYPE_ENUM, type_name="QueueMatchValue")

    set_active = file_proto.message_type.add(name="SetActiveField")
    _add_field(set_active, "field_id", 1, _FDP.TYPE_UINT32)

    request = file_proto.message_type.add(name="FieldSetRequest")
    request.oneof_decl.add(name="request")
    _add_field(
        request,
        "field_control",
        1,
        _FDP.TYPE_MESSAGE,
        type_name="FieldControl",
        oneof_index=0,
    )
    _add_field(
        request,
        "queue_match",
        2,
        _FDP.TYPE_MESSAGE,
        type_name="QueueMatch",
        oneof_index=0,
    )
    _add_field(
        request,
        "set_active_field",
        3,
        _FDP.TYPE_MESSAGE,
        type_name="SetActiveField",
        oneof_index=0,
    )

    return file_proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str) -> type:
    return message_factory.GetMessageClass(
        _POOL.FindMessageTypeByName(f"{PACKAGE}.{name}")
    )


FieldSetNotice = _message_class("FieldSetNotice")
FieldSetRequest = _message_class("FieldSetRequest")
MatchTuple = _message_class("MatchTuple")
Field = _message_class("Field")
