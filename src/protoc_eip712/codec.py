"""Bridges between plain mapped values and protobuf message classes."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Type, TypeVar

from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import Message

M = TypeVar("M", bound=Message)


def _is_message(field: FieldDescriptor) -> bool:
    return field.type == FieldDescriptor.TYPE_MESSAGE


def from_partial(message_cls: Type[M], value: Mapping[str, Any]) -> M:
    """Build a message from a (possibly partial) mapping keyed by proto field name.

    Missing or None fields keep their protobuf defaults. Nested dicts and
    lists of dicts are expanded by the message constructor; an empty dict
    still marks its field as present.
    """
    fields = message_cls.DESCRIPTOR.fields_by_name
    for name in value:
        if name not in fields:
            raise ValueError(f"{message_cls.DESCRIPTOR.full_name} has no field {name!r}")
    return message_cls(**{name: item for name, item in value.items() if item is not None})


def encode_message(message_cls: Type[Message], value: Mapping[str, Any]) -> bytes:
    return from_partial(message_cls, value).SerializeToString(deterministic=True)


def message_to_record(message: Message) -> Dict[str, Any]:
    """Flatten a message into plain values keyed by proto field name.

    Unset singular message fields are left out; scalars carry their
    defaults so required-field checks accept proto3 zero values.
    """
    record: Dict[str, Any] = {}
    for field in message.DESCRIPTOR.fields:
        current = getattr(message, field.name)
        if _is_message(field) and field.message_type.GetOptions().map_entry:
            record[field.name] = dict(current)
        elif field.is_repeated:
            if _is_message(field):
                record[field.name] = [message_to_record(item) for item in current]
            else:
                record[field.name] = list(current)
        elif _is_message(field):
            if message.HasField(field.name):
                record[field.name] = message_to_record(current)
        else:
            record[field.name] = current
    return record
