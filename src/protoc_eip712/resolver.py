"""Type reference resolution and message graph traversal."""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Iterable, List, Set

from protoc_eip712.errors import MissingMessageError, UnresolvedTypeError
from protoc_eip712.models import MessageDef, TypeKind

# Proto scalar keywords and well-known types that never need graph traversal.
_SCALAR_KINDS: Dict[str, TypeKind] = {
    "string": TypeKind.STRING,
    "bytes": TypeKind.BYTES,
    "bool": TypeKind.BOOL,
    "int32": TypeKind.INT32,
    "sint32": TypeKind.INT32,
    "sfixed32": TypeKind.INT32,
    "uint32": TypeKind.UINT32,
    "fixed32": TypeKind.UINT32,
    "int64": TypeKind.INT64,
    "sint64": TypeKind.INT64,
    "sfixed64": TypeKind.INT64,
    "uint64": TypeKind.UINT64,
    "fixed64": TypeKind.UINT64,
    "float": TypeKind.FLOAT,
    "double": TypeKind.FLOAT,
    "google.protobuf.Duration": TypeKind.DURATION,
    ".google.protobuf.Duration": TypeKind.DURATION,
    "Duration": TypeKind.DURATION,
    "google.protobuf.Timestamp": TypeKind.TIMESTAMP,
    ".google.protobuf.Timestamp": TypeKind.TIMESTAMP,
    "Timestamp": TypeKind.TIMESTAMP,
}


def classify_type(type_name: str) -> TypeKind:
    """Map a declared field type token to its TypeKind."""
    return _SCALAR_KINDS.get(type_name, TypeKind.MESSAGE)


def resolve_type_name(type_name: str, package: str) -> str:
    """Qualify a type reference relative to the referencing package.

    .pkg.Foo -> pkg.Foo, pkg.Foo -> pkg.Foo, Foo -> <package>.Foo
    """
    if type_name.startswith("."):
        return type_name[1:]
    if "." in type_name:
        return type_name
    return f"{package}.{type_name}"


def lookup_message(
    messages: Dict[str, MessageDef],
    full_name: str,
    referenced_from: str = "",
) -> MessageDef:
    message_def = messages.get(full_name)
    if message_def is not None:
        return message_def
    if referenced_from:
        raise UnresolvedTypeError(
            f"Cannot resolve type {full_name} referenced from {referenced_from}"
        )
    raise MissingMessageError(f"Missing message definition for type {full_name}")


def collect_nested_types(
    request_types: Iterable[str],
    messages: Dict[str, MessageDef],
) -> List[str]:
    """Every message type reachable from the request types, sorted by name.

    Includes the request types themselves. Scalar-classified fields end the
    walk; each type is visited once, so cyclic schemas terminate.
    """
    needed: Set[str] = set()
    queue: Deque[str] = deque(request_types)
    referenced_from: Dict[str, str] = {}

    while queue:
        type_name = queue.popleft()
        if type_name in needed:
            continue
        message_def = lookup_message(messages, type_name, referenced_from.get(type_name, ""))
        needed.add(type_name)

        for field in message_def.fields:
            if classify_type(field.type_name).is_scalar:
                continue
            resolved = resolve_type_name(field.type_name, message_def.package)
            if resolved not in needed:
                referenced_from.setdefault(resolved, f"{type_name}.{field.name}")
                queue.append(resolved)

    return sorted(needed)
