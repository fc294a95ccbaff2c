from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Generic, List, Optional, Tuple, TypeVar


class TypeKind(Enum):
    STRING = "string"
    BYTES = "bytes"
    BOOL = "bool"
    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT = "float"
    DURATION = "duration"
    TIMESTAMP = "timestamp"
    MESSAGE = "message"

    @property
    def is_scalar(self) -> bool:
        return self is not TypeKind.MESSAGE

    @property
    def signing_type(self) -> str:
        """Type name used in the typed-data descriptor.

        Integers, bytes, floats, timestamps and durations are all signed as
        their textual form.
        """
        if self is TypeKind.BOOL:
            return "bool"
        if self is TypeKind.MESSAGE:
            return "NESTED"
        return "string"


@dataclass(frozen=True)
class FieldDef:
    name: str
    type_name: str
    is_repeated: bool = False


@dataclass(frozen=True)
class MessageDef:
    name: str
    package: str
    fields: Tuple[FieldDef, ...] = ()
    source_file: str = ""
    amino_name: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.package}.{self.name}"


@dataclass(frozen=True)
class ParsedProtoFile:
    """Structural parse result of a single .proto file."""

    package: str
    source_file: str
    messages: Tuple[MessageDef, ...] = ()
    rpc_request_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProtoCorpus:
    """Everything the generators need, built once by the loader."""

    messages: Dict[str, MessageDef]
    amino_names: Dict[str, str]
    request_types: Tuple[str, ...]
    proto_base: str = ""


@dataclass(frozen=True)
class ResolvedField:
    name: str
    type: str


@dataclass
class TypedDataEntry:
    type_url: str
    amino_type: str
    eip712_type_name: str
    value_fields: List[ResolvedField] = field(default_factory=list)
    nested_types: Dict[str, List[ResolvedField]] = field(default_factory=dict)
    duration_fields: List[str] = field(default_factory=list)
    legacy_amino_registered: Optional[bool] = None


TValue = TypeVar("TValue")
TTypeUrl = TypeVar("TTypeUrl", bound=str)


@dataclass(frozen=True)
class Eip712Msg(Generic[TValue, TTypeUrl]):
    """A payload ready for typed-data signing: type URL plus raw value."""

    type_url: TTypeUrl
    value: TValue
