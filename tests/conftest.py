import importlib
import importlib.util
import re
import sys
from pathlib import Path
from typing import Dict, Sequence, Tuple

import pytest
from google.protobuf import descriptor_pb2, descriptor_pool, duration_pb2, message_factory

F = descriptor_pb2.FieldDescriptorProto

# (field name, field type, repeated, message type name or "")
FieldSpec = Tuple[str, int, bool, str]

DELEGATE_FILE = {
    "name": "ault/license/v1/tx.proto",
    "package": "ault.license.v1",
    "messages": {
        "MsgDelegate": [
            ("owner", F.TYPE_STRING, False, ""),
            ("operator", F.TYPE_STRING, False, ""),
            ("license_ids", F.TYPE_UINT64, True, ""),
        ],
        "Coin": [
            ("denom", F.TYPE_STRING, False, ""),
            ("amount", F.TYPE_STRING, False, ""),
        ],
        "Params": [
            ("enabled", F.TYPE_BOOL, False, ""),
            ("max_licenses", F.TYPE_UINT32, False, ""),
            ("cooldown", F.TYPE_MESSAGE, False, ".google.protobuf.Duration"),
        ],
        "MsgUpdateParams": [
            ("authority", F.TYPE_STRING, False, ""),
            ("params", F.TYPE_MESSAGE, False, ".ault.license.v1.Params"),
        ],
        "MsgSend": [
            ("from_address", F.TYPE_STRING, False, ""),
            ("amount", F.TYPE_MESSAGE, True, ".ault.license.v1.Coin"),
            ("memo_hash", F.TYPE_BYTES, False, ""),
        ],
    },
}

DELEGATE_PROTO = """\
syntax = "proto3";

package ault.license.v1;

import "google/protobuf/duration.proto";

service Msg {
  rpc Delegate(MsgDelegate) returns (MsgDelegateResponse);
  rpc UpdateParams(MsgUpdateParams) returns (MsgUpdateParamsResponse);
  rpc Send(MsgSend) returns (MsgSendResponse);
}

message MsgDelegate {
  string owner = 1;
  string operator = 2;
  repeated uint64 license_ids = 3;
}

message MsgDelegateResponse {}

message Coin {
  string denom = 1;
  string amount = 2;
}

message Params {
  bool enabled = 1;
  uint32 max_licenses = 2;
  google.protobuf.Duration cooldown = 3;
}

message MsgUpdateParams {
  string authority = 1;
  Params params = 2;
}

message MsgUpdateParamsResponse {}

message MsgSend {
  string from_address = 1;
  repeated Coin amount = 2;
  bytes memo_hash = 3;
}

message MsgSendResponse {}
"""


def build_file_descriptor(
    name: str,
    package: str,
    messages: Dict[str, Sequence[FieldSpec]],
) -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax="proto3")
    file_proto.dependency.append("google/protobuf/duration.proto")
    for message_name, fields in messages.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for number, (field_name, field_type, repeated, type_name) in enumerate(fields, start=1):
            field_proto = message_proto.field.add(
                name=field_name,
                number=number,
                type=field_type,
                label=F.LABEL_REPEATED if repeated else F.LABEL_OPTIONAL,
            )
            if type_name:
                field_proto.type_name = type_name
    return file_proto


def message_classes(file_spec: dict) -> Dict[str, type]:
    """Build real protobuf message classes in a private descriptor pool."""
    file_proto = build_file_descriptor(file_spec["name"], file_spec["package"], file_spec["messages"])
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(duration_pb2.DESCRIPTOR.serialized_pb)
    pool.AddSerializedFile(file_proto.SerializeToString())
    return {
        name: message_factory.GetMessageClass(
            pool.FindMessageTypeByName(f"{file_spec['package']}.{name}")
        )
        for name in file_spec["messages"]
    }


_PB2_MODULE = """\
from google.protobuf import descriptor_pool, duration_pb2, message_factory

_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(duration_pb2.DESCRIPTOR.serialized_pb)
_pool.AddSerializedFile({serialized!r})

{assignments}
"""


def write_pb2_module(root: Path, pb2_package: str, file_spec: dict) -> None:
    """Write a *_pb2 module for file_spec the way protoc lays it out on disk."""
    file_proto = build_file_descriptor(file_spec["name"], file_spec["package"], file_spec["messages"])
    assignments = "\n".join(
        f"{name} = message_factory.GetMessageClass("
        f"_pool.FindMessageTypeByName({file_spec['package'] + '.' + name!r}))"
        for name in file_spec["messages"]
    )
    module_path = root / pb2_package / file_spec["name"].replace(".proto", "_pb2.py")
    current = root / pb2_package
    current.mkdir(parents=True, exist_ok=True)
    (current / "__init__.py").write_text("")
    for part in Path(file_spec["name"]).parent.parts:
        current = current / part
        current.mkdir(exist_ok=True)
        (current / "__init__.py").write_text("")
    module_path.write_text(
        _PB2_MODULE.format(serialized=file_proto.SerializeToString(), assignments=assignments)
    )


def write_proto_tree(root: Path, files: Dict[str, str]) -> Path:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def delegate_classes():
    return message_classes(DELEGATE_FILE)


@pytest.fixture
def pb2_package(request, tmp_path, monkeypatch) -> str:
    """A unique importable package name whose modules live under tmp_path/pb2."""
    name = "pb2_" + re.sub(r"\W", "_", request.node.name)
    pb2_root = tmp_path / "pb2"
    pb2_root.mkdir()
    monkeypatch.syspath_prepend(str(pb2_root))
    yield name
    for module_name in [m for m in sys.modules if m == name or m.startswith(name + ".")]:
        del sys.modules[module_name]


def load_module(path: Path, name: str):
    """Import a generated source file under an explicit module name."""
    importlib.invalidate_caches()
    spec = importlib.util.spec_from_file_location(name, str(path))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
