"""Helpers shared by the three artifact generators."""

from __future__ import annotations

import json
import os
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from jinja2 import Environment, FileSystemLoader

from protoc_eip712.models import MessageDef
from protoc_eip712.naming import to_pascal
from protoc_eip712.resolver import lookup_message

GENERATED_HEADER = "# Code generated by protoc-eip712. DO NOT EDIT."


def py_literal(value: Any) -> str:
    """Render a JSON-like value as Python source."""
    if value is None:
        return "None"
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(py_literal(v) for v in value) + "]"
    if isinstance(value, dict):
        items = ", ".join(f"{py_literal(k)}: {py_literal(v)}" for k, v in value.items())
        return "{" + items + "}"
    return repr(value)


def get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["py"] = py_literal
    return env


def count_message_names(
    request_types: Iterable[str],
    messages: Dict[str, MessageDef],
) -> Counter:
    """How many request types share each local message name."""
    counts: Counter = Counter()
    for request_type in request_types:
        counts[lookup_message(messages, request_type).name] += 1
    return counts


def import_alias(message_def: MessageDef, name_counts: Counter) -> str:
    """Local name, or Name + PascalCase(package) when the name is ambiguous."""
    if name_counts.get(message_def.name, 0) <= 1:
        return message_def.name
    return f"{message_def.name}{to_pascal(message_def.package)}"


def pb2_module_for(message_def: MessageDef, proto_base: str, pb2_package: str = "") -> str:
    """Python module protoc generates for the message's .proto file.

    <proto_base>/ault/license/v1/tx.proto -> ault.license.v1.tx_pb2
    """
    source = message_def.source_file
    if proto_base:
        source = os.path.relpath(source, proto_base)
    stem = source[: -len(".proto")] if source.endswith(".proto") else source
    module = stem.replace("\\", "/").replace("-", "_").replace("/", ".") + "_pb2"
    if pb2_package:
        return f"{pb2_package}.{module}"
    return module


def build_imports(
    request_types: Iterable[str],
    messages: Dict[str, MessageDef],
    proto_base: str,
    pb2_package: str,
    name_counts: Counter,
) -> List[Tuple[str, List[str]]]:
    """Sorted `from <module> import <specifiers>` pairs for the request types."""
    imports: Dict[str, Dict[str, str]] = {}
    for request_type in request_types:
        message_def = lookup_message(messages, request_type)
        module = pb2_module_for(message_def, proto_base, pb2_package)
        imports.setdefault(module, {})[message_def.name] = import_alias(message_def, name_counts)

    result: List[Tuple[str, List[str]]] = []
    for module in sorted(imports):
        names = imports[module]
        specifiers = [
            original if original == alias else f"{original} as {alias}"
            for original, alias in sorted(names.items(), key=lambda item: item[1])
        ]
        result.append((module, specifiers))
    return result
