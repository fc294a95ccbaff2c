from __future__ import annotations

import json
from typing import Dict, List, Optional, Set

from protoc_eip712.config import GeneratorConfig
from protoc_eip712.errors import NestedTypeCollisionError
from protoc_eip712.generator.common import GENERATED_HEADER, get_template_env
from protoc_eip712.models import (
    FieldDef,
    MessageDef,
    ProtoCorpus,
    ResolvedField,
    TypedDataEntry,
    TypeKind,
)
from protoc_eip712.naming import infer_module_name, snake_to_camel
from protoc_eip712.resolver import classify_type, lookup_message, resolve_type_name


def sort_fields(fields: List[ResolvedField]) -> List[ResolvedField]:
    """Descending by field name. The order is part of the signed structure."""
    return sorted(fields, key=lambda f: f.name, reverse=True)


def _describe(fields: List[ResolvedField]) -> str:
    return json.dumps([{"name": f.name, "type": f.type} for f in fields])


class _EntryBuilder:
    """Walks one request type, collecting nested shapes and duration fields."""

    def __init__(self, messages: Dict[str, MessageDef]):
        self._messages = messages
        self.nested_types: Dict[str, List[ResolvedField]] = {}
        self.duration_fields: Set[str] = set()

    def build_fields(self, message_def: MessageDef, stack: Set[str]) -> List[ResolvedField]:
        fields = [
            ResolvedField(
                name=snake_to_camel(f.name),
                type=self._map_field_type(f, message_def, stack),
            )
            for f in message_def.fields
        ]
        return sort_fields(fields)

    def _map_field_type(self, field: FieldDef, owner: MessageDef, stack: Set[str]) -> str:
        suffix = "[]" if field.is_repeated else ""
        camel_name = snake_to_camel(field.name)
        kind = classify_type(field.type_name)

        if kind is TypeKind.DURATION:
            self.duration_fields.add(camel_name)
            return "string" + suffix
        if kind.is_scalar:
            return kind.signing_type + suffix

        resolved = resolve_type_name(field.type_name, owner.package)
        nested_def = lookup_message(
            self._messages, resolved, referenced_from=f"{owner.full_name}.{field.name}"
        )

        # Already expanding this type further up: leave a placeholder.
        if resolved in stack:
            return "NESTED" + suffix

        stack.add(resolved)
        nested_fields = self.build_fields(nested_def, stack)
        stack.discard(resolved)

        existing = self.nested_types.get(camel_name)
        if existing is None:
            self.nested_types[camel_name] = nested_fields
        elif existing != nested_fields:
            raise NestedTypeCollisionError(camel_name, _describe(existing), _describe(nested_fields))

        return "NESTED" + suffix


def build_entry(
    request_type: str,
    corpus: ProtoCorpus,
    config: Optional[GeneratorConfig] = None,
) -> TypedDataEntry:
    config = config or GeneratorConfig()
    message_def = lookup_message(corpus.messages, request_type)

    builder = _EntryBuilder(corpus.messages)
    value_fields = builder.build_fields(message_def, {request_type})

    type_url = f"/{request_type}"
    amino_type = corpus.amino_names.get(request_type) or (
        f"{infer_module_name(message_def.package, config.root_namespace)}/{message_def.name}"
    )
    entry = TypedDataEntry(
        type_url=type_url,
        amino_type=amino_type,
        eip712_type_name=f"Type{message_def.name}",
        value_fields=value_fields,
        nested_types=dict(sorted(builder.nested_types.items())),
        duration_fields=sorted(builder.duration_fields),
    )

    overrides = config.registry_overrides.get(type_url, {})
    if "legacy_amino_registered" in overrides:
        entry.legacy_amino_registered = bool(overrides["legacy_amino_registered"])
    return entry


def build_registry(
    corpus: ProtoCorpus,
    config: Optional[GeneratorConfig] = None,
) -> List[TypedDataEntry]:
    """One TypedDataEntry per request type, sorted by type URL."""
    entries = [build_entry(request_type, corpus, config) for request_type in corpus.request_types]
    return sorted(entries, key=lambda e: e.type_url)


def registry_as_dict(entries: List[TypedDataEntry]) -> Dict[str, Dict[str, object]]:
    """Plain-data view of the registry, the same shape the generated module holds."""
    registry: Dict[str, Dict[str, object]] = {}
    for entry in entries:
        data: Dict[str, object] = {
            "amino_type": entry.amino_type,
            "eip712_type_name": entry.eip712_type_name,
            "value_fields": [{"name": f.name, "type": f.type} for f in entry.value_fields],
        }
        if entry.nested_types:
            data["nested_types"] = {
                key: [{"name": f.name, "type": f.type} for f in fields]
                for key, fields in entry.nested_types.items()
            }
        if entry.duration_fields:
            data["duration_fields"] = list(entry.duration_fields)
        if entry.legacy_amino_registered is not None:
            data["legacy_amino_registered"] = entry.legacy_amino_registered
        registry[entry.type_url] = data
    return registry


def render_registry(entries: List[TypedDataEntry]) -> str:
    """Render the registry module source."""
    env = get_template_env()
    template = env.get_template("registry.py.j2")
    return template.render(header=GENERATED_HEADER, entries=entries)
