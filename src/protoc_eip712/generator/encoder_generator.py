"""Generate value-coercion mapping functions and the MSG_ENCODERS table.

For each message reachable from a request type a ``map_<full_name>``
function is emitted. It turns an untyped record into a dict keyed by proto
field name whose values already have the exact Python types the protobuf
message accepts. Each request type then gets an encoder composing its
mapping function with ``encode_message``.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

from protoc_eip712.config import GeneratorConfig
from protoc_eip712.generator.common import (
    GENERATED_HEADER,
    build_imports,
    count_message_names,
    get_template_env,
    import_alias,
    py_literal,
)
from protoc_eip712.models import FieldDef, MessageDef, ProtoCorpus, TypeKind
from protoc_eip712.naming import snake_to_camel, to_identifier
from protoc_eip712.resolver import (
    classify_type,
    collect_nested_types,
    lookup_message,
    resolve_type_name,
)

# TypeKind -> (required rule, default-filling rule) in protoc_eip712.coercion
SCALAR_RULES: Dict[TypeKind, Tuple[str, str]] = {
    TypeKind.STRING: ("require_string", "require_string_or_default"),
    TypeKind.BYTES: ("require_bytes", "require_bytes_or_default"),
    TypeKind.BOOL: ("require_bool", "require_bool_or_default"),
    TypeKind.INT32: ("require_int32_like", "require_int32_or_default"),
    TypeKind.UINT32: ("require_uint32_like", "require_uint32_or_default"),
    TypeKind.INT64: ("require_int64_like", "require_int64_or_default"),
    TypeKind.UINT64: ("require_uint64_like", "require_uint64_or_default"),
    TypeKind.FLOAT: ("require_number_like", "require_number_or_default"),
    TypeKind.DURATION: ("require_duration", "require_duration_or_default"),
    TypeKind.TIMESTAMP: ("require_timestamp", "require_timestamp_or_default"),
}

_ALWAYS_IMPORTED = ("as_record", "get_field")


def map_function_name(full_name: str) -> str:
    return f"map_{to_identifier(full_name)}"


class EncoderGenerator:
    def __init__(self, corpus: ProtoCorpus, config: Optional[GeneratorConfig] = None):
        self._corpus = corpus
        self._config = config or GeneratorConfig()
        self._helpers: Set[str] = set(_ALWAYS_IMPORTED)
        self._closures: Dict[str, Set[str]] = {}

    @property
    def helpers(self) -> List[str]:
        return sorted(self._helpers)

    def _use(self, helper: str) -> str:
        self._helpers.add(helper)
        return helper

    def is_recursive(self, nested_type: str, owner: str) -> bool:
        """True when nested_type leads back to owner, so the field must be optional."""
        closure = self._closures.get(nested_type)
        if closure is None:
            closure = set(collect_nested_types([nested_type], self._corpus.messages))
            self._closures[nested_type] = closure
        return owner in closure

    def needs_defaults(self, message_def: MessageDef, camel_name: str) -> bool:
        return message_def.name in self._config.params_message_names or self._config.has_field_default(
            message_def.full_name, camel_name
        )

    def field_expr(self, field: FieldDef, message_def: MessageDef) -> str:
        """Python expression computing one entry of the mapped dict."""
        camel_name = snake_to_camel(field.name)
        raw = f"get_field(record, {py_literal(camel_name)}, {py_literal(field.name)})"
        label = f'f"{{prefix}}{camel_name}"'
        with_defaults = self.needs_defaults(message_def, camel_name)
        override = self._config.field_default(message_def.full_name, camel_name)
        has_override = self._config.has_field_default(message_def.full_name, camel_name)

        kind = classify_type(field.type_name)
        if kind.is_scalar:
            required_rule, default_rule = SCALAR_RULES[kind]
            if field.is_repeated:
                if with_defaults:
                    args = f"{raw}, {label}, {self._use(required_rule)}"
                    if has_override:
                        args += f", {py_literal(override)}"
                    return f"{self._use('require_array_or_default')}({args})"
                return f"{self._use('require_array')}({raw}, {label}, {self._use(required_rule)})"
            if with_defaults:
                args = f"{raw}, {label}"
                if has_override:
                    args += f", {py_literal(override)}"
                return f"{self._use(default_rule)}({args})"
            return f"{self._use(required_rule)}({raw}, {label})"

        resolved = resolve_type_name(field.type_name, message_def.package)
        lookup_message(
            self._corpus.messages, resolved, referenced_from=f"{message_def.full_name}.{field.name}"
        )
        nested_fn = map_function_name(resolved)
        recursive = self.is_recursive(resolved, message_def.full_name)
        if field.is_repeated:
            optional = with_defaults or recursive
            records_rule = "require_record_array_or_default" if optional else "require_record_array"
            return (
                f'[{nested_fn}(item, f"{{prefix}}{camel_name}[{{index}}]") '
                f"for index, item in enumerate({self._use(records_rule)}({raw}, {label}))]"
            )
        if recursive:
            return f"{self._use('map_optional_record')}({raw}, {label}, {nested_fn})"
        return f"{nested_fn}(as_record({raw}), {label})"

    def map_functions(self) -> List[Dict[str, object]]:
        functions: List[Dict[str, object]] = []
        for full_name in collect_nested_types(self._corpus.request_types, self._corpus.messages):
            message_def = lookup_message(self._corpus.messages, full_name)
            functions.append({
                "name": map_function_name(full_name),
                "full_name": full_name,
                "fields": [
                    {"key": f.name, "expr": self.field_expr(f, message_def)}
                    for f in message_def.fields
                ],
            })
        return functions

    def encoder_entries(self) -> List[Dict[str, str]]:
        name_counts = count_message_names(self._corpus.request_types, self._corpus.messages)
        entries: List[Dict[str, str]] = []
        for request_type in sorted(self._corpus.request_types):
            message_def = lookup_message(self._corpus.messages, request_type)
            entries.append({
                "type_url": f"/{request_type}",
                "message_name": import_alias(message_def, name_counts),
                "map_fn": map_function_name(request_type),
            })
        return entries

    def render(self) -> str:
        functions = self.map_functions()
        entries = self.encoder_entries()
        name_counts = count_message_names(self._corpus.request_types, self._corpus.messages)
        imports = build_imports(
            self._corpus.request_types,
            self._corpus.messages,
            self._corpus.proto_base,
            self._config.pb2_package,
            name_counts,
        )
        template = get_template_env().get_template("msg_encoders.py.j2")
        return template.render(
            header=GENERATED_HEADER,
            helpers=self.helpers,
            imports=imports,
            functions=functions,
            entries=entries,
        )


def generate_encoders(corpus: ProtoCorpus, config: Optional[GeneratorConfig] = None) -> str:
    """Render the encoder module source."""
    return EncoderGenerator(corpus, config).render()
