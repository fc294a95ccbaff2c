from __future__ import annotations

from typing import Dict, List, Optional

from protoc_eip712.config import GeneratorConfig
from protoc_eip712.generator.common import (
    GENERATED_HEADER,
    build_imports,
    count_message_names,
    get_template_env,
    import_alias,
)
from protoc_eip712.models import ProtoCorpus
from protoc_eip712.naming import infer_module_name, method_name_for, safe_identifier, to_pascal
from protoc_eip712.resolver import lookup_message


def build_module_table(
    corpus: ProtoCorpus,
    config: Optional[GeneratorConfig] = None,
) -> Dict[str, List[Dict[str, str]]]:
    """Group request types by inferred module; each group sorted by method name."""
    config = config or GeneratorConfig()
    name_counts = count_message_names(corpus.request_types, corpus.messages)
    modules: Dict[str, List[Dict[str, str]]] = {}

    for request_type in corpus.request_types:
        message_def = lookup_message(corpus.messages, request_type)
        module_name = safe_identifier(infer_module_name(message_def.package, config.root_namespace))
        modules.setdefault(module_name, []).append({
            "method_name": method_name_for(message_def.name, config.msg_prefix),
            "type_url": f"/{request_type}",
            "message_name": import_alias(message_def, name_counts),
        })

    return {
        name: sorted(entries, key=lambda e: e["method_name"])
        for name, entries in sorted(modules.items())
    }


def generate_builders(corpus: ProtoCorpus, config: Optional[GeneratorConfig] = None) -> str:
    """Render the builder table module: `msg.<module>.<method>(value)` plus AnyEip712Msg."""
    config = config or GeneratorConfig()
    modules = build_module_table(corpus, config)
    name_counts = count_message_names(corpus.request_types, corpus.messages)
    imports = build_imports(
        corpus.request_types,
        corpus.messages,
        corpus.proto_base,
        config.pb2_package,
        name_counts,
    )
    union = sorted(
        (entry for entries in modules.values() for entry in entries),
        key=lambda e: e["type_url"],
    )

    template = get_template_env().get_template("msg.py.j2")
    return template.render(
        header=GENERATED_HEADER,
        imports=imports,
        modules=[
            {"name": name, "class_name": f"_{to_pascal(name)}Msgs", "entries": entries}
            for name, entries in modules.items()
        ],
        union=union,
    )
