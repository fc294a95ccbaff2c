from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Hand-maintained per-type-URL registry tweaks, merged last into each entry.
REGISTRY_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "/ault.exchange.v1beta1.MsgCancelOrder": {
        "legacy_amino_registered": False,
    },
}

# Fields that may be omitted by callers, keyed by "<full message name>.<camelField>".
FIELD_DEFAULT_OVERRIDES: Dict[str, Any] = {
    "ault.miner.v1.MsgRegisterOperator.commissionRecipient": "",
    "ault.miner.v1.MsgUpdateOperatorInfo.newCommissionRecipient": "",
}

_REGISTRY_OVERRIDE_KEYS = {"legacy_amino_registered"}


@dataclass
class GeneratorConfig:
    root_namespace: str = "ault"
    msg_prefix: str = "Msg"
    pb2_package: str = ""
    params_message_names: Tuple[str, ...] = ("Params",)
    registry_overrides: Dict[str, Dict[str, Any]] = field(
        default_factory=lambda: {k: dict(v) for k, v in REGISTRY_OVERRIDES.items()}
    )
    field_default_overrides: Dict[str, Any] = field(
        default_factory=lambda: dict(FIELD_DEFAULT_OVERRIDES)
    )

    def field_default(self, full_name: str, camel_name: str) -> Optional[Any]:
        return self.field_default_overrides.get(f"{full_name}.{camel_name}")

    def has_field_default(self, full_name: str, camel_name: str) -> bool:
        return f"{full_name}.{camel_name}" in self.field_default_overrides


def load_overrides(path: str, config: GeneratorConfig) -> GeneratorConfig:
    """Replace the built-in override maps with the ones from a JSON file.

    Expected layout::

        {
          "registry": {"/pkg.MsgFoo": {"legacy_amino_registered": false}},
          "field_defaults": {"pkg.MsgFoo.someField": ""}
        }

    Either key may be omitted to keep the built-in map.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Overrides file {path} must contain a JSON object")

    registry = data.get("registry")
    if registry is not None:
        for type_url, flags in registry.items():
            unknown = set(flags) - _REGISTRY_OVERRIDE_KEYS
            if unknown:
                raise ValueError(
                    f"Unsupported registry override key(s) {sorted(unknown)} for {type_url}"
                )
        config.registry_overrides = {k: dict(v) for k, v in registry.items()}

    field_defaults = data.get("field_defaults")
    if field_defaults is not None:
        config.field_default_overrides = dict(field_defaults)

    return config
